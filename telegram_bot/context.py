"""
This module defines a custom context class for the Telegram bot.
"""
from typing import Optional

from telegram.ext import CallbackContext, ExtBot

from collection_schedule.facade import CollectionCalendarFacade


class CustomContext(CallbackContext[ExtBot, dict, dict, dict]):
    """
    A custom context class that holds the CollectionCalendarFacade instance.

    The facade is set once on the class when the application is built, so every
    handler invocation shares it.
    """

    facade: Optional[CollectionCalendarFacade] = None
