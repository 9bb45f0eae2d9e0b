"""
This module handles the scheduling and sending of collection reminders using the
CollectionCalendarFacade.
"""

import asyncio
import logging

from telegram import Bot
from telegram.ext import Application

from collection_schedule.facade import CollectionCalendarFacade

logger = logging.getLogger(__name__)

CHUNK_SIZE = 30
CHECK_INTERVAL_SECONDS = 3600


async def send_notification(bot: Bot, chat_id: int, message: str) -> None:
    """Sends a single reminder message to a chat."""
    await bot.send_message(chat_id=chat_id, text=message)


async def check_and_send_notifications(
    facade: CollectionCalendarFacade, bot: Bot
) -> None:
    """
    Fetches due reminders from the facade and sends them.
    """
    logger.info("Checking for due notifications...")
    notification_tasks = facade.get_due_notifications()

    if not notification_tasks:
        logger.info("No notifications are due.")
        return

    logger.info(f"Found {len(notification_tasks)} notifications to send.")

    for i in range(0, len(notification_tasks), CHUNK_SIZE):
        chunk = notification_tasks[i : i + CHUNK_SIZE]

        coroutines = []
        pending = []
        for task in chunk:
            log_id = facade.log_pending_notification(
                task["chat_id"], task["collection_date"]
            )
            if log_id:
                coroutines.append(
                    send_notification(bot, task["chat_id"], task["message"])
                )
                pending.append((log_id, task))

        results = await asyncio.gather(*coroutines, return_exceptions=True)

        for (log_id, task), result in zip(pending, results):
            if not isinstance(result, Exception):
                facade.update_last_notified_date(
                    chat_id=task["chat_id"],
                    collection_date=task["collection_date"],
                )
                facade.update_notification_log(log_id, "success")
                logger.info(f"Successfully sent notification to chat_id {task['chat_id']}.")
            else:
                error_message = str(result)
                facade.update_notification_log(log_id, "failure", error_message)
                logger.error(
                    f"Failed to send notification to chat_id {task['chat_id']}: {error_message}"
                )

        # Wait for 1 second before processing the next chunk to respect rate limits
        if i + CHUNK_SIZE < len(notification_tasks):
            await asyncio.sleep(1)


async def scheduler(facade: CollectionCalendarFacade, application: Application) -> None:
    """
    The main scheduler loop that periodically checks for and sends reminders.
    """
    bot = application.bot
    logger.info("Notification scheduler started.")
    while True:
        try:
            await check_and_send_notifications(facade, bot)
        except Exception as e:
            logger.exception(
                f"An error occurred in the notification scheduler loop: {e}"
            )
        await asyncio.sleep(CHECK_INTERVAL_SECONDS)
