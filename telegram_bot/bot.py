"""
This module contains the main logic for the Telegram bot, built on the CollectionCalendarFacade.
"""

import asyncio
import logging
from datetime import date
from typing import List

from telegram import ReplyKeyboardMarkup, ReplyKeyboardRemove, Update
from telegram.ext import (AIORateLimiter, Application, CommandHandler,
                          ContextTypes, ConversationHandler, MessageHandler,
                          filters)

from collection_schedule.config import (SUPPORTED_LANGUAGES,
                                        TELEGRAM_BOT_TOKEN,
                                        TELEGRAM_RATE_LIMIT_GROUP,
                                        TELEGRAM_RATE_LIMIT_OVERALL)
from collection_schedule.dates import WEEK_MODE, shift_anchor
from collection_schedule.exceptions import (DataStoreError,
                                            InvalidScheduleDateError)
from collection_schedule.facade import CollectionCalendarFacade
from collection_schedule.models import CollectionDay
from collection_schedule.services.notification_service import \
    get_garbage_type_emoji

from .context import CustomContext
from .scheduler import scheduler

logger = logging.getLogger(__name__)

# States for the zone conversation: CITY -> ZONE
CITY, ZONE = range(2)

Context = CustomContext

WEEKDAY_NAMES = ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]
NO_ZONE_MESSAGE = "Ainda não escolheste a tua zona. Usa /zone para a escolher."


def format_date(day: date) -> str:
    """Formats a date as dd/mm/yyyy."""
    return day.strftime("%d/%m/%Y")


def format_week(days: List[CollectionDay], language: str) -> str:
    """Formats a resolved week as one line per day."""
    lines = []
    for day in days:
        label = f"{WEEKDAY_NAMES[day.date.weekday()]} {format_date(day.date)}"
        if day.garbage_types:
            names = ", ".join(
                f"{get_garbage_type_emoji(gt.code)} {gt.display_name(language)}"
                for gt in day.garbage_types
            )
        else:
            names = "—"
        if day.holiday:
            names += f" (🎉 {day.holiday})"
        lines.append(f"<b>{label}</b>: {names}")
    return "\n".join(lines)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Sends a welcome message."""
    await update.message.reply_text(
        "Olá! Eu sou o bot Dia do Lixo. Usa /zone para escolher a tua zona, "
        "/week para ver a semana e /next para as próximas recolhas."
    )


async def zone(update: Update, context: Context) -> int:
    """Starts the zone conversation by asking for the city."""
    try:
        cities = context.facade.get_cities()
    except DataStoreError:
        await update.message.reply_text(
            "Não foi possível carregar as cidades. Tenta novamente mais tarde."
        )
        return ConversationHandler.END

    if not cities:
        await update.message.reply_text("Ainda não há cidades disponíveis.")
        return ConversationHandler.END

    reply_keyboard = [[city.name] for city in cities]
    await update.message.reply_text(
        "Em que cidade vives?",
        reply_markup=ReplyKeyboardMarkup(reply_keyboard, one_time_keyboard=True),
    )
    return CITY


async def handle_city(update: Update, context: Context) -> int:
    """Handles the city input and asks for the zone."""
    matches = context.facade.find_cities(update.message.text)
    if not matches:
        await update.message.reply_text(
            "Não encontrei essa cidade. Por favor tenta novamente."
        )
        return CITY

    city = matches[0]
    if not city.zones:
        await update.message.reply_text(
            f"A cidade '{city.name}' ainda não tem zonas disponíveis.",
            reply_markup=ReplyKeyboardRemove(),
        )
        return ConversationHandler.END

    context.user_data["selected_city_id"] = city.id
    reply_keyboard = [[z.name] for z in city.zones]
    await update.message.reply_text(
        f"Cidade: '{city.name}'. Qual é a tua zona?",
        reply_markup=ReplyKeyboardMarkup(reply_keyboard, one_time_keyboard=True),
    )
    return ZONE


async def handle_zone(update: Update, context: Context) -> int:
    """Handles the zone input, stores it through the facade and ends the conversation."""
    city_id = context.user_data.get("selected_city_id")
    matches = context.facade.find_zones(update.message.text, city_id)
    if not matches:
        await update.message.reply_text(
            "Não encontrei essa zona. Por favor escolhe uma das opções."
        )
        return ZONE

    city, selected_zone = matches[0]
    chat_id = update.message.chat_id

    try:
        success = context.facade.choose_zone(chat_id, city.id, selected_zone.id)
        if success:
            await update.message.reply_text(
                f"Zona '{selected_zone.name}' ({city.name}) guardada!",
                reply_markup=ReplyKeyboardRemove(),
            )
        else:
            await update.message.reply_text(
                "Um erro interno impediu guardar a zona. Tenta novamente mais tarde.",
                reply_markup=ReplyKeyboardRemove(),
            )
    except DataStoreError:
        await update.message.reply_text(
            "A zona foi guardada, mas não foi possível carregar o calendário. "
            "Tenta novamente mais tarde.",
            reply_markup=ReplyKeyboardRemove(),
        )

    context.user_data.clear()
    return ConversationHandler.END


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Cancels and ends the conversation."""
    await update.message.reply_text(
        "Operação cancelada.", reply_markup=ReplyKeyboardRemove()
    )
    context.user_data.clear()
    return ConversationHandler.END


async def week(update: Update, context: Context) -> None:
    """
    Displays the collection week. An optional argument moves by whole weeks,
    e.g. "/week 1" for next week or "/week -1" for last week.
    """
    settings = context.facade.get_settings(update.message.chat_id)
    if not settings["zone_id"]:
        await update.message.reply_text(NO_ZONE_MESSAGE)
        return

    try:
        offset = int(context.args[0]) if context.args else 0
        anchor = shift_anchor(date.today(), WEEK_MODE, offset)
    except (ValueError, OverflowError):
        await update.message.reply_text("Uso: /week [deslocamento em semanas]")
        return

    try:
        days = context.facade.get_week(settings["zone_id"], anchor)
    except (DataStoreError, InvalidScheduleDateError) as e:
        logger.error(f"Could not load week for chat_id {update.message.chat_id}: {e}")
        await update.message.reply_text(
            "Não foi possível carregar o calendário. Tenta novamente mais tarde."
        )
        return

    message = f"<b>Semana de {format_date(days[0].date)}</b>\n\n"
    message += format_week(days, settings["language"])
    await update.message.reply_text(message, parse_mode="HTML")


async def next_collections(update: Update, context: Context) -> None:
    """Displays the next collection date of every garbage type in the chat's zone."""
    settings = context.facade.get_settings(update.message.chat_id)
    if not settings["zone_id"]:
        await update.message.reply_text(NO_ZONE_MESSAGE)
        return

    try:
        entries = context.facade.get_next_collections(settings["zone_id"])
    except DataStoreError:
        await update.message.reply_text(
            "Não foi possível carregar o calendário. Tenta novamente mais tarde."
        )
        return

    if not entries:
        await update.message.reply_text("Não há recolhas agendadas para a tua zona.")
        return

    message = "<b>Próximas recolhas:</b>\n\n"
    for entry in entries:
        gt = entry.garbage_type
        message += (
            f"{get_garbage_type_emoji(gt.code)} {gt.display_name(settings['language'])}: "
            f"{WEEKDAY_NAMES[entry.next_date.weekday()]} {format_date(entry.next_date)}\n"
        )
    await update.message.reply_text(message, parse_mode="HTML")


async def notifications(update: Update, context: Context) -> None:
    """Turns reminders on or off ("/notifications on|off", no argument toggles)."""
    chat_id = update.message.chat_id
    if context.args and context.args[0].lower() in ("on", "off"):
        enabled = context.args[0].lower() == "on"
    else:
        enabled = not context.facade.get_settings(chat_id)["notifications_enabled"]

    try:
        context.facade.set_notifications_enabled(chat_id, enabled)
    except ValueError:
        await update.message.reply_text(NO_ZONE_MESSAGE)
        return

    if enabled:
        await update.message.reply_text(
            "Lembretes ativados! Vais receber uma mensagem na véspera de cada recolha."
        )
    else:
        await update.message.reply_text("Lembretes desativados.")


async def language(update: Update, context: Context) -> None:
    """Sets the language used for garbage type names ("/language pt|en|es")."""
    if not context.args or context.args[0].lower() not in SUPPORTED_LANGUAGES:
        await update.message.reply_text(
            f"Uso: /language {'|'.join(SUPPORTED_LANGUAGES)}"
        )
        return

    selected = context.args[0].lower()
    context.facade.set_language(update.message.chat_id, selected)
    await update.message.reply_text(f"Idioma alterado para '{selected}'.")


def setup_handlers(application: Application) -> None:
    """Registers all command and conversation handlers."""
    zone_conv = ConversationHandler(
        entry_points=[CommandHandler("zone", zone)],
        states={
            CITY: [MessageHandler(filters.TEXT & ~filters.COMMAND, handle_city)],
            ZONE: [MessageHandler(filters.TEXT & ~filters.COMMAND, handle_zone)],
        },
        fallbacks=[CommandHandler("cancel", cancel)],
    )

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("week", week))
    application.add_handler(CommandHandler("next", next_collections))
    application.add_handler(CommandHandler("notifications", notifications))
    application.add_handler(CommandHandler("language", language))
    application.add_handler(zone_conv)


def record_bot_start_time(facade_instance: CollectionCalendarFacade) -> None:
    """Records the bot's start time in the system_info table."""
    try:
        facade_instance.record_start_time()
    except Exception as e:
        logger.error(f"Failed to record bot start time: {e}")


async def main(facade_instance: CollectionCalendarFacade) -> None:
    """Initializes and runs the bot and schedulers."""
    record_bot_start_time(facade_instance)

    if not TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN environment variable not set.")
        return

    rate_limiter = AIORateLimiter(
        overall_max_rate=TELEGRAM_RATE_LIMIT_OVERALL,
        group_max_rate=TELEGRAM_RATE_LIMIT_GROUP,
    )

    context_types = ContextTypes(context=Context)
    application = (
        Application.builder()
        .token(TELEGRAM_BOT_TOKEN)
        .rate_limiter(rate_limiter)
        .context_types(context_types)
        .build()
    )

    # Every handler context shares the facade
    application.context_types.context.facade = facade_instance

    setup_handlers(application)

    await application.initialize()
    await application.start()
    await application.updater.start_polling()

    logger.info("Bot started and polling...")

    try:
        await asyncio.gather(
            scheduler(facade_instance, application),
            facade_instance.sync_service.run_scheduler(),
        )
    except asyncio.CancelledError:
        logger.info("Bot is stopping...")
    finally:
        if application.updater.running:
            await application.updater.stop()
        if application.running:
            await application.stop()
            await application.shutdown()
