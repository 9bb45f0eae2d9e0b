import argparse
import asyncio
import logging

from .app_factory import create_facade, initialize_app

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Dia do Lixo application runner.")
    parser.add_argument(
        "command",
        choices=["bot", "dashboard", "sync"],
        help="The command to execute.",
    )
    args = parser.parse_args()

    initialize_app()
    facade = create_facade()

    if args.command == "bot":
        # Imported here so the dashboard does not need the Telegram stack
        from telegram_bot.bot import main as run_bot
        logger.info("Starting bot...")
        asyncio.run(run_bot(facade))
    elif args.command == "dashboard":
        from dashboard.app import run_dashboard
        logger.info("Starting dashboard...")
        run_dashboard(facade)
    elif args.command == "sync":
        logger.info("Running a one-off catalog sync...")
        facade.sync_service.sync_all()


if __name__ == "__main__":
    main()
