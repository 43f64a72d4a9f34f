"""
Main Telegram bot wiring.

Uses python-telegram-bot. Updates arrive either through the FastAPI
webhook (app.main) or through long polling (python -m app.telegram_bot).
Both share one Application whose JobQueue runs:
- the capture endpoint poll (every poll_interval_seconds)
- the pending task expiry sweep
- per-task "still waiting" notices
"""

import re
from datetime import timedelta
from functools import partial

from telegram import Update
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from app.config import Settings, get_settings
from app.services.correlator import WebhookCorrelator
from app.services.task_store import ProcessedDeliveryLedger, ResultStore
from .api_client import get_api_client, close_api_client
from .logging_config import bot_logger as logger
from .telegram_api import send_reply
from .handlers import (
    RunCrewHandler,
    handle_start_command,
    handle_help_command,
    handle_error,
)


# Global application instance (initialized once)
_application: Application | None = None


def trigger_pattern(prefix: str) -> re.Pattern:
    """Messages starting with the prefix are crew commands ("!runcrewfoo" included)."""
    return re.compile(rf"^{re.escape(prefix)}")


def build_application(settings: Settings) -> Application:
    """Create the Application with its handlers and scheduled jobs."""
    application = (
        Application.builder()
        .token(settings.telegram_bot_token)
        .build()
    )

    store = ResultStore()
    ledger = ProcessedDeliveryLedger(
        max_size=settings.processed_ids_max,
        keep=settings.processed_ids_keep,
    )
    client = get_api_client()
    reply = partial(send_reply, application.bot)

    correlator = WebhookCorrelator(
        store=store,
        ledger=ledger,
        client=client,
        send_reply=reply,
        max_message_chars=settings.max_message_chars,
        pending_ttl=timedelta(minutes=settings.pending_ttl_minutes),
    )
    run_crew = RunCrewHandler(
        store=store,
        client=client,
        send_reply=reply,
        stale_notice_seconds=settings.stale_notice_seconds,
    )

    application.bot_data["store"] = store
    application.bot_data["ledger"] = ledger
    application.bot_data["trigger_prefix"] = settings.trigger_prefix

    # Register handlers
    application.add_handler(CommandHandler("start", handle_start_command))
    application.add_handler(CommandHandler("help", handle_help_command))

    trigger = filters.Regex(trigger_pattern(settings.trigger_prefix))
    application.add_handler(MessageHandler(filters.TEXT & trigger, run_crew))

    application.add_error_handler(handle_error)

    # Scheduled jobs
    application.job_queue.run_repeating(
        correlator.poll_job,
        interval=settings.poll_interval_seconds,
        first=settings.poll_interval_seconds,
        name="poll_webhook_results",
    )
    application.job_queue.run_repeating(
        correlator.expiry_job,
        interval=settings.expiry_sweep_seconds,
        first=settings.expiry_sweep_seconds,
        name="expire_pending_tasks",
    )

    logger.info("Telegram bot application initialized")
    return application


def get_bot_application() -> Application:
    """Get or create telegram bot application."""
    global _application

    if _application is None:
        _application = build_application(get_settings())

    return _application


async def handle_telegram_update(update_data: dict) -> None:
    """
    Process incoming webhook update from Telegram.

    This is called by FastAPI webhook endpoint.
    """
    try:
        app = get_bot_application()

        update = Update.de_json(update_data, app.bot)

        if update:
            await app.process_update(update)
        else:
            logger.warning("Received invalid update data")

    except Exception as e:
        logger.error(f"Failed to process update: {e}", exc_info=True)


async def initialize_bot() -> None:
    """
    Initialize and start bot application (call on startup).

    start() is what runs the JobQueue, so polling of the capture
    endpoint begins here.
    """
    app = get_bot_application()
    await app.initialize()
    await app.start()
    logger.info("Bot initialized successfully")


async def shutdown_bot() -> None:
    """
    Shutdown bot application (call on shutdown).
    """
    global _application
    if _application:
        await _application.stop()
        await _application.shutdown()
        await close_api_client()
        _application = None
        logger.info("Bot shut down")


def run_polling() -> None:
    """Run the bot with long polling instead of the webhook (local use)."""
    app = get_bot_application()
    logger.info("Starting bot in polling mode")
    app.run_polling(allowed_updates=Update.ALL_TYPES)
