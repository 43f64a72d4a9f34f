import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Header, HTTPException

from app.config import get_settings
from app.telegram_bot.bot import (
    get_bot_application,
    handle_telegram_update,
    initialize_bot,
    shutdown_bot,
)
from app.telegram_bot.logging_config import bot_logger as logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the bot with the service and stop it on shutdown. Missing required settings stop the service here."""
    get_settings()
    logger.info("[STARTUP] Initializing Telegram bot...")
    await initialize_bot()
    logger.info("[STARTUP] Bot ready")

    yield

    logger.info("[SHUTDOWN] Shutting down Telegram bot...")
    await shutdown_bot()
    logger.info("[SHUTDOWN] Bot stopped")


app = FastAPI(
    title="Crew Relay Bot",
    description="Relays chat commands to the crew task API and posts results back",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    bot_data = get_bot_application().bot_data
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": "0.1.0",
        "pending_tasks": len(bot_data["store"]),
        "processed_deliveries": len(bot_data["ledger"]),
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Crew Relay Bot",
        "docs": "/docs"
    }


# Telegram webhook endpoint
@app.post("/telegram/webhook")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str = Header(None)
):
    """
    Webhook endpoint for Telegram updates.

    Telegram sends updates here when messages arrive.
    """
    settings = get_settings()

    # Verify secret token if configured
    if settings.telegram_webhook_secret:
        if x_telegram_bot_api_secret_token != settings.telegram_webhook_secret:
            raise HTTPException(status_code=403, detail="Invalid secret token")

    update_data = await request.json()

    # Handle update in background (fire-and-forget for fast 200 OK)
    asyncio.create_task(handle_telegram_update(update_data))

    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
