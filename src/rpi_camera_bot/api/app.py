"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from rpi_camera_bot.api.telegram_models import TelegramUpdate
from rpi_camera_bot.app_logging import configure_logging
from rpi_camera_bot.containers import AppContainer
from rpi_camera_bot.telegram_commands import telegram_commands


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            await state_container.telegram_client.set_my_commands(
                telegram_commands()
            )
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        state_container.dispatcher.start()
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/status")
    async def status(request: Request) -> dict[str, object]:
        """Report uptime and camera queue depth."""
        state_container: AppContainer = request.app.state.container
        return state_container.status_reporter.snapshot()

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates.

        Responds only after a capture request is queued, so a full queue
        pushes back on Telegram's delivery.
        """
        state_container: AppContainer = request.app.state.container
        await state_container.dispatcher.handle_update(update)
        return {"status": "ok"}

    return app
