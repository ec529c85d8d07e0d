"""Command-line entry point for the camera bot."""

import argparse
import asyncio
import logging

import uvicorn

from rpi_camera_bot.api.app import create_app
from rpi_camera_bot.app_logging import configure_logging
from rpi_camera_bot.config import Settings
from rpi_camera_bot.containers import AppContainer, build_container
from rpi_camera_bot.errors import CameraUnavailableError
from rpi_camera_bot.polling import run_polling

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="rpi-camera-bot",
        description="Telegram bot for a Raspberry Pi camera module",
    )
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["polling", "webhook"],
        default="polling",
        help="Receive updates by long polling (default) or via a webhook server",
    )
    parser.add_argument(
        "--host", default="0.0.0.0", help="Webhook server bind address"
    )
    parser.add_argument(
        "--port", type=int, default=8000, help="Webhook server port"
    )
    return parser.parse_args(argv)


async def _poll(container: AppContainer) -> None:
    try:
        await run_polling(
            container.dispatcher,
            container.telegram_client,
            container.settings.monitor_interval_seconds,
        )
    finally:
        await container.close_resources()


def main(argv: list[str] | None = None) -> None:
    """Build the container, check the camera and start receiving updates."""
    args = parse_args(argv)
    settings = Settings()
    configure_logging(settings.log_level)
    container = build_container(settings)
    try:
        container.dispatcher.camera.ensure_available()
    except CameraUnavailableError as exc:
        logger.critical("Cannot start: %s", exc)
        raise SystemExit(1) from exc

    if args.mode == "webhook":
        uvicorn.run(create_app(container), host=args.host, port=args.port)
        return
    asyncio.run(_poll(container))


if __name__ == "__main__":
    main()
