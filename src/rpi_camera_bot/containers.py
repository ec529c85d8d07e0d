"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from rpi_camera_bot.adapters.memory_photo_repository import InMemoryPhotoRepository
from rpi_camera_bot.adapters.supabase_photo_repository import SupabasePhotoRepository
from rpi_camera_bot.adapters.telegram_client import (
    HttpxTelegramClient,
    TelegramBotClient,
    TelegramClient,
)
from rpi_camera_bot.config import Settings
from rpi_camera_bot.services.camera import CameraInvoker
from rpi_camera_bot.services.capture_queue import CaptureQueue
from rpi_camera_bot.services.dispatcher import CaptureDispatcher
from rpi_camera_bot.services.photos import PhotoRepository, PhotoStore
from rpi_camera_bot.services.sessions import SessionRegistry
from rpi_camera_bot.services.status import StatusReporter


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramBotClient
    dispatcher: CaptureDispatcher
    status_reporter: StatusReporter
    close_resources: Callable[[], Awaitable[None]]


def build_photo_repository(settings: Settings) -> PhotoRepository:
    """Return the Supabase repository when configured, else an in-memory one."""
    if settings.uses_supabase:
        client = create_client(
            str(settings.supabase_url), str(settings.supabase_service_key)
        )
        return SupabasePhotoRepository(client)
    return InMemoryPhotoRepository()


def build_dispatcher(
    settings: Settings,
    telegram_client: TelegramClient,
    photo_repository: PhotoRepository,
) -> tuple[CaptureDispatcher, StatusReporter]:
    """Wire the registry, queue, camera and photo store into a dispatcher."""
    queue = CaptureQueue(settings.capture_queue_size)
    camera = CameraInvoker(
        binary_path=settings.libcamera_still_bin,
        timeout_seconds=settings.capture_timeout_seconds,
    )
    status_reporter = StatusReporter(queue=queue, camera=camera)
    registry = SessionRegistry(
        sorted(settings.allowed_usernames), status_text=status_reporter.render
    )
    dispatcher = CaptureDispatcher(
        settings=settings,
        registry=registry,
        queue=queue,
        camera=camera,
        photo_store=PhotoStore(photo_repository),
        telegram_client=telegram_client,
    )
    return dispatcher, status_reporter


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    dispatcher, status_reporter = build_dispatcher(
        resolved_settings,
        telegram_client,
        build_photo_repository(resolved_settings),
    )

    async def close_resources() -> None:
        await dispatcher.stop()
        await telegram_client.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        dispatcher=dispatcher,
        status_reporter=status_reporter,
        close_resources=close_resources,
    )
