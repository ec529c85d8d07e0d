"""Routes Telegram updates to replies or serialized camera captures."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime

from rpi_camera_bot.adapters.telegram_client import (
    CHAT_ACTION_TYPING,
    CHAT_ACTION_UPLOAD_PHOTO,
    TelegramClient,
)
from rpi_camera_bot.api.telegram_models import TelegramUpdate, TelegramUser
from rpi_camera_bot.config import Settings
from rpi_camera_bot.domain.capture import CaptureRequest
from rpi_camera_bot.errors import CaptureError, CaptureKillError
from rpi_camera_bot.services.camera import CameraInvoker
from rpi_camera_bot.services.capture_queue import CaptureQueue
from rpi_camera_bot.services.photos import PhotoStore
from rpi_camera_bot.services.sessions import SessionRegistry
from rpi_camera_bot.telegram_commands import reply_options

logger = logging.getLogger(__name__)

CAPTION_FORMAT = "%Y-%m-%d (%a) %H:%M:%S"


@dataclass
class CaptureDispatcher:
    """Accepts updates quickly and feeds the camera through one consumer.

    Update handling is split in two phases: the session registry decides
    under its own lock, then capture requests are submitted to the bounded
    queue with no lock held.
    """

    settings: Settings
    registry: SessionRegistry
    queue: CaptureQueue
    camera: CameraInvoker
    photo_store: PhotoStore
    telegram_client: TelegramClient
    _consumer: asyncio.Task[None] | None = field(
        default=None, init=False, repr=False
    )

    async def handle_update(self, update: TelegramUpdate) -> bool:
        """Dispatch one Telegram update; return true when it was acted on."""
        if update.message is not None:
            return await self.handle_message(update)
        if update.inline_query is not None:
            return await self.handle_inline_query(update)
        logger.debug(
            "Ignoring unsupported update", extra={"update_id": update.update_id}
        )
        return False

    async def handle_message(self, update: TelegramUpdate) -> bool:
        """Handle a text message from a whitelisted user."""
        message = update.message
        if message is None:
            return False
        user_name = self._authorized_user_name(message.from_user, "message")
        if user_name is None:
            return False

        decision = self.registry.handle_update(
            user_name, update.update_id, message.text or ""
        )
        if decision is None:
            return False

        options = reply_options()
        if decision.reply_text is not None:
            await self._send_chat_action(message.chat.id, CHAT_ACTION_TYPING)
            return await self._notify(message.chat.id, decision.reply_text, options)

        if self.settings.is_in_maintenance:
            return await self._notify(
                message.chat.id, self.settings.maintenance_message, options
            )

        request = CaptureRequest(
            user_name=user_name,
            chat_id=message.chat.id,
            image_width=self.settings.image_width,
            image_height=self.settings.image_height,
            camera_params=tuple(self.settings.camera_params),
            reply_options=options,
        )
        if self.queue.is_full():
            logger.warning(
                "Capture queue is full; waiting for a free slot",
                extra={"user_name": user_name, "capacity": self.queue.capacity},
            )
        await self.queue.submit(request)
        return True

    async def handle_inline_query(self, update: TelegramUpdate) -> bool:
        """Answer an inline query with the user's cached photos."""
        query = update.inline_query
        if query is None:
            return False
        user_name = self._authorized_user_name(query.from_user, "inline query")
        if user_name is None:
            return False

        try:
            photos = await asyncio.to_thread(
                self.photo_store.latest, user_name, self.settings.latest_photos_limit
            )
        except Exception:
            logger.exception(
                "Failed to read cached photos", extra={"user_name": user_name}
            )
            return False
        if not photos:
            logger.info(
                "No cached photos for inline query", extra={"user_name": user_name}
            )
            return False

        results: list[dict[str, object]] = [
            {
                "type": "photo",
                "id": str(index),
                "photo_file_id": photo.file_reference,
                "caption": photo.caption,
            }
            for index, photo in enumerate(photos)
        ]
        try:
            await self.telegram_client.answer_inline_query(query.id, results)
        except Exception:
            logger.exception(
                "Failed to answer inline query", extra={"user_name": user_name}
            )
            return False
        return True

    async def process_capture_request(self, request: CaptureRequest) -> bool:
        """Capture, deliver and record one request."""
        await self._send_chat_action(request.chat_id, CHAT_ACTION_TYPING)
        try:
            image = await self.camera.capture(
                request.image_width, request.image_height, request.camera_params
            )
        except CaptureError as exc:
            message = f"image capture failed: {exc}"
            if isinstance(exc, CaptureKillError):
                logger.critical(message, extra={"user_name": request.user_name})
            else:
                logger.error(message, extra={"user_name": request.user_name})
            await self._notify(
                request.chat_id, message, _without_markdown(request.reply_options)
            )
            return False

        caption = datetime.now().strftime(CAPTION_FORMAT)
        await self._send_chat_action(request.chat_id, CHAT_ACTION_UPLOAD_PHOTO)
        try:
            file_id = await self.telegram_client.send_photo(
                request.chat_id, image, caption=caption, **request.reply_options
            )
        except Exception as exc:
            message = f"failed to send photo: {exc}"
            logger.exception(
                "Failed to send photo", extra={"user_name": request.user_name}
            )
            await self._notify(request.chat_id, message)
            return False

        await asyncio.to_thread(
            self.photo_store.append, request.user_name, file_id, caption
        )
        return True

    async def run_consumer(self) -> None:
        """Drain the capture queue forever, one request at a time."""
        while True:
            request = await self.queue.next_request()
            try:
                await self.process_capture_request(request)
            except Exception:
                logger.exception(
                    "Unexpected error while processing capture request",
                    extra={"user_name": request.user_name},
                )
            finally:
                self.queue.task_done()

    def start(self) -> None:
        """Start the consumer task on the running event loop."""
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self.run_consumer())

    async def stop(self) -> None:
        """Cancel the consumer task and wait for it to finish."""
        if self._consumer is None:
            return
        self._consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._consumer
        self._consumer = None

    def _authorized_user_name(
        self, user: TelegramUser | None, source: str
    ) -> str | None:
        if user is None or not user.username:
            logger.warning(
                "%s - user not allowed (has no username)",
                source,
                extra={"first_name": user.first_name if user else None},
            )
            return None
        if user.username not in self.settings.allowed_usernames:
            logger.warning("%s - id not allowed: %s", source, user.username)
            return None
        return user.username

    async def _send_chat_action(self, chat_id: int, action: str) -> None:
        try:
            await self.telegram_client.send_chat_action(chat_id, action)
        except Exception:
            logger.warning("Failed to send chat action", exc_info=True)

    async def _notify(
        self, chat_id: int, text: str, options: dict[str, object] | None = None
    ) -> bool:
        try:
            await self.telegram_client.send_message(chat_id, text, **(options or {}))
        except Exception:
            logger.exception("Failed to send message", extra={"chat_id": chat_id})
            return False
        return True


def _without_markdown(options: dict[str, object]) -> dict[str, object]:
    """Drop the parse mode so raw process output is sent verbatim."""
    return {key: value for key, value in options.items() if key != "parse_mode"}
