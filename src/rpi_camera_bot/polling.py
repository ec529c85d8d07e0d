"""Long-polling runner that feeds getUpdates results to the dispatcher."""

import asyncio
import logging
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from rpi_camera_bot.api.telegram_models import TelegramUpdate
from rpi_camera_bot.services.dispatcher import CaptureDispatcher

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_GRACE_SECONDS = 5.0


@runtime_checkable
class UpdateSource(Protocol):
    """Telegram methods needed for long polling."""

    async def get_me(self) -> dict[str, object]:
        """Return information about the bot account."""

    async def delete_webhook(self, drop_pending_updates: bool = False) -> None:
        """Remove any webhook so getUpdates can be used."""

    async def get_updates(
        self, offset: int | None = None, timeout: int = 0
    ) -> list[dict[str, object]]:
        """Long-poll for new updates starting at ``offset``."""


async def run_polling(
    dispatcher: CaptureDispatcher,
    source: UpdateSource,
    interval_seconds: int,
    stop_event: asyncio.Event | None = None,
    shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS,
) -> None:
    """Poll Telegram until ``stop_event`` is set.

    Failing to identify the bot or to remove its webhook is fatal. Errors
    while receiving updates are logged and retried after ``interval_seconds``.

    Each update is handled in its own task, so a capture waiting for room in
    a full queue never holds up the receive loop or other users' replies.
    The session decision is made before a handler's first await, which keeps
    update ids processed in arrival order. On exit, handlers get
    ``shutdown_grace_seconds`` to finish before they are cancelled.
    """
    me = await source.get_me()
    logger.info(
        "Starting bot: @%s (%s)", me.get("username"), me.get("first_name")
    )
    await source.delete_webhook()

    dispatcher.start()
    handlers: set[asyncio.Task[bool]] = set()

    def forget(task: asyncio.Task[bool]) -> None:
        handlers.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Update handler failed", exc_info=task.exception())

    offset: int | None = None
    try:
        while stop_event is None or not stop_event.is_set():
            try:
                raw_updates = await source.get_updates(
                    offset=offset, timeout=interval_seconds
                )
            except Exception:
                logger.exception("Error while receiving updates")
                await asyncio.sleep(interval_seconds)
                continue

            for raw in raw_updates:
                update_id = raw.get("update_id")
                if isinstance(update_id, int):
                    offset = max(offset or 0, update_id + 1)
                try:
                    update = TelegramUpdate.model_validate(raw)
                except ValidationError:
                    logger.warning(
                        "Skipping malformed update", extra={"update_id": update_id}
                    )
                    continue
                task = asyncio.create_task(dispatcher.handle_update(update))
                handlers.add(task)
                task.add_done_callback(forget)
    finally:
        await _drain(handlers, shutdown_grace_seconds)
        await dispatcher.stop()


async def _drain(handlers: set[asyncio.Task[bool]], grace_seconds: float) -> None:
    if not handlers:
        return
    _, still_running = await asyncio.wait(set(handlers), timeout=grace_seconds)
    if still_running:
        logger.warning(
            "Cancelling unfinished update handlers",
            extra={"count": len(still_running)},
        )
    for task in still_running:
        task.cancel()
    await asyncio.gather(*still_running, return_exceptions=True)
