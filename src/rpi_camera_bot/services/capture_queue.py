"""Bounded FIFO queue between update handlers and the camera consumer."""

import asyncio

from rpi_camera_bot.domain.capture import CaptureRequest

DEFAULT_CAPACITY = 4


class CaptureQueue:
    """Bounded FIFO of capture requests.

    Producers block while the queue is full; nothing is dropped or
    overwritten.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capture queue capacity must be at least 1")
        self._capacity = capacity
        self._queue: asyncio.Queue[CaptureRequest] = asyncio.Queue(maxsize=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of pending requests."""
        return self._capacity

    @property
    def pending(self) -> int:
        """Number of requests waiting for the camera."""
        return self._queue.qsize()

    def is_full(self) -> bool:
        """Return true when the next submit would block."""
        return self._queue.full()

    async def submit(self, request: CaptureRequest) -> None:
        """Enqueue a request, waiting for free capacity if needed."""
        await self._queue.put(request)

    async def next_request(self) -> CaptureRequest:
        """Wait for and return the oldest pending request."""
        return await self._queue.get()

    def task_done(self) -> None:
        """Mark the most recently taken request as consumed."""
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every submitted request has been consumed."""
        await self._queue.join()
