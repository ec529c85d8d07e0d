"""Append-only cache of delivered photos."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from rpi_camera_bot.domain.photos import Photo

logger = logging.getLogger(__name__)


class PhotoRepository(Protocol):
    """Persistence interface for delivered photo metadata."""

    def save_photo(
        self,
        user_name: str,
        file_reference: str,
        caption: str,
        captured_at: datetime,
    ) -> Photo:
        """Persist a photo row and return it."""

    def list_photos(self, user_name: str, limit: int) -> list[Photo]:
        """Return up to ``limit`` photos for a user, most recent first."""


class ReadWriteLock:
    """Shared/exclusive lock that lets a waiting writer block new readers."""

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock in shared mode."""
        with self._condition:
            while self._writer or self._waiting_writers:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock in exclusive mode."""
        with self._condition:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._condition.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()


@dataclass
class PhotoStore:
    """Records delivered captures so later lookups can skip the camera."""

    repository: PhotoRepository
    _lock: ReadWriteLock = field(default_factory=ReadWriteLock, repr=False)

    def append(
        self,
        user_name: str,
        file_reference: str,
        caption: str,
        captured_at: datetime | None = None,
    ) -> Photo | None:
        """Persist a delivered photo; failures are logged, never raised."""
        timestamp = captured_at or datetime.now().astimezone()
        with self._lock.write():
            try:
                return self.repository.save_photo(
                    user_name=user_name,
                    file_reference=file_reference,
                    caption=caption,
                    captured_at=timestamp,
                )
            except Exception:
                logger.exception(
                    "Failed to save photo into photo store",
                    extra={"user_name": user_name, "file_id": file_reference},
                )
                return None

    def latest(self, user_name: str, limit: int) -> list[Photo]:
        """Return up to ``limit`` of the user's photos, most recent first."""
        if limit <= 0:
            return []
        with self._lock.read():
            photos = self.repository.list_photos(user_name, limit)
        return [photo for photo in photos if photo.user_name == user_name][:limit]
