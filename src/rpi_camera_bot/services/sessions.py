"""Per-user session registry with update-id deduplication."""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

from rpi_camera_bot.domain.sessions import Session
from rpi_camera_bot.services.commands import (
    MESSAGE_DEFAULT,
    Command,
    classify_command,
    help_reply,
    unknown_command_reply,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionDecision:
    """Outcome of handling one update: what to do and what to say."""

    user_id: str
    update_id: int
    command: Command
    reply_text: str | None = None

    @property
    def wants_capture(self) -> bool:
        """Return true when the update asked for a camera capture."""
        return self.command is Command.CAPTURE


class SessionRegistry:
    """Owns the session map; one session per whitelisted user.

    ``handle_update`` only deduplicates and classifies under the lock. Replies
    are built after it is released, and it never enqueues, so neither a slow
    status report nor a full capture queue can hold the registry lock.
    """

    def __init__(
        self, user_ids: Iterable[str], status_text: Callable[[], str]
    ) -> None:
        self._sessions: dict[str, Session] = {
            user_id: Session(user_id=user_id) for user_id in user_ids
        }
        self._status_text = status_text
        self._lock = threading.Lock()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def session(self, user_id: str) -> Session | None:
        """Return a snapshot of a user's session, if present."""
        with self._lock:
            return self._sessions.get(user_id)

    def handle_update(
        self, user_id: str, update_id: int, text: str
    ) -> SessionDecision | None:
        """Record an update and classify its text.

        Returns None for unknown users and for duplicate or stale update ids.
        """
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                logger.warning(
                    "Session does not exist for user", extra={"user_id": user_id}
                )
                return None
            if update_id <= session.last_update_id:
                logger.warning(
                    "Skipping duplicated update %s (last seen %s)",
                    update_id,
                    session.last_update_id,
                    extra={"user_id": user_id},
                )
                return None

            self._sessions[user_id] = replace(session, last_update_id=update_id)
            command = classify_command(session.status, text)

        reply_text = self._reply_for(command, text)
        logger.info(
            "Handled request", extra={"user_id": user_id, "command": command.value}
        )
        return SessionDecision(
            user_id=user_id,
            update_id=update_id,
            command=command,
            reply_text=reply_text,
        )

    def _reply_for(self, command: Command, text: str) -> str | None:
        if command is Command.START:
            return MESSAGE_DEFAULT
        if command is Command.CAPTURE:
            return None
        if command is Command.STATUS:
            return self._status_text()
        if command is Command.HELP:
            return help_reply()
        return unknown_command_reply(text)
