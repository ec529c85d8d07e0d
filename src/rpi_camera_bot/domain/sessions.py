"""Domain models for per-user sessions."""

from dataclasses import dataclass
from enum import Enum


class SessionStatus(Enum):
    """Conversation state of a session."""

    WAITING = "waiting"


@dataclass(frozen=True)
class Session:
    """Dedup and state record for one whitelisted user."""

    user_id: str
    status: SessionStatus = SessionStatus.WAITING
    last_update_id: int = -1
