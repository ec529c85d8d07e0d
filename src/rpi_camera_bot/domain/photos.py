"""Domain models for delivered photos."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Photo:
    """A delivered capture, referenced by its Telegram file id."""

    user_name: str
    file_reference: str
    caption: str
    captured_at: datetime
