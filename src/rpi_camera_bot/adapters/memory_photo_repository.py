"""In-process photo repository used when no database is configured."""

from dataclasses import dataclass, field
from datetime import datetime

from rpi_camera_bot.domain.photos import Photo
from rpi_camera_bot.services.photos import PhotoRepository


@dataclass
class InMemoryPhotoRepository(PhotoRepository):
    """Keeps photo rows in insertion order for the life of the process."""

    rows: list[Photo] = field(default_factory=list)

    def save_photo(
        self,
        user_name: str,
        file_reference: str,
        caption: str,
        captured_at: datetime,
    ) -> Photo:
        """Append a photo row and return it."""
        photo = Photo(
            user_name=user_name,
            file_reference=file_reference,
            caption=caption,
            captured_at=captured_at,
        )
        self.rows.append(photo)
        return photo

    def list_photos(self, user_name: str, limit: int) -> list[Photo]:
        """Return the user's most recent photos, newest first."""
        matches = [
            photo for photo in reversed(self.rows) if photo.user_name == user_name
        ]
        return matches[:limit]
