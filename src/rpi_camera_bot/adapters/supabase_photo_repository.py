"""Supabase-backed photo repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from rpi_camera_bot.domain.photos import Photo
from rpi_camera_bot.services.photos import PhotoRepository

_COLUMNS = "id, user_name, file_id, caption, captured_at"


@dataclass
class SupabasePhotoRepository(PhotoRepository):
    """Supabase implementation for delivered photo metadata."""

    client: Client

    def save_photo(
        self,
        user_name: str,
        file_reference: str,
        caption: str,
        captured_at: datetime,
    ) -> Photo:
        """Insert a photo row and return it."""
        response = (
            self.client.table("photos")
            .insert(
                {
                    "user_name": user_name,
                    "file_id": file_reference,
                    "caption": caption,
                    "captured_at": captured_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save photo metadata")
        return _to_photo(response.data[0])

    def list_photos(self, user_name: str, limit: int) -> list[Photo]:
        """Return the user's most recent photos, newest first."""
        response = (
            self.client.table("photos")
            .select(_COLUMNS)
            .eq("user_name", user_name)
            .order("id", desc=True)
            .limit(limit)
            .execute()
        )
        return [_to_photo(row) for row in response.data or []]


def _to_photo(row: dict[str, object]) -> Photo:
    return Photo(
        user_name=str(row["user_name"]),
        file_reference=str(row["file_id"]),
        caption=str(row.get("caption") or ""),
        captured_at=datetime.fromisoformat(str(row["captured_at"])),
    )
