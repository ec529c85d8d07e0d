"""Telegram API client adapter."""

import json
from dataclasses import dataclass
from typing import Protocol

import httpx

from rpi_camera_bot.api.telegram_models import TelegramPhotoSize, select_largest_photo
from rpi_camera_bot.errors import TelegramApiError

CHAT_ACTION_TYPING = "typing"
CHAT_ACTION_UPLOAD_PHOTO = "upload_photo"
PARSE_MODE_MARKDOWN = "Markdown"


class TelegramClient(Protocol):
    """Interface for Telegram API interactions."""

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: dict | None = None,
        parse_mode: str | None = None,
    ) -> None:
        """Send a text message to a Telegram chat."""

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        """Show a chat action such as "typing"."""

    async def send_photo(
        self,
        chat_id: int,
        photo: bytes,
        caption: str | None = None,
        reply_markup: dict | None = None,
        parse_mode: str | None = None,
    ) -> str:
        """Upload a photo and return the file id of its largest size."""

    async def answer_inline_query(
        self, inline_query_id: str, results: list[dict[str, object]]
    ) -> None:
        """Answer an inline query with prepared results."""

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""


class TelegramBotClient(TelegramClient, Protocol):
    """Telegram client that can also long-poll and release its connection."""

    async def get_me(self) -> dict[str, object]:
        """Return information about the bot account."""

    async def delete_webhook(self, drop_pending_updates: bool = False) -> None:
        """Remove any webhook so getUpdates can be used."""

    async def get_updates(
        self, offset: int | None = None, timeout: int = 0
    ) -> list[dict[str, object]]:
        """Long-poll for new updates starting at ``offset``."""

    async def close(self) -> None:
        """Release the underlying HTTP resources."""


@dataclass
class HttpxTelegramClient:
    """Telegram client implemented with httpx."""

    bot_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramClient":
        """Create a Telegram client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    def _url(self, method: str) -> str:
        return f"https://api.telegram.org/bot{self.bot_token}/{method}"

    async def _call(
        self, method: str, payload: dict[str, object], timeout: float = 10
    ) -> object:
        response = await self.http_client.post(
            self._url(method), json=payload, timeout=timeout
        )
        return _unwrap(response)

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: dict | None = None,
        parse_mode: str | None = None,
    ) -> None:
        """Send a message using Telegram's sendMessage API."""
        payload: dict[str, object] = {"chat_id": chat_id, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        if parse_mode is not None:
            payload["parse_mode"] = parse_mode
        await self._call("sendMessage", payload)

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        """Show a chat action using Telegram's sendChatAction API."""
        await self._call("sendChatAction", {"chat_id": chat_id, "action": action})

    async def send_photo(
        self,
        chat_id: int,
        photo: bytes,
        caption: str | None = None,
        reply_markup: dict | None = None,
        parse_mode: str | None = None,
    ) -> str:
        """Upload JPEG bytes with sendPhoto and return the largest file id."""
        data: dict[str, str] = {"chat_id": str(chat_id)}
        if caption is not None:
            data["caption"] = caption
        if reply_markup is not None:
            data["reply_markup"] = json.dumps(reply_markup)
        if parse_mode is not None:
            data["parse_mode"] = parse_mode
        response = await self.http_client.post(
            self._url("sendPhoto"),
            data=data,
            files={"photo": ("capture.jpg", photo, "image/jpeg")},
            timeout=60,
        )
        result = _unwrap(response)
        sizes = result.get("photo") if isinstance(result, dict) else None
        if not sizes:
            raise TelegramApiError("sendPhoto returned no photo sizes")
        photos = [TelegramPhotoSize.model_validate(size) for size in sizes]
        return select_largest_photo(photos).file_id

    async def answer_inline_query(
        self, inline_query_id: str, results: list[dict[str, object]]
    ) -> None:
        """Answer an inline query using Telegram's API."""
        await self._call(
            "answerInlineQuery",
            {"inline_query_id": inline_query_id, "results": results},
        )

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""
        await self._call("setMyCommands", {"commands": commands})

    async def get_me(self) -> dict[str, object]:
        """Return information about the bot account."""
        result = await self._call("getMe", {})
        return result if isinstance(result, dict) else {}

    async def delete_webhook(self, drop_pending_updates: bool = False) -> None:
        """Remove any webhook so getUpdates can be used."""
        await self._call(
            "deleteWebhook", {"drop_pending_updates": drop_pending_updates}
        )

    async def get_updates(
        self, offset: int | None = None, timeout: int = 0
    ) -> list[dict[str, object]]:
        """Long-poll for new updates starting at ``offset``."""
        payload: dict[str, object] = {"timeout": timeout}
        if offset is not None:
            payload["offset"] = offset
        result = await self._call("getUpdates", payload, timeout=timeout + 10)
        return result if isinstance(result, list) else []

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


def _unwrap(response: httpx.Response) -> object:
    """Return the ``result`` of a Telegram response or raise on failure."""
    response.raise_for_status()
    payload = response.json()
    if not payload.get("ok"):
        raise TelegramApiError(payload.get("description") or "Telegram request failed")
    return payload.get("result")
