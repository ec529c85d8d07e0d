"""Shared test fixtures."""

import logging
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from rpi_camera_bot.adapters.memory_photo_repository import InMemoryPhotoRepository
from rpi_camera_bot.adapters.telegram_client import TelegramBotClient
from rpi_camera_bot.api.telegram_models import TelegramUpdate
from rpi_camera_bot.config import Settings
from rpi_camera_bot.containers import AppContainer, build_dispatcher

FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes"

# Writes a JPEG-ish payload to stdout. "--slow" sleeps past any test
# timeout, "--fail" exits non-zero with a diagnostic on stderr, and
# "--exclusive" fails if another copy of the script is running.
CAMERA_SCRIPT = """
import os
import sys
import time

args = sys.argv[1:]
marker = os.path.join(os.path.dirname(os.path.abspath(__file__)), "running.marker")
if "--exclusive" in args:
    try:
        fd = os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        sys.stderr.write("camera busy")
        sys.exit(3)
    os.close(fd)
    time.sleep(0.1)
    os.remove(marker)
if "--slow" in args:
    time.sleep(30)
if "--fail" in args:
    sys.stderr.write("no cameras available")
    sys.exit(1)
sys.stdout.buffer.write(b"\\xff\\xd8\\xff\\xe0fake-jpeg-bytes")
"""


@dataclass
class FakeTelegramClient(TelegramBotClient):
    """Fake Telegram client that records outgoing calls."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    message_options: list[dict[str, object]] = field(default_factory=list)
    chat_actions: list[tuple[int, str]] = field(default_factory=list)
    photos: list[tuple[int, bytes, str | None]] = field(default_factory=list)
    inline_answers: list[tuple[str, list[dict[str, object]]]] = field(
        default_factory=list
    )
    commands: list[dict[str, str]] | None = None
    fail_send_photo: bool = False
    closed: bool = False

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: dict | None = None,
        parse_mode: str | None = None,
    ) -> None:
        self.messages.append((chat_id, text))
        self.message_options.append(
            {"reply_markup": reply_markup, "parse_mode": parse_mode}
        )

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        self.chat_actions.append((chat_id, action))

    async def send_photo(
        self,
        chat_id: int,
        photo: bytes,
        caption: str | None = None,
        reply_markup: dict | None = None,
        parse_mode: str | None = None,
    ) -> str:
        if self.fail_send_photo:
            raise RuntimeError("upload rejected")
        self.photos.append((chat_id, photo, caption))
        return f"file-{len(self.photos)}"

    async def answer_inline_query(
        self, inline_query_id: str, results: list[dict[str, object]]
    ) -> None:
        self.inline_answers.append((inline_query_id, results))

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def get_me(self) -> dict[str, object]:
        return {"id": 1, "is_bot": True, "username": "camera_bot"}

    async def delete_webhook(self, drop_pending_updates: bool = False) -> None:
        return None

    async def get_updates(
        self, offset: int | None = None, timeout: int = 0
    ) -> list[dict[str, object]]:
        return []

    async def close(self) -> None:
        self.closed = True


def write_camera_script(directory: Path) -> str:
    """Write an executable stand-in for libcamera-still and return its path."""
    path = directory / "fake-libcamera-still"
    path.write_text(f"#!{sys.executable}\n{CAMERA_SCRIPT}")
    path.chmod(0o755)
    return str(path)


def message_update(
    update_id: int,
    text: str | None,
    username: str | None = "alice",
    chat_id: int = 99,
) -> TelegramUpdate:
    """Build a message update as Telegram would deliver it."""
    sender: dict[str, object] = {"id": 1000 + chat_id, "is_bot": False}
    if username is not None:
        sender["username"] = username
    message: dict[str, object] = {
        "message_id": update_id,
        "date": 1700000000,
        "chat": {"id": chat_id, "type": "private"},
        "from": sender,
    }
    if text is not None:
        message["text"] = text
    return TelegramUpdate.model_validate({"update_id": update_id, "message": message})


def inline_query_update(update_id: int, username: str = "alice") -> TelegramUpdate:
    """Build an inline query update."""
    return TelegramUpdate.model_validate(
        {
            "update_id": update_id,
            "inline_query": {
                "id": f"iq-{update_id}",
                "from": {"id": 1, "is_bot": False, "username": username},
                "query": "",
                "offset": "",
            },
        }
    )


@pytest.fixture(autouse=True)
def _reset_app_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("rpi_camera_bot")
    logger.handlers.clear()
    logger.propagate = True


@pytest.fixture
def camera_binary(tmp_path: Path) -> str:
    return write_camera_script(tmp_path)


@pytest.fixture
def settings_factory(camera_binary: str) -> Callable[..., Settings]:
    def factory(**overrides: object) -> Settings:
        values: dict[str, object] = {
            "telegram_bot_token": "test-token",
            "telegram_allowed_usernames": "alice,bob",
            "libcamera_still_bin": camera_binary,
            "capture_timeout_seconds": 5.0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    return settings_factory()


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def photo_repository() -> InMemoryPhotoRepository:
    return InMemoryPhotoRepository()


@pytest.fixture
def container_factory(
    settings_factory: Callable[..., Settings],
    telegram_client: FakeTelegramClient,
    photo_repository: InMemoryPhotoRepository,
) -> Callable[..., AppContainer]:
    def factory(**overrides: object) -> AppContainer:
        resolved = settings_factory(**overrides)
        dispatcher, status_reporter = build_dispatcher(
            resolved, telegram_client, photo_repository
        )

        async def close_resources() -> None:
            await dispatcher.stop()
            await telegram_client.close()

        return AppContainer(
            settings=resolved,
            telegram_client=telegram_client,
            dispatcher=dispatcher,
            status_reporter=status_reporter,
            close_resources=close_resources,
        )

    return factory


@pytest.fixture
def container(container_factory: Callable[..., AppContainer]) -> AppContainer:
    return container_factory()
