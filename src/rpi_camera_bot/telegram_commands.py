"""Telegram bot command configuration."""

from dataclasses import dataclass
from enum import Enum

from rpi_camera_bot.adapters.telegram_client import PARSE_MODE_MARKDOWN
from rpi_camera_bot.services.commands import Command


@dataclass(frozen=True)
class TelegramCommand:
    """Declarative bot command definition."""

    command: str
    description: str


class BotCommand(Enum):
    """Enum of bot commands shown in the Telegram menu."""

    START = TelegramCommand(Command.START.value, "Show the command keyboard")
    CAPTURE = TelegramCommand(Command.CAPTURE.value, "Capture a still image")
    STATUS = TelegramCommand(Command.STATUS.value, "Show this bot's status")
    HELP = TelegramCommand(Command.HELP.value, "Show the help message")


def telegram_commands() -> list[dict[str, str]]:
    """Return commands formatted for Telegram API."""
    return [
        {
            "command": entry.value.command.lstrip("/"),
            "description": entry.value.description,
        }
        for entry in BotCommand
    ]


def command_keyboard() -> dict[str, object]:
    """Build the reply keyboard offered with every reply."""
    return {
        "keyboard": [
            [{"text": Command.CAPTURE.value}],
            [{"text": Command.STATUS.value}, {"text": Command.HELP.value}],
        ],
        "resize_keyboard": True,
    }


def reply_options() -> dict[str, object]:
    """Options attached to bot replies: keyboard plus Markdown parsing."""
    return {"reply_markup": command_keyboard(), "parse_mode": PARSE_MODE_MARKDOWN}
