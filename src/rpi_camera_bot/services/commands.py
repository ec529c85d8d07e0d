"""Command classification for inbound message text."""

from enum import Enum

from rpi_camera_bot.domain.sessions import SessionStatus

MESSAGE_DEFAULT = "Input your command:"
MESSAGE_UNKNOWN_COMMAND = "Unknown command."


class Command(Enum):
    """Actions a message can resolve to."""

    START = "/start"
    CAPTURE = "/capture"
    STATUS = "/status"
    HELP = "/help"
    UNKNOWN = "unknown"


# Priority order for prefix matching; first match wins.
PREFIX_ORDER: tuple[Command, ...] = (
    Command.START,
    Command.CAPTURE,
    Command.STATUS,
    Command.HELP,
)


def classify_command(status: SessionStatus, text: str) -> Command:
    """Map message text in the given session state to a command."""
    if status is SessionStatus.WAITING:
        for command in PREFIX_ORDER:
            if text.startswith(command.value):
                return command
    return Command.UNKNOWN


def unknown_command_reply(text: str) -> str:
    """Build the reply for text that matched no command."""
    if text:
        return f"*{text}*: {MESSAGE_UNKNOWN_COMMAND}"
    return MESSAGE_UNKNOWN_COMMAND


def help_reply() -> str:
    """Build the help message listing supported commands."""
    return (
        "Following commands are supported:\n"
        "\n"
        "*For Raspberry Pi Camera Module*\n"
        "\n"
        f"{Command.CAPTURE.value} : capture a still image with *libcamera-still*\n"
        "\n"
        "*Others*\n"
        "\n"
        f"{Command.STATUS.value} : show this bot's status\n"
        f"{Command.HELP.value} : show this help message\n"
        "\n"
        "Type the bot's name in any chat to share a recent capture.\n"
    )
