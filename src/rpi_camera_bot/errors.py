"""Exception hierarchy for the camera bot."""


class RpiCameraBotError(Exception):
    """Base class for all camera bot errors."""


class CameraUnavailableError(RpiCameraBotError):
    """The still-capture binary is missing or not executable."""


class CaptureError(RpiCameraBotError):
    """A capture invocation failed."""


class CaptureProcessError(CaptureError):
    """The capture process failed to start or exited with an error."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class CaptureTimeoutError(CaptureError):
    """The capture process exceeded its deadline and was terminated."""


class CaptureKillError(CaptureTimeoutError):
    """The capture process timed out and could not be terminated."""


class TelegramApiError(RpiCameraBotError):
    """Telegram answered a request with ok=false."""
