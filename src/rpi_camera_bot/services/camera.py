"""Still-image capture through the external libcamera-still process."""

import asyncio
import contextlib
import logging
import os
from collections.abc import Iterable

from rpi_camera_bot.domain.capture import CameraParam
from rpi_camera_bot.errors import (
    CameraUnavailableError,
    CaptureKillError,
    CaptureProcessError,
    CaptureTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_CAPTURE_TIMEOUT_SECONDS = 10.0
DEFAULT_KILL_GRACE_SECONDS = 5.0


def build_capture_args(
    width: int, height: int, params: Iterable[CameraParam] = ()
) -> list[str]:
    """Build the argument list for a JPEG capture written to stdout."""
    args = [
        "--width",
        str(width),
        "--height",
        str(height),
        "--encoding",
        "jpg",
        "--output",
        "-",
    ]
    for param in params:
        args.extend(param.as_args())
    return args


class CameraInvoker:
    """Runs one capture process at a time under a hard deadline."""

    def __init__(
        self,
        binary_path: str,
        timeout_seconds: float = DEFAULT_CAPTURE_TIMEOUT_SECONDS,
        kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
    ) -> None:
        self.binary_path = binary_path
        self.timeout_seconds = timeout_seconds
        self.kill_grace_seconds = kill_grace_seconds
        self._lock = asyncio.Lock()

    @property
    def is_capturing(self) -> bool:
        """Return true while a capture process holds the camera."""
        return self._lock.locked()

    def ensure_available(self) -> None:
        """Raise when the capture binary cannot be executed."""
        if not os.path.isfile(self.binary_path):
            raise CameraUnavailableError(
                f"Camera binary not found: {self.binary_path}"
            )
        if not os.access(self.binary_path, os.X_OK):
            raise CameraUnavailableError(
                f"Camera binary is not executable: {self.binary_path}"
            )

    async def capture(
        self,
        width: int,
        height: int,
        params: Iterable[CameraParam] = (),
        timeout_seconds: float | None = None,
    ) -> bytes:
        """Capture a still image and return the encoded bytes."""
        args = build_capture_args(width, height, params)
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        async with self._lock:
            return await self._run(args, timeout)

    async def _run(self, args: list[str], timeout: float) -> bytes:
        logger.debug("Running %s %s", self.binary_path, " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CaptureProcessError(
                f"Error running {self.binary_path}: {exc}"
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except TimeoutError:
            await self._terminate(process)
            raise CaptureTimeoutError(
                f"Command timed out: {self.binary_path}"
            ) from None
        except asyncio.CancelledError:
            # Never leave the child holding the camera; a kill failure is
            # already logged at critical level.
            with contextlib.suppress(CaptureKillError):
                await self._terminate(process)
            raise

        if process.returncode != 0:
            diagnostic = stderr.decode(errors="replace").strip()
            message = (
                f"Error running {self.binary_path}: "
                f"exit status {process.returncode}"
            )
            if diagnostic:
                message = f"{message}: {diagnostic}"
            raise CaptureProcessError(message, returncode=process.returncode)
        return stdout

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            # Exited between the deadline and the kill.
            pass
        except OSError as exc:
            logger.critical(
                "Capture timed out and could not be killed",
                extra={"pid": process.pid},
            )
            raise CaptureKillError(
                f"Command timed out, but failed to kill process: {self.binary_path}"
            ) from exc

        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
        except TimeoutError:
            logger.critical(
                "Capture process still alive after kill",
                extra={"pid": process.pid},
            )
            raise CaptureKillError(
                f"Command timed out, but failed to kill process: {self.binary_path}"
            ) from None
