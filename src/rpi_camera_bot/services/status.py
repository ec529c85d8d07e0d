"""Status report for the /status command."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import psutil

from rpi_camera_bot.services.camera import CameraInvoker
from rpi_camera_bot.services.capture_queue import CaptureQueue

_SECONDS_PER_HOUR = 60 * 60
_SECONDS_PER_DAY = 24 * _SECONDS_PER_HOUR


@dataclass
class StatusReporter:
    """Formats uptime, memory usage and camera queue depth."""

    queue: CaptureQueue
    camera: CameraInvoker
    launched_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def render(self) -> str:
        """Return the Markdown status text."""
        return "\n".join(
            [
                f"Uptime: {format_uptime(self.launched_at)}",
                f"Memory Usage: {format_memory_usage()}",
                f"Queue: *{self.queue.pending}*/*{self.queue.capacity}*"
                + (" (capturing)" if self.camera.is_capturing else ""),
            ]
        )

    def snapshot(self) -> dict[str, object]:
        """Return machine-readable status for the HTTP surface."""
        return {
            "uptime_seconds": int(
                (datetime.now(tz=UTC) - self.launched_at).total_seconds()
            ),
            "queue_pending": self.queue.pending,
            "queue_capacity": self.queue.capacity,
            "capturing": self.camera.is_capturing,
        }


def format_uptime(launched_at: datetime, now: datetime | None = None) -> str:
    """Format elapsed time since launch in whole days and hours."""
    current = now or datetime.now(tz=UTC)
    seconds = max(int((current - launched_at).total_seconds()), 0)
    days = seconds // _SECONDS_PER_DAY
    hours = (seconds % _SECONDS_PER_DAY) // _SECONDS_PER_HOUR
    return f"*{days}* day(s) *{hours}* hour(s)"


def format_memory_usage() -> str:
    """Format this process's resident and virtual memory in MB."""
    info = psutil.Process().memory_info()
    rss_mb = info.rss / 1024 / 1024
    vms_mb = info.vms / 1024 / 1024
    return f"RSS: *{rss_mb:.1f} MB*, VMS: *{vms_mb:.1f} MB*"
