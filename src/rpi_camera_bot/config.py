"""Application configuration."""

import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rpi_camera_bot.domain.capture import CameraParam

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

MIN_IMAGE_WIDTH = 400
MIN_IMAGE_HEIGHT = 300
DEFAULT_MONITOR_INTERVAL_SECONDS = 3
DEFAULT_MAINTENANCE_MESSAGE = "Service is in maintenance now."


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    telegram_allowed_usernames: str
    image_width: int = 1600
    image_height: int = 1200
    camera_params: list[CameraParam] = []
    capture_queue_size: int = 4
    capture_timeout_seconds: float = 10.0
    libcamera_still_bin: str = "/usr/bin/libcamera-still"
    is_in_maintenance: bool = False
    maintenance_message: str = DEFAULT_MAINTENANCE_MESSAGE
    monitor_interval_seconds: int = DEFAULT_MONITOR_INTERVAL_SECONDS
    latest_photos_limit: int = 20
    log_level: str = "INFO"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("telegram_allowed_usernames")
    @classmethod
    def _require_usernames(cls, value: str) -> str:
        if not parse_allowed_usernames(value):
            raise ValueError("at least one allowed username is required")
        return value

    @field_validator("image_width")
    @classmethod
    def _clamp_width(cls, value: int) -> int:
        return max(value, MIN_IMAGE_WIDTH)

    @field_validator("image_height")
    @classmethod
    def _clamp_height(cls, value: int) -> int:
        return max(value, MIN_IMAGE_HEIGHT)

    @field_validator("camera_params", mode="before")
    @classmethod
    def _normalize_camera_params(cls, value: object) -> object:
        return parse_camera_params(value)

    @field_validator("capture_queue_size")
    @classmethod
    def _check_queue_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("capture_queue_size must be at least 1")
        return value

    @field_validator("capture_timeout_seconds")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("capture_timeout_seconds must be positive")
        return value

    @field_validator("maintenance_message")
    @classmethod
    def _default_maintenance_message(cls, value: str) -> str:
        return value if value.strip() else DEFAULT_MAINTENANCE_MESSAGE

    @field_validator("monitor_interval_seconds")
    @classmethod
    def _default_monitor_interval(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_MONITOR_INTERVAL_SECONDS

    @property
    def allowed_usernames(self) -> frozenset[str]:
        """Whitelisted Telegram usernames."""
        return parse_allowed_usernames(self.telegram_allowed_usernames)

    @property
    def uses_supabase(self) -> bool:
        """Return true when Supabase credentials are configured."""
        return bool(self.supabase_url and self.supabase_service_key)


def parse_allowed_usernames(raw: str | None) -> frozenset[str]:
    """Parse allowed Telegram usernames from env."""
    if raw is None:
        return frozenset()
    names: set[str] = set()
    for chunk in raw.split(","):
        value = chunk.strip().lstrip("@")
        if value:
            names.add(value)
    return frozenset(names)


def parse_camera_params(raw: object) -> list[CameraParam]:
    """Normalize camera params into an ordered list of flag/value pairs.

    Accepts a mapping (``{"--rotation": 180, "--hflip": null}``), a list of
    ``[flag, value]`` pairs, or already-built ``CameraParam`` values.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, dict):
        pairs: list[object] = list(raw.items())
    elif isinstance(raw, list | tuple):
        pairs = list(raw)
    else:
        raise ValueError("camera_params must be a mapping or a list of pairs")

    params: list[CameraParam] = []
    for pair in pairs:
        if isinstance(pair, CameraParam):
            params.append(pair)
            continue
        if isinstance(pair, dict):
            params.append(CameraParam.model_validate(pair))
            continue
        if not isinstance(pair, list | tuple) or len(pair) not in {1, 2}:
            raise ValueError(f"invalid camera param entry: {pair!r}")
        flag = pair[0]
        value = pair[1] if len(pair) == 2 else None
        params.append(CameraParam(flag=flag, value=_render_value(value)))
    return params


def _render_value(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
