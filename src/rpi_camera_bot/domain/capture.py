"""Domain models for capture requests."""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, field_validator


class CameraParam(BaseModel):
    """Single command-line flag for the still-capture binary."""

    model_config = ConfigDict(frozen=True)

    flag: str
    value: str | None = None

    @field_validator("flag")
    @classmethod
    def _check_flag(cls, flag: str) -> str:
        if not flag.startswith("-") or flag.strip("-") == "":
            raise ValueError(f"camera flag must look like --name: {flag!r}")
        if any(char.isspace() for char in flag):
            raise ValueError(f"camera flag must not contain whitespace: {flag!r}")
        return flag

    def as_args(self) -> list[str]:
        """Render as process arguments; a missing value yields a bare flag."""
        if self.value is None:
            return [self.flag]
        return [self.flag, self.value]


@dataclass(frozen=True)
class CaptureRequest:
    """A queued unit of work: one capture and where to deliver it."""

    user_name: str
    chat_id: int
    image_width: int
    image_height: int
    camera_params: tuple[CameraParam, ...] = ()
    reply_options: dict[str, object] = field(default_factory=dict)
