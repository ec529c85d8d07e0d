"""Tests for the camera invoker."""

import asyncio
import time
from pathlib import Path

import pytest

from rpi_camera_bot.domain.capture import CameraParam
from rpi_camera_bot.errors import (
    CameraUnavailableError,
    CaptureKillError,
    CaptureProcessError,
    CaptureTimeoutError,
)
from rpi_camera_bot.services import camera as camera_module
from rpi_camera_bot.services.camera import CameraInvoker, build_capture_args
from tests.conftest import FAKE_JPEG


class _HungProcess:
    """Process stand-in whose output never arrives."""

    pid = 4242
    returncode = None

    def __init__(self, kill_error: Exception | None = None) -> None:
        self.kill_error = kill_error
        self.killed = False

    async def communicate(self) -> tuple[bytes, bytes]:
        await asyncio.sleep(3600)
        return b"", b""

    def kill(self) -> None:
        if self.kill_error is not None:
            raise self.kill_error
        self.killed = True

    async def wait(self) -> int:
        await asyncio.sleep(3600)
        return -9


def test_build_capture_args_renders_params_in_order() -> None:
    args = build_capture_args(
        1600,
        1200,
        [
            CameraParam(flag="--rotation", value="180"),
            CameraParam(flag="--hflip"),
            CameraParam(flag="--awb", value="auto"),
        ],
    )

    assert args == [
        "--width",
        "1600",
        "--height",
        "1200",
        "--encoding",
        "jpg",
        "--output",
        "-",
        "--rotation",
        "180",
        "--hflip",
        "--awb",
        "auto",
    ]


def test_capture_returns_stdout_bytes(camera_binary: str) -> None:
    invoker = CameraInvoker(camera_binary, timeout_seconds=5)

    image = asyncio.run(invoker.capture(1600, 1200))

    assert image == FAKE_JPEG
    assert not invoker.is_capturing


def test_capture_process_error_carries_diagnostic(camera_binary: str) -> None:
    invoker = CameraInvoker(camera_binary, timeout_seconds=5)

    with pytest.raises(CaptureProcessError) as excinfo:
        asyncio.run(invoker.capture(1600, 1200, [CameraParam(flag="--fail")]))

    assert excinfo.value.returncode == 1
    assert "no cameras available" in str(excinfo.value)
    assert not invoker.is_capturing


def test_capture_missing_binary_is_process_error(tmp_path: Path) -> None:
    invoker = CameraInvoker(str(tmp_path / "missing"), timeout_seconds=5)

    with pytest.raises(CaptureProcessError):
        asyncio.run(invoker.capture(1600, 1200))


def test_timeout_kills_process_and_camera_recovers(camera_binary: str) -> None:
    invoker = CameraInvoker(camera_binary, timeout_seconds=0.5)

    async def scenario() -> bytes:
        started = time.monotonic()
        with pytest.raises(CaptureTimeoutError) as excinfo:
            await invoker.capture(1600, 1200, [CameraParam(flag="--slow")])
        assert not isinstance(excinfo.value, CaptureKillError)
        assert time.monotonic() - started < 10
        assert not invoker.is_capturing
        return await invoker.capture(1600, 1200)

    assert asyncio.run(scenario()) == FAKE_JPEG


def test_per_call_timeout_overrides_default(camera_binary: str) -> None:
    invoker = CameraInvoker(camera_binary, timeout_seconds=60)

    with pytest.raises(CaptureTimeoutError):
        asyncio.run(
            invoker.capture(
                1600, 1200, [CameraParam(flag="--slow")], timeout_seconds=0.3
            )
        )


def test_only_one_capture_runs_at_a_time(camera_binary: str) -> None:
    invoker = CameraInvoker(camera_binary, timeout_seconds=10)
    exclusive = [CameraParam(flag="--exclusive")]

    async def scenario() -> list[bytes]:
        return await asyncio.gather(
            *(invoker.capture(1600, 1200, exclusive) for _ in range(4))
        )

    assert asyncio.run(scenario()) == [FAKE_JPEG] * 4


def test_unkillable_process_reports_kill_error(monkeypatch) -> None:
    process = _HungProcess(kill_error=PermissionError("operation not permitted"))

    async def fake_exec(*_args, **_kwargs) -> _HungProcess:
        return process

    monkeypatch.setattr(camera_module.asyncio, "create_subprocess_exec", fake_exec)
    invoker = CameraInvoker("/usr/bin/libcamera-still", timeout_seconds=0.1)

    with pytest.raises(CaptureKillError) as excinfo:
        asyncio.run(invoker.capture(1600, 1200))

    assert "failed to kill" in str(excinfo.value)
    assert not invoker.is_capturing


def test_process_surviving_kill_reports_kill_error(monkeypatch) -> None:
    process = _HungProcess()

    async def fake_exec(*_args, **_kwargs) -> _HungProcess:
        return process

    monkeypatch.setattr(camera_module.asyncio, "create_subprocess_exec", fake_exec)
    invoker = CameraInvoker(
        "/usr/bin/libcamera-still", timeout_seconds=0.1, kill_grace_seconds=0.1
    )

    with pytest.raises(CaptureKillError):
        asyncio.run(invoker.capture(1600, 1200))

    assert process.killed


def test_ensure_available(camera_binary: str, tmp_path: Path) -> None:
    CameraInvoker(camera_binary).ensure_available()

    with pytest.raises(CameraUnavailableError):
        CameraInvoker(str(tmp_path / "missing")).ensure_available()

    not_executable = tmp_path / "plain-file"
    not_executable.write_text("")
    not_executable.chmod(0o644)
    with pytest.raises(CameraUnavailableError):
        CameraInvoker(str(not_executable)).ensure_available()


def test_cancelled_capture_kills_process(camera_binary: str, monkeypatch) -> None:
    spawned: list[asyncio.subprocess.Process] = []
    spawn = asyncio.create_subprocess_exec

    async def recording_exec(*args, **kwargs) -> asyncio.subprocess.Process:
        process = await spawn(*args, **kwargs)
        spawned.append(process)
        return process

    monkeypatch.setattr(
        camera_module.asyncio, "create_subprocess_exec", recording_exec
    )
    invoker = CameraInvoker(camera_binary, timeout_seconds=30)

    async def scenario() -> bytes:
        task = asyncio.create_task(
            invoker.capture(1600, 1200, [CameraParam(flag="--slow")])
        )
        await asyncio.sleep(0.5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert spawned[0].returncode is not None
        assert not invoker.is_capturing
        return await invoker.capture(1600, 1200)

    assert asyncio.run(scenario()) == FAKE_JPEG
    assert len(spawned) == 2
