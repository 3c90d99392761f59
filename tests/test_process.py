"""Tests for running the sd process and materializing its output."""

from __future__ import annotations

import asyncio
import base64
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from sdcpp_server.server.errors import ServerError
from sdcpp_server.server.materialize import materialize
from sdcpp_server.server.process import GenerationLimiter, ProcessResult, run_generator


def _py(code: str) -> list[str]:
    return ["-c", code]


class TestRunGenerator:
    def test_success(self) -> None:
        result = asyncio.run(run_generator(sys.executable, _py("import sys; print('out'); sys.stderr.write('warn')")))
        assert result == ProcessResult(0, "warn")

    def test_nonzero_exit_carries_stderr(self) -> None:
        code = "import sys; sys.stderr.write('CUDA out of memory\\nline two'); sys.exit(2)"
        with pytest.raises(ServerError) as exc_info:
            asyncio.run(run_generator(sys.executable, _py(code)))
        assert exc_info.value.message == "Image generation failed: CUDA out of memory\nline two"
        assert exc_info.value.status_code == 500

    def test_missing_binary(self, tmp_path: Path) -> None:
        with pytest.raises(ServerError, match="Failed to execute sd command"):
            asyncio.run(run_generator(str(tmp_path / "no-such-sd"), []))

    def test_arguments_are_not_shell_interpreted(self, tmp_path: Path) -> None:
        marker = tmp_path / "marker"
        code = "import sys; open(sys.argv[1], 'w').write(sys.argv[2])"
        asyncio.run(run_generator(sys.executable, [*_py(code), str(marker), "$(echo hi); `id`"]))
        assert marker.read_text() == "$(echo hi); `id`"

    def test_cancel_kills_process(self) -> None:
        spawned: list[asyncio.subprocess.Process] = []
        real_exec = asyncio.create_subprocess_exec

        async def recording_exec(*args, **kwargs):  # noqa: ANN002, ANN003, ANN202
            proc = await real_exec(*args, **kwargs)
            spawned.append(proc)
            return proc

        async def scenario() -> None:
            task = asyncio.create_task(run_generator(sys.executable, _py("import time; time.sleep(60)")))
            while not spawned:
                await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        with patch("asyncio.create_subprocess_exec", side_effect=recording_exec):
            asyncio.run(scenario())

        assert len(spawned) == 1
        assert spawned[0].returncode is not None


class TestGenerationLimiter:
    def test_unbounded(self) -> None:
        async def scenario() -> int:
            limiter = GenerationLimiter()
            active = 0
            peak = 0

            async def job() -> None:
                nonlocal active, peak
                async with limiter.slot():
                    active += 1
                    peak = max(peak, active)
                    await asyncio.sleep(0.01)
                    active -= 1

            await asyncio.gather(*(job() for _ in range(5)))
            return peak

        assert asyncio.run(scenario()) == 5

    def test_bounded(self) -> None:
        async def scenario() -> int:
            limiter = GenerationLimiter(2)
            active = 0
            peak = 0

            async def job() -> None:
                nonlocal active, peak
                async with limiter.slot():
                    active += 1
                    peak = max(peak, active)
                    await asyncio.sleep(0.01)
                    active -= 1

            await asyncio.gather(*(job() for _ in range(5)))
            return peak

        assert asyncio.run(scenario()) == 2


class TestMaterialize:
    def test_encodes_and_removes(self, tmp_path: Path) -> None:
        data = bytes(range(256)) * 3
        out = tmp_path / "sd_output_1.png"
        out.write_bytes(data)

        result = asyncio.run(materialize(out, 1700000000))

        assert result.created == 1700000000
        assert len(result.data) == 1
        assert base64.b64decode(result.data[0].b64_json) == data
        assert not out.exists()

    def test_standard_alphabet_with_padding(self, tmp_path: Path) -> None:
        out = tmp_path / "o.png"
        out.write_bytes(b"\xfb\xff")
        result = asyncio.run(materialize(out, 1))
        assert result.data[0].b64_json == "+/8="

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ServerError, match="Failed to read output image"):
            asyncio.run(materialize(tmp_path / "missing.png", 1))

    def test_cleanup_failure_is_swallowed(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        out = tmp_path / "o.png"
        out.write_bytes(b"png")
        with patch.object(Path, "unlink", side_effect=PermissionError("read-only")):
            result = asyncio.run(materialize(out, 1))
        assert base64.b64decode(result.data[0].b64_json) == b"png"
        assert "could not remove" in caplog.text
