"""sd process execution and optional admission control."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, NamedTuple

from sdcpp_server.server.errors import ServerError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

logger = logging.getLogger(__name__)


class ProcessResult(NamedTuple):
    returncode: int
    stderr: str


async def run_generator(binary: str, args: Sequence[str]) -> ProcessResult:
    """Run the sd executable to completion and capture its stderr.

    No timeout is applied: a hung process holds the request until it exits.
    If the awaiting task is cancelled, the child is killed and reaped first.

    Raises:
        ServerError: The process could not be spawned or exited non-zero
    """
    cmd = [binary, *args]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        # ValueError: NUL byte in an argument
        logger.warning("could not start sd binary %s: %s", binary, e)
        raise ServerError(f"Failed to execute sd command: {e}") from e

    logger.info("started sd pid=%d cmd=%s", proc.pid, cmd)
    try:
        _, stderr_bytes = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            logger.warning("request cancelled, killing sd pid=%d", proc.pid)
            proc.kill()
            await proc.wait()
        raise

    stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""
    returncode = proc.returncode or 0
    if returncode != 0:
        logger.warning("sd pid=%d exited with %d", proc.pid, returncode)
        raise ServerError(f"Image generation failed: {stderr}")

    logger.info("sd pid=%d finished", proc.pid)
    return ProcessResult(returncode, stderr)


class GenerationLimiter:
    """Caps simultaneous sd processes when a limit is configured.

    With ``limit=None`` every request runs immediately.
    """

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit
        self._sem = asyncio.Semaphore(limit) if limit is not None else None

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        if self._sem is None:
            yield
            return
        async with self._sem:
            yield
