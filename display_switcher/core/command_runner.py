"""
Command Runner - runs external commands without blocking the event loop.

Every failure mode (missing binary, non-zero exit, timeout) is folded into a
``CommandResult`` with ``ok=False``; nothing raises to the caller except task
cancellation. Retries are the caller's business.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .asyncio_utils import create_logged_task
from .logging_utils import get_module_logger

MIN_TIMEOUT_MS = 100
TIMEOUT_MESSAGE = "timeout"


@dataclass
class CommandResult:
    """Outcome of a single external command."""
    ok: bool
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None
    duration_ms: float = 0.0

    @property
    def timed_out(self) -> bool:
        return not self.ok and self.stderr == TIMEOUT_MESSAGE


def clamp_timeout_ms(timeout_ms: int) -> int:
    """Clamp a timeout so a typo can't abort every command instantly."""
    try:
        value = int(timeout_ms)
    except (TypeError, ValueError):
        return MIN_TIMEOUT_MS
    return max(MIN_TIMEOUT_MS, value)


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class CommandRunner:
    """Runs argv lists as asyncio subprocesses with an enforced timeout."""

    def __init__(self):
        self.logger = get_module_logger("CommandRunner")
        self._spawned: set[asyncio.Task[Any]] = set()

    async def run(self, argv: Sequence[str], timeout_ms: int) -> CommandResult:
        if not argv:
            return CommandResult(ok=False, stderr="empty command")

        timeout_s = clamp_timeout_ms(timeout_ms) / 1000.0
        started = time.monotonic()
        self.logger.debug("Running: %s (timeout %.1fs)", " ".join(argv), timeout_s)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            self.logger.warning("Failed to start %s: %s", argv[0] if argv else "<empty>", e)
            return CommandResult(ok=False, stderr=str(e), duration_ms=self._elapsed(started))

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_s)
        except asyncio.TimeoutError:
            self.logger.warning("Command timed out after %.1fs: %s", timeout_s, " ".join(argv))
            await self._kill(process)
            return CommandResult(
                ok=False,
                stderr=TIMEOUT_MESSAGE,
                duration_ms=self._elapsed(started),
            )
        except asyncio.CancelledError:
            await self._kill(process)
            raise
        except Exception as e:
            self.logger.error("Command %s failed: %s", " ".join(argv), e)
            await self._kill(process)
            return CommandResult(ok=False, stderr=str(e), duration_ms=self._elapsed(started))

        result = CommandResult(
            ok=process.returncode == 0,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            returncode=process.returncode,
            duration_ms=self._elapsed(started),
        )
        if not result.ok:
            self.logger.debug(
                "Command exited with %s: %s | %s",
                process.returncode, " ".join(argv), result.stderr.strip(),
            )
        return result

    def spawn(self, argv: Sequence[str], timeout_ms: int, context: Optional[str] = None) -> asyncio.Task[Any]:
        """Fire-and-forget ``run``; the task is tracked until it finishes."""
        label = context or " ".join(argv)

        async def _run_and_log() -> CommandResult:
            result = await self.run(argv, timeout_ms)
            if result.ok:
                self.logger.debug("%s finished in %.0fms", label, result.duration_ms)
            else:
                self.logger.warning("%s failed: %s", label, result.stderr.strip() or result.returncode)
            return result

        return create_logged_task(
            _run_and_log(),
            logger=self.logger,
            context=label,
            pending=self._spawned,
        )

    @property
    def pending_count(self) -> int:
        return len(self._spawned)

    async def drain(self) -> None:
        """Wait for every spawned command to settle."""
        while self._spawned:
            await asyncio.gather(*list(self._spawned), return_exceptions=True)

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        try:
            await process.wait()
        except Exception as e:  # pragma: no cover - best effort reap
            self.logger.debug("Failed to reap killed process: %s", e)

    @staticmethod
    def _elapsed(started: float) -> float:
        return (time.monotonic() - started) * 1000


__all__ = ["CommandResult", "CommandRunner", "MIN_TIMEOUT_MS", "TIMEOUT_MESSAGE", "clamp_timeout_ms"]
