"""Scripted ddcutil responses for testing without monitors attached.

Provides a CommandRunner replacement that answers from a table, recorded
ddcutil output samples, and a manually advanced clock.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from display_switcher.core.command_runner import CommandResult, CommandRunner


DETECT_TWO_MONITORS = """\
Display 1
   I2C bus:  /dev/i2c-4
   DRM connector:           card0-DP-1
   EDID synopsis:
      Mfg id:               DEL - Dell Inc.
      Model:                DELL U2719D
      Product code:         41119  (0xa0a7)
      Serial number:        ABC123
      Binary serial number: 808661324 (0x3033314c)
      Manufacture year:     2019,  Week: 20
   VCP version:         2.1

Display 2
   I2C bus:  /dev/i2c-5
   DRM connector:           card0-HDMI-A-1
   EDID synopsis:
      Mfg id:               GSM - Goldstar Company Ltd (LG)
      Model:                Generic
      Product code:         23305  (0x5b09)
      Serial number:
   VCP version:         2.1
"""

TERSE_TWO_MONITORS = """\
Display 1
   I2C bus:             /dev/i2c-4
   Monitor:             DEL:DELL U2719D:ABC123

Display 2
   I2C bus:             /dev/i2c-5
   Monitor:             GSM:Generic:
"""


def detect_output(*blocks: Tuple[int, str, str]) -> str:
    """Build verbose detect output from (id, model, serial) tuples."""
    lines = []
    for display_id, model, serial in blocks:
        lines.append(f"Display {display_id}")
        lines.append(f"   I2C bus:  /dev/i2c-{display_id + 3}")
        lines.append("   EDID synopsis:")
        lines.append(f"      Model:                {model}")
        lines.append(f"      Serial number:        {serial}")
        lines.append("")
    return "\n".join(lines)


def query_output(value: str) -> str:
    return f"VCP code 0x60 (Input Source                  ): current value = {value}\n"


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(ok=True, stdout=stdout, returncode=0)


def failed(stderr: str = "error", returncode: Optional[int] = 1) -> CommandResult:
    return CommandResult(ok=False, stderr=stderr, returncode=returncode)


def timed_out() -> CommandResult:
    return CommandResult(ok=False, stderr="timeout")


Response = Union[CommandResult, Callable[[], Any]]


class ScriptedRunner(CommandRunner):
    """CommandRunner that answers from a table instead of spawning processes.

    Responses are keyed by the argv tuple. A response is either a
    CommandResult or an async callable returning one, which lets a test hold
    a command open. Unscripted commands fail like a missing binary.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, ...], Response]] = None):
        super().__init__()
        self.responses: Dict[Tuple[str, ...], Response] = dict(responses or {})
        self.calls: List[Tuple[List[str], int]] = []

    def script(self, argv: Sequence[str], response: Response) -> None:
        self.responses[tuple(argv)] = response

    def argvs(self) -> List[List[str]]:
        return [argv for argv, _ in self.calls]

    def count(self, argv: Sequence[str]) -> int:
        return sum(1 for called, _ in self.calls if called == list(argv))

    async def run(self, argv: Sequence[str], timeout_ms: int) -> CommandResult:
        self.calls.append((list(argv), timeout_ms))
        response = self.responses.get(tuple(argv))
        if response is None:
            return CommandResult(ok=False, stderr="not scripted")
        if callable(response):
            return await response()
        return response


class Gate:
    """Async response that stays pending until released."""

    def __init__(self, result: CommandResult):
        self.result = result
        self.started = asyncio.Event()
        self._release = asyncio.Event()

    def release(self, result: Optional[CommandResult] = None) -> None:
        if result is not None:
            self.result = result
        self._release.set()

    async def __call__(self) -> CommandResult:
        self.started.set()
        await self._release.wait()
        return self.result


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> float:
        self.now += seconds
        return self.now


async def settle() -> None:
    """Let scheduled tasks run a few loop iterations."""
    for _ in range(5):
        await asyncio.sleep(0)
