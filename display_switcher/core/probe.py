"""Monitor discovery through ``ddcutil detect`` with a terse fallback."""

from typing import List

from .command_runner import CommandRunner
from .ddcutil import DdcutilCommands
from .logging_utils import get_module_logger
from .models import MonitorDescriptor
from .probe_parser import parse_detect, parse_terse


class MonitorProbe:
    """Runs the probe command and turns its output into descriptors.

    Any failure yields an empty list: no monitors is a normal answer,
    not an error.
    """

    def __init__(self, runner: CommandRunner, commands: DdcutilCommands, timeout_ms: int = 10000):
        self.logger = get_module_logger("MonitorProbe")
        self._runner = runner
        self._commands = commands
        self._timeout_ms = timeout_ms

    async def detect(self) -> List[MonitorDescriptor]:
        result = await self._runner.run(self._commands.detect(), self._timeout_ms)
        if not result.ok:
            self.logger.warning("Probe unavailable: %s", result.stderr.strip() or result.returncode)
            return []

        descriptors = parse_detect(result.stdout)
        if descriptors:
            self.logger.info("Detected %d monitor(s)", len(descriptors))
            return descriptors

        self.logger.warning("Verbose detect output had no displays, trying terse mode")
        result = await self._runner.run(self._commands.detect_terse(), self._timeout_ms)
        if not result.ok:
            self.logger.warning("Terse probe failed: %s", result.stderr.strip() or result.returncode)
            return []

        descriptors = parse_terse(result.stdout)
        if descriptors:
            self.logger.info("Detected %d monitor(s) in terse mode (no model/serial)", len(descriptors))
        else:
            self.logger.info("No monitors detected")
        return descriptors
