"""
Switch Orchestrator - validates and issues input switch commands.

ddcutil gives no confirmation that the panel actually changed input, so a
switch is fire-and-forget: the command is spawned, the tracker is updated
optimistically, and a later query reconciles the real state.
"""

from enum import Enum
from typing import Dict, Optional, Sequence

from .command_runner import CommandRunner
from .ddcutil import DdcutilCommands
from .input_codes import input_label, is_recognized, normalize_code
from .input_state import InputStateTracker
from .logging_utils import get_module_logger
from .models import MonitorRecord


class SwitchOutcome(Enum):
    SWITCHED = "switched"
    REJECTED = "rejected"            # not in the monitor's usable inputs
    INVALID_CODE = "invalid_code"
    UNKNOWN_MONITOR = "unknown_monitor"

    @property
    def issued(self) -> bool:
        return self is SwitchOutcome.SWITCHED


class SwitchOrchestrator:

    def __init__(
        self,
        runner: CommandRunner,
        commands: DdcutilCommands,
        tracker: InputStateTracker,
        switch_timeout_ms: int = 5000,
    ):
        self.logger = get_module_logger("SwitchOrchestrator")
        self._runner = runner
        self._commands = commands
        self._tracker = tracker
        self._switch_timeout_ms = switch_timeout_ms

    async def switch_input(self, monitor: Optional[MonitorRecord], code: str) -> SwitchOutcome:
        if monitor is None:
            return SwitchOutcome.UNKNOWN_MONITOR

        normalized = normalize_code(code)
        if normalized is None or not is_recognized(normalized):
            self.logger.info("Ignoring switch to unrecognized input %r", code)
            return SwitchOutcome.INVALID_CODE

        if not monitor.accepts(normalized):
            self.logger.info(
                "Switch of %s to %s rejected: not a usable input",
                monitor.label, input_label(normalized),
            )
            return SwitchOutcome.REJECTED

        self._runner.spawn(
            self._commands.set_input(normalized, monitor.id),
            self._switch_timeout_ms,
            context=f"setvcp {normalized} on display {monitor.id}",
        )
        await self._tracker.set_optimistic(monitor.identity_key, normalized)
        return SwitchOutcome.SWITCHED

    async def switch_all(self, monitors: Sequence[MonitorRecord], code: str) -> Dict[str, SwitchOutcome]:
        """Switch every known monitor; with none known, target ddcutil's default display."""
        if monitors:
            outcomes: Dict[str, SwitchOutcome] = {}
            for monitor in monitors:
                outcomes[monitor.identity_key] = await self.switch_input(monitor, code)
            return outcomes

        normalized = normalize_code(code)
        if normalized is None or not is_recognized(normalized):
            self.logger.info("Ignoring switch to unrecognized input %r", code)
            return {}

        self.logger.info("No known monitors, issuing untargeted switch to %s", input_label(normalized))
        self._runner.spawn(
            self._commands.set_input(normalized),
            self._switch_timeout_ms,
            context=f"setvcp {normalized}",
        )
        return {}


__all__ = ["SwitchOrchestrator", "SwitchOutcome"]
