"""
Display Service - the interface the presentation layer talks to.

Usage:
    service = DisplayService.from_config(AppConfig.load())
    await service.rescan()
    await service.refresh_active_inputs()

    for monitor in service.list_monitors():
        print(monitor.label, service.current_input(monitor.identity_key))

    await service.switch_input("sn:ABC123", HDMI_1)
    await service.close()

State changes always go through the StateStoreAdapter; the in-memory monitor
list is refreshed from what the adapter returns.
"""

import asyncio
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .command_runner import CommandRunner
from .config_manager import AppConfig
from .ddcutil import DdcutilCommands
from .identity import resolve
from .input_codes import normalize_code
from .input_state import InputStateTracker
from .logging_utils import get_module_logger
from .models import MonitorRecord, Position
from .probe import MonitorProbe
from .settings_store import SettingsStore
from .state_store import StateStoreAdapter
from .switch_orchestrator import SwitchOrchestrator, SwitchOutcome


class DisplayService:
    """Facade over probing, persistence, input tracking and switching."""

    def __init__(
        self,
        runner: CommandRunner,
        commands: DdcutilCommands,
        adapter: StateStoreAdapter,
        detect_timeout_ms: int = 10000,
        query_timeout_ms: int = 3000,
        switch_timeout_ms: int = 5000,
    ):
        self.logger = get_module_logger("DisplayService")
        self._runner = runner
        self._adapter = adapter
        self._probe = MonitorProbe(runner, commands, timeout_ms=detect_timeout_ms)
        self._tracker = InputStateTracker(runner, commands, adapter, query_timeout_ms=query_timeout_ms)
        self._orchestrator = SwitchOrchestrator(runner, commands, self._tracker, switch_timeout_ms=switch_timeout_ms)

        self._monitors: Dict[str, MonitorRecord] = {}
        self._scanned = False

    @classmethod
    def from_config(cls, config: AppConfig, runner: Optional[CommandRunner] = None) -> "DisplayService":
        return cls(
            runner=runner or CommandRunner(),
            commands=DdcutilCommands(config.ddcutil_path, config.ddcutil_args),
            adapter=StateStoreAdapter(SettingsStore.open(config.settings_file)),
            detect_timeout_ms=config.detect_timeout_ms,
            query_timeout_ms=config.query_timeout_ms,
            switch_timeout_ms=config.switch_timeout_ms,
        )

    @property
    def tracker(self) -> InputStateTracker:
        return self._tracker

    @property
    def adapter(self) -> StateStoreAdapter:
        return self._adapter

    @property
    def scanned(self) -> bool:
        return self._scanned

    # =========================================================================
    # Queries
    # =========================================================================

    def list_monitors(self) -> List[MonitorRecord]:
        """Currently detected monitors, ordered by position then bus id."""
        return sorted(self._monitors.values(), key=lambda m: (m.position.rank, m.id))

    def get_monitor(self, identity_key: str) -> Optional[MonitorRecord]:
        return self._monitors.get(identity_key)

    def find_monitor(self, selector: str) -> Optional[MonitorRecord]:
        """Look a monitor up by identity key, bus id or label."""
        selector = selector.strip()
        if selector in self._monitors:
            return self._monitors[selector]

        monitors = self.list_monitors()
        if selector.isdigit():
            display_id = int(selector)
            for monitor in monitors:
                if monitor.id == display_id:
                    return monitor

        wanted = selector.casefold()
        for monitor in monitors:
            if wanted in (monitor.label.casefold(), monitor.label_base.casefold()):
                return monitor
        return None

    def current_input(self, identity_key: str) -> Optional[str]:
        return self._tracker.current(identity_key)

    async def stored_records(self) -> List[MonitorRecord]:
        return await self._adapter.load_records()

    # =========================================================================
    # Intents
    # =========================================================================

    async def rescan(self) -> List[MonitorRecord]:
        descriptors = resolve(await self._probe.detect())
        merged = await self._adapter.merge_and_persist(descriptors)
        current = merged[:len(descriptors)]

        self._monitors = {record.identity_key: record for record in current}
        self._tracker.hydrate(current)
        self._scanned = True
        return self.list_monitors()

    async def refresh_active_inputs(self) -> Dict[str, Optional[str]]:
        """Query every known monitor; completes when all queries settle."""
        monitors = self.list_monitors()
        if not monitors:
            return {}

        results = await asyncio.gather(
            *(self._tracker.query(m.identity_key, m.id) for m in monitors),
        )
        for monitor, code in zip(monitors, results):
            self._sync_last_input(monitor.identity_key, code)
        return {m.identity_key: code for m, code in zip(monitors, results)}

    async def switch_input(self, identity_key: str, code: str) -> SwitchOutcome:
        outcome = await self._orchestrator.switch_input(self._monitors.get(identity_key), code)
        if outcome.issued:
            self._sync_last_input(identity_key, self._tracker.current(identity_key))
        return outcome

    async def switch_all(self, code: str) -> Dict[str, SwitchOutcome]:
        outcomes = await self._orchestrator.switch_all(self.list_monitors(), code)
        for identity_key, outcome in outcomes.items():
            if outcome.issued:
                self._sync_last_input(identity_key, self._tracker.current(identity_key))
        return outcomes

    async def set_position(self, identity_key: str, position: Position) -> Optional[MonitorRecord]:
        updated = await self._adapter.update_position(identity_key, Position.parse(position))
        return self._adopt(identity_key, updated)

    async def set_usable_inputs(self, identity_key: str, codes: Iterable[str]) -> Optional[MonitorRecord]:
        normalized = [c for c in (normalize_code(code) for code in codes) if c is not None]
        updated = await self._adapter.update_usable_inputs(identity_key, normalized)
        return self._adopt(identity_key, updated)

    async def forget_stale(self) -> int:
        """Delete stored records for monitors not seen in the last scan."""
        if not self._monitors:
            self.logger.warning("Refusing to prune stored records without detected monitors")
            return 0
        return await self._adapter.prune(self._monitors.keys())

    async def close(self) -> None:
        await self._runner.drain()

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _adopt(self, identity_key: str, updated: Optional[MonitorRecord]) -> Optional[MonitorRecord]:
        if updated is None:
            return None
        existing = self._monitors.get(identity_key)
        if existing is None:
            return updated
        record = replace(updated, label_base=existing.label_base)
        self._monitors[identity_key] = record
        return record

    def _sync_last_input(self, identity_key: str, code: Optional[str]) -> None:
        existing = self._monitors.get(identity_key)
        if existing is not None and code:
            self._monitors[identity_key] = replace(existing, last_input=code)


__all__ = ["DisplayService"]
