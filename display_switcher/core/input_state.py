"""
Input State Tracker - what input the UI believes each monitor is showing.

Three sources feed the state, in increasing authority:
1. Persisted ``lastInput`` hydrated at start-up
2. Optimistic updates written the instant a switch command is issued
3. Authoritative readings from ``getvcp 60``

A failed or timed-out query never clears a known value; a monitor behind a
KVM may simply not answer for a while. Queries are coalesced per monitor so
only one ``getvcp`` runs for a given identity at a time.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional

from .asyncio_utils import create_logged_task
from .command_runner import CommandRunner
from .ddcutil import DdcutilCommands
from .input_codes import input_label, is_recognized, normalize_code
from .logging_utils import get_module_logger
from .models import MonitorRecord
from .probe_parser import parse_query_value
from .state_store import StateStoreAdapter


class InputSource(Enum):
    PERSISTED = "persisted"
    OPTIMISTIC = "optimistic"
    AUTHORITATIVE = "authoritative"


@dataclass(frozen=True)
class InputState:
    code: str
    source: InputSource
    updated_at: float


class InputStateTracker:
    """In-memory authority for the current input of each monitor."""

    def __init__(
        self,
        runner: CommandRunner,
        commands: DdcutilCommands,
        adapter: StateStoreAdapter,
        query_timeout_ms: int = 3000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.logger = get_module_logger("InputStateTracker")
        self._runner = runner
        self._commands = commands
        self._adapter = adapter
        self._query_timeout_ms = query_timeout_ms
        self._clock = clock

        self._states: Dict[str, InputState] = {}
        self._optimistic_at: Dict[str, float] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}

    # =========================================================================
    # Reads
    # =========================================================================

    def current(self, identity_key: str) -> Optional[str]:
        state = self._states.get(identity_key)
        return state.code if state else None

    def state(self, identity_key: str) -> Optional[InputState]:
        return self._states.get(identity_key)

    def label(self, identity_key: str) -> str:
        return input_label(self.current(identity_key))

    def snapshot(self) -> Dict[str, InputState]:
        return dict(self._states)

    def is_querying(self, identity_key: str) -> bool:
        task = self._in_flight.get(identity_key)
        return task is not None and not task.done()

    # =========================================================================
    # Updates
    # =========================================================================

    def hydrate(self, records: Iterable[MonitorRecord]) -> None:
        """Seed state from persisted ``lastInput`` where nothing is known yet."""
        now = self._clock()
        for record in records:
            if record.last_input and record.identity_key not in self._states:
                self._states[record.identity_key] = InputState(
                    code=record.last_input,
                    source=InputSource.PERSISTED,
                    updated_at=now,
                )

    async def set_optimistic(self, identity_key: str, code: str) -> Optional[InputState]:
        normalized = normalize_code(code)
        if normalized is None:
            self.logger.debug("Ignoring optimistic update with invalid code %r", code)
            return None

        now = self._clock()
        state = InputState(code=normalized, source=InputSource.OPTIMISTIC, updated_at=now)
        self._states[identity_key] = state
        self._optimistic_at[identity_key] = now
        self.logger.info("%s -> %s (optimistic)", identity_key, input_label(normalized))

        await self._adapter.update_last_input(identity_key, normalized)
        return state

    async def query(
        self,
        identity_key: str,
        display_id: int,
        timeout_ms: Optional[int] = None,
    ) -> Optional[str]:
        """Query the device and return the best known input afterwards.

        Joins an in-flight query for the same monitor instead of starting
        another one.
        """
        task = self._in_flight.get(identity_key)
        if task is None or task.done():
            task = create_logged_task(
                self._run_query(identity_key, display_id, timeout_ms or self._query_timeout_ms),
                logger=self.logger,
                context=f"query {identity_key}",
            )
            self._in_flight[identity_key] = task
        else:
            self.logger.debug("Joining in-flight query for %s", identity_key)

        return await asyncio.shield(task)

    async def _run_query(self, identity_key: str, display_id: int, timeout_ms: int) -> Optional[str]:
        started = self._clock()
        try:
            result = await self._runner.run(self._commands.get_input(display_id), timeout_ms)
        finally:
            if self._in_flight.get(identity_key) is asyncio.current_task():
                del self._in_flight[identity_key]

        if not result.ok:
            self.logger.debug(
                "Query for %s failed (%s), keeping %s",
                identity_key, result.stderr.strip() or result.returncode, self.label(identity_key),
            )
            return self.current(identity_key)

        code = parse_query_value(result.stdout)
        if code is None or not is_recognized(code):
            self.logger.debug("Unrecognized query response for %s: %r", identity_key, code)
            return self.current(identity_key)

        if self._optimistic_at.get(identity_key, float("-inf")) > started:
            # A switch was issued while this query ran; its reading predates it.
            self.logger.debug("Discarding stale reading %s for %s", code, identity_key)
            return self.current(identity_key)

        self._states[identity_key] = InputState(
            code=code,
            source=InputSource.AUTHORITATIVE,
            updated_at=self._clock(),
        )
        self.logger.debug("%s reports %s", identity_key, input_label(code))
        await self._adapter.update_last_input(identity_key, code)
        return code


__all__ = ["InputSource", "InputState", "InputStateTracker"]
