"""Unit tests for InputStateTracker."""

import asyncio

import pytest

from display_switcher.core.identity import resolve
from display_switcher.core.input_state import InputSource, InputStateTracker
from display_switcher.core.models import MonitorDescriptor, MonitorRecord
from tests.infrastructure.mocks.command_mocks import Gate, failed, ok, query_output, settle, timed_out

KEY = "sn:ABC123"


@pytest.fixture
def tracker(runner, commands, adapter, clock):
    return InputStateTracker(runner, commands, adapter, query_timeout_ms=3000, clock=clock)


async def _seed(adapter):
    """Persist one record for display 1 (serial ABC123)."""
    await adapter.merge_and_persist(resolve([MonitorDescriptor(id=1, model="DELL U2719D", serial="ABC123")]))


class TestHydrate:

    def test_persisted_last_input_seeds_state(self, tracker):
        tracker.hydrate([MonitorRecord(id=1, serial="ABC123", last_input="0x11")])

        state = tracker.state(KEY)
        assert state.code == "0x11"
        assert state.source is InputSource.PERSISTED
        assert tracker.label(KEY) == "HDMI-1"

    def test_empty_last_input_stays_unknown(self, tracker):
        tracker.hydrate([MonitorRecord(id=1, serial="ABC123")])

        assert tracker.current(KEY) is None
        assert tracker.label(KEY) == "Unknown"

    @pytest.mark.asyncio
    async def test_hydrate_does_not_override_known_state(self, tracker):
        await tracker.set_optimistic(KEY, "0x0f")

        tracker.hydrate([MonitorRecord(id=1, serial="ABC123", last_input="0x11")])

        assert tracker.current(KEY) == "0x0f"


class TestOptimistic:

    @pytest.mark.asyncio
    async def test_optimistic_update_is_persisted(self, tracker, adapter):
        await _seed(adapter)

        state = await tracker.set_optimistic(KEY, "17")

        assert state.code == "0x11"
        assert state.source is InputSource.OPTIMISTIC
        [record] = await adapter.load_records()
        assert record.last_input == "0x11"

    @pytest.mark.asyncio
    async def test_invalid_code_ignored(self, tracker):
        assert await tracker.set_optimistic(KEY, "hdmi") is None
        assert tracker.current(KEY) is None

    @pytest.mark.asyncio
    async def test_unknown_monitor_tracked_in_memory(self, tracker, adapter):
        await tracker.set_optimistic("sn:NEW", "0x1b")

        assert tracker.current("sn:NEW") == "0x1b"
        assert await adapter.load_records() == []


class TestQuery:

    @pytest.mark.asyncio
    async def test_authoritative_reading(self, tracker, runner, commands, adapter):
        await _seed(adapter)
        runner.script(commands.get_input(1), ok(query_output("0x0f")))

        assert await tracker.query(KEY, 1) == "0x0f"

        assert tracker.state(KEY).source is InputSource.AUTHORITATIVE
        assert runner.calls == [(commands.get_input(1), 3000)]
        [record] = await adapter.load_records()
        assert record.last_input == "0x0f"

    @pytest.mark.asyncio
    async def test_explicit_timeout_used(self, tracker, runner, commands):
        runner.script(commands.get_input(1), ok(query_output("0x11")))

        await tracker.query(KEY, 1, timeout_ms=750)

        assert runner.calls[0][1] == 750

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [failed(), timed_out(), ok("garbage"), ok(query_output("0x01"))])
    async def test_bad_reading_keeps_known_value(self, tracker, runner, commands, adapter, response):
        tracker.hydrate([MonitorRecord(id=1, serial="ABC123", last_input="0x11")])
        runner.script(commands.get_input(1), response)

        assert await tracker.query(KEY, 1) == "0x11"

        assert tracker.current(KEY) == "0x11"
        assert tracker.state(KEY).source is InputSource.PERSISTED

    @pytest.mark.asyncio
    async def test_failure_with_nothing_known(self, tracker, runner, commands):
        runner.script(commands.get_input(1), failed())

        assert await tracker.query(KEY, 1) is None
        assert tracker.label(KEY) == "Unknown"

    @pytest.mark.asyncio
    async def test_concurrent_queries_coalesce(self, tracker, runner, commands):
        gate = Gate(ok(query_output("0x11")))
        runner.script(commands.get_input(1), gate)

        first = asyncio.create_task(tracker.query(KEY, 1))
        await gate.started.wait()
        second = asyncio.create_task(tracker.query(KEY, 1))
        await settle()

        assert tracker.is_querying(KEY)
        assert runner.count(commands.get_input(1)) == 1

        gate.release()
        assert await asyncio.gather(first, second) == ["0x11", "0x11"]
        assert runner.count(commands.get_input(1)) == 1

    @pytest.mark.asyncio
    async def test_new_query_after_previous_completes(self, tracker, runner, commands):
        runner.script(commands.get_input(1), ok(query_output("0x11")))

        await tracker.query(KEY, 1)
        await tracker.query(KEY, 1)

        assert not tracker.is_querying(KEY)
        assert runner.count(commands.get_input(1)) == 2

    @pytest.mark.asyncio
    async def test_in_flight_cleared_after_failure(self, tracker, runner, commands):
        runner.script(commands.get_input(1), failed())

        await tracker.query(KEY, 1)

        assert not tracker.is_querying(KEY)

    @pytest.mark.asyncio
    async def test_reading_older_than_switch_discarded(self, tracker, runner, commands, clock):
        gate = Gate(ok(query_output("0x11")))
        runner.script(commands.get_input(1), gate)

        pending = asyncio.create_task(tracker.query(KEY, 1))
        await gate.started.wait()
        clock.advance(0.5)
        await tracker.set_optimistic(KEY, "0x0f")
        gate.release()

        assert await pending == "0x0f"
        assert tracker.state(KEY).source is InputSource.OPTIMISTIC

    @pytest.mark.asyncio
    async def test_reading_after_switch_applies(self, tracker, runner, commands, clock):
        await tracker.set_optimistic(KEY, "0x0f")
        clock.advance(0.5)
        runner.script(commands.get_input(1), ok(query_output("0x11")))

        assert await tracker.query(KEY, 1) == "0x11"
        assert tracker.state(KEY).source is InputSource.AUTHORITATIVE

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_query(self, tracker, runner, commands):
        gate = Gate(ok(query_output("0x1b")))
        runner.script(commands.get_input(1), gate)

        impatient = asyncio.create_task(tracker.query(KEY, 1))
        await gate.started.wait()
        patient = asyncio.create_task(tracker.query(KEY, 1))
        await settle()

        impatient.cancel()
        await settle()
        gate.release()

        assert await patient == "0x1b"
        assert tracker.current(KEY) == "0x1b"
