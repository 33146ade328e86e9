"""
State Store Adapter - the single writer of persisted monitor records.

Every mutation is a read-modify-write of the whole record list, serialized
by one lock so callers in this process never interleave mid-update. When no
settings store is available the records live in memory for the session only.
"""

import asyncio
import json
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .input_codes import normalize_code
from .logging_utils import get_module_logger
from .models import MonitorDescriptor, MonitorRecord, Position, normalize_codes
from .settings_store import MONITORS_KEY, POSITIONS_KEY, SettingsStore


def merge_records(
    descriptors: Sequence[MonitorDescriptor],
    previous: Sequence[MonitorRecord],
    legacy_positions: Optional[Mapping[str, Position]] = None,
) -> List[MonitorRecord]:
    """Merge fresh probe data into previously stored records.

    Returns the records for ``descriptors`` (in probe order) followed by the
    previous records nothing matched. Matching prefers the serial, then the
    identity key, and only then the bus id: a serial-less record, or any
    record when the probe reported neither model nor serial.
    """
    legacy = legacy_positions or {}
    claimed: Set[int] = set()
    matches: Dict[int, int] = {}

    for d_index, descriptor in enumerate(descriptors):
        p_index = _find_exact(descriptor, previous, claimed)
        if p_index is not None:
            claimed.add(p_index)
            matches[d_index] = p_index

    for d_index, descriptor in enumerate(descriptors):
        if d_index in matches:
            continue
        p_index = _find_by_id(descriptor, previous, claimed)
        if p_index is not None:
            claimed.add(p_index)
            matches[d_index] = p_index

    current: List[MonitorRecord] = []
    for d_index, descriptor in enumerate(descriptors):
        if d_index in matches:
            record = previous[matches[d_index]].with_probe(descriptor)
        else:
            record = MonitorRecord.from_descriptor(descriptor)

        if record.position is Position.UNSET:
            fallback = legacy.get(record.identity_key, Position.UNSET)
            if fallback is not Position.UNSET:
                record = replace(record, position=fallback)
        current.append(record)

    seen_keys = {record.identity_key for record in current}
    stale: List[MonitorRecord] = []
    for p_index, record in enumerate(previous):
        if p_index in claimed or record.identity_key in seen_keys:
            continue
        seen_keys.add(record.identity_key)
        stale.append(record)

    return current + stale


def _find_exact(descriptor: MonitorDescriptor, previous: Sequence[MonitorRecord], claimed: Set[int]) -> Optional[int]:
    if descriptor.serial:
        for index, record in enumerate(previous):
            if index not in claimed and record.serial == descriptor.serial:
                return index
        return None

    key = descriptor.identity_key or MonitorRecord.from_descriptor(descriptor).identity_key
    for index, record in enumerate(previous):
        if index not in claimed and record.identity_key == key:
            return index
    return None


def _find_by_id(descriptor: MonitorDescriptor, previous: Sequence[MonitorRecord], claimed: Set[int]) -> Optional[int]:
    # A record with a serial belongs to that physical monitor. Only a bare
    # descriptor (terse probe, no EDID data) may re-bind it by bus id.
    bare = not descriptor.serial and not descriptor.model
    for index, record in enumerate(previous):
        if index in claimed or record.id != descriptor.id:
            continue
        if record.serial:
            if bare:
                return index
            continue
        if record.model and descriptor.model and record.model != descriptor.model:
            continue
        return index
    return None


class StateStoreAdapter:
    """Loads, merges and updates persisted MonitorRecords."""

    def __init__(self, store: Optional[SettingsStore]):
        self.logger = get_module_logger("StateStore")
        self._store = store
        self._lock = asyncio.Lock()
        self._session_records: List[MonitorRecord] = []
        self._session_positions: Dict[str, Position] = {}

        if store is None:
            self.logger.warning("Settings store unavailable - preferences will not survive restart")

    @property
    def available(self) -> bool:
        return self._store is not None

    # =========================================================================
    # Reads
    # =========================================================================

    async def load_records(self) -> List[MonitorRecord]:
        if self._store is None:
            return list(self._session_records)

        records: List[MonitorRecord] = []
        for raw in await self._store.get_strv(MONITORS_KEY):
            try:
                records.append(MonitorRecord.from_dict(json.loads(raw)))
            except (ValueError, TypeError) as e:
                # JSONDecodeError is a ValueError
                self.logger.debug("Skipping malformed record %r: %s", raw, e)
        return records

    async def load_legacy_positions(self) -> Dict[str, Position]:
        if self._store is None:
            return dict(self._session_positions)

        positions: Dict[str, Position] = {}
        for key, value in (await self._store.get_map(POSITIONS_KEY)).items():
            position = Position.parse(value)
            if position is not Position.UNSET:
                positions[key] = position
        return positions

    # =========================================================================
    # Writes
    # =========================================================================

    async def merge_and_persist(
        self,
        descriptors: Sequence[MonitorDescriptor],
        previous_records: Optional[Sequence[MonitorRecord]] = None,
    ) -> List[MonitorRecord]:
        async with self._lock:
            if previous_records is None:
                previous_records = await self.load_records()
            legacy = await self.load_legacy_positions()

            merged = merge_records(descriptors, previous_records, legacy)
            await self._save_records(merged)

        self.logger.info(
            "Merged %d probed monitor(s) with %d stored record(s)",
            len(descriptors), len(previous_records),
        )
        return merged

    async def update_last_input(self, identity_key: str, code: str) -> Optional[MonitorRecord]:
        normalized = normalize_code(code) or ""
        return await self._update(identity_key, lambda r: replace(r, last_input=normalized))

    async def update_position(self, identity_key: str, position: Position) -> Optional[MonitorRecord]:
        position = Position.parse(position)
        updated = await self._update(identity_key, lambda r: replace(r, position=position))
        if updated is not None:
            await self._mirror_legacy_position(identity_key, position)
        return updated

    async def update_usable_inputs(self, identity_key: str, codes: Iterable[str]) -> Optional[MonitorRecord]:
        usable = normalize_codes(codes)
        return await self._update(identity_key, lambda r: replace(r, usable_inputs=usable))

    async def forget(self, identity_key: str) -> bool:
        """Delete one record; records are never dropped implicitly."""
        removed = await self.prune(
            [r.identity_key for r in await self.load_records() if r.identity_key != identity_key]
        )
        return removed > 0

    async def prune(self, keep_keys: Iterable[str]) -> int:
        """Delete every record whose identity key is not in ``keep_keys``."""
        keep = set(keep_keys)
        async with self._lock:
            records = await self.load_records()
            kept = [r for r in records if r.identity_key in keep]
            removed = len(records) - len(kept)
            if removed:
                await self._save_records(kept)
        if removed:
            self.logger.info("Pruned %d stale record(s)", removed)
        return removed

    # =========================================================================
    # Internal helpers
    # =========================================================================

    async def _update(
        self,
        identity_key: str,
        change: Callable[[MonitorRecord], MonitorRecord],
    ) -> Optional[MonitorRecord]:
        async with self._lock:
            records = await self.load_records()
            for index, record in enumerate(records):
                if record.identity_key != identity_key:
                    continue
                updated = change(record)
                if updated != record:
                    records[index] = updated
                    await self._save_records(records)
                return updated

        self.logger.debug("No stored record for %s", identity_key)
        return None

    async def _save_records(self, records: Sequence[MonitorRecord]) -> bool:
        if self._store is None:
            self._session_records = list(records)
            return True

        payload = [json.dumps(record.to_dict(), sort_keys=True) for record in records]
        success = await self._store.set_strv(MONITORS_KEY, payload)
        if not success:
            self.logger.error("PERSIST FAILED: %d record(s)", len(records))
        return success

    async def _mirror_legacy_position(self, identity_key: str, position: Position) -> None:
        if self._store is None:
            if position is Position.UNSET:
                self._session_positions.pop(identity_key, None)
            else:
                self._session_positions[identity_key] = position
            return

        async with self._lock:
            mapping = await self._store.get_map(POSITIONS_KEY)
            if position is Position.UNSET:
                if identity_key not in mapping:
                    return
                mapping.pop(identity_key)
            else:
                mapping[identity_key] = position.value
            await self._store.set_map(POSITIONS_KEY, mapping)


__all__ = ["StateStoreAdapter", "merge_records"]
