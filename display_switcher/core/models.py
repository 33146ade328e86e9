"""Monitor descriptors, persisted records and screen positions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from .input_codes import normalize_code


class Position(Enum):
    """Preferred screen position. ``rank`` drives sort order only."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    UNSET = "unset"

    @property
    def rank(self) -> int:
        return _POSITION_RANK[self]

    @property
    def suffix(self) -> str:
        if self is Position.UNSET:
            return ""
        return f" ({self.value.capitalize()})"

    def to_setting(self) -> str:
        """Stored form; unset is kept as an empty string."""
        return "" if self is Position.UNSET else self.value

    @classmethod
    def parse(cls, value: Any) -> "Position":
        if isinstance(value, Position):
            return value
        if not isinstance(value, str):
            return cls.UNSET
        text = value.strip().lower()
        if text == "centre":
            text = "center"
        for position in cls:
            if position.value == text:
                return position
        return cls.UNSET


_POSITION_RANK = {
    Position.LEFT: 0,
    Position.CENTER: 1,
    Position.RIGHT: 2,
    Position.UNSET: 3,
}


def identity_key(display_id: int, model: str = "", serial: str = "") -> str:
    """Stable key for a monitor: serial when known, else model plus bus id."""
    if serial:
        return f"sn:{serial}"
    return f"model:{model}|id:{display_id}"


def decorate_label(label_base: str, position: Any) -> str:
    """Append the position suffix; never store the result as a base label."""
    return label_base + Position.parse(position).suffix


def normalize_codes(values: Iterable[Any]) -> FrozenSet[str]:
    codes = set()
    for value in values:
        code = normalize_code(value)
        if code is not None:
            codes.add(code)
    return frozenset(codes)


@dataclass(frozen=True)
class MonitorDescriptor:
    """One display as reported by a single probe."""
    id: int
    model: str = ""
    serial: str = ""
    identity_key: str = ""
    label_base: str = ""
    label: str = ""

    @property
    def display_label(self) -> str:
        return self.model or f"Display {self.id}"


@dataclass(frozen=True)
class MonitorRecord:
    """Persisted preferences and last known state for one monitor."""
    id: int
    model: str = ""
    serial: str = ""
    position: Position = Position.UNSET
    last_input: str = ""
    usable_inputs: FrozenSet[str] = field(default_factory=frozenset)
    label_base: str = ""

    @property
    def identity_key(self) -> str:
        return identity_key(self.id, self.model, self.serial)

    @property
    def label(self) -> str:
        base = self.label_base or self.model or f"Display {self.id}"
        return decorate_label(base, self.position)

    def accepts(self, code: Optional[str]) -> bool:
        """An empty usable set allows every input."""
        normalized = normalize_code(code)
        if normalized is None:
            return False
        return not self.usable_inputs or normalized in self.usable_inputs

    def with_probe(self, descriptor: MonitorDescriptor) -> "MonitorRecord":
        """Take the probed id and label; blank probe fields keep the stored identity."""
        return replace(
            self,
            id=descriptor.id,
            model=descriptor.model or self.model,
            serial=descriptor.serial or self.serial,
            label_base=descriptor.label_base,
        )

    @classmethod
    def from_descriptor(cls, descriptor: MonitorDescriptor) -> "MonitorRecord":
        return cls(
            id=descriptor.id,
            model=descriptor.model,
            serial=descriptor.serial,
            label_base=descriptor.label_base,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MonitorRecord":
        """Build a record from a loosely-typed mapping.

        Raises:
            ValueError: if ``data`` has no usable positive integer ``id``.
        """
        if not isinstance(data, Mapping):
            raise ValueError("record is not an object")

        raw_id = data.get("id")
        if isinstance(raw_id, bool):
            raise ValueError("record id is not an integer")
        try:
            display_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValueError(f"record id is not an integer: {raw_id!r}") from None
        if display_id <= 0:
            raise ValueError(f"record id must be positive: {display_id}")

        usable = data.get("usableInputs")
        if not isinstance(usable, (list, tuple)):
            usable = []

        return cls(
            id=display_id,
            model=_as_text(data.get("model")),
            serial=_as_text(data.get("serial")),
            position=Position.parse(data.get("position")),
            last_input=normalize_code(data.get("lastInput")) or "",
            usable_inputs=normalize_codes(usable),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "model": self.model,
            "serial": self.serial,
            "position": self.position.to_setting(),
            "lastInput": self.last_input,
            "usableInputs": sorted(self.usable_inputs),
        }


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


__all__ = [
    "MonitorDescriptor",
    "MonitorRecord",
    "Position",
    "decorate_label",
    "identity_key",
    "normalize_codes",
]
