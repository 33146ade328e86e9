"""Parsers for ddcutil ``detect`` and ``getvcp`` output."""

import re
from typing import Dict, List, Optional

from .input_codes import normalize_code
from .models import MonitorDescriptor

_DISPLAY_RE = re.compile(r"^Display\s+(\d+)\b")
_INVALID_RE = re.compile(r"^Invalid display\b", re.IGNORECASE)
_MODEL_RE = re.compile(r"^Model:\s*(.*?)\s*$")
_SERIAL_RE = re.compile(r"^(?:Serial number|SN):\s*(.*?)\s*$")
_CURRENT_VALUE_RE = re.compile(r"current value\s*=\s*(0x[0-9a-fA-F]+|\d+)")
_SL_VALUE_RE = re.compile(r"\bsl\s*=\s*(0x[0-9a-fA-F]+|\d+)")


def parse_detect(text: str) -> List[MonitorDescriptor]:
    """Parse verbose ``ddcutil detect`` output into descriptors.

    A ``Display <N>`` line opens a block; the first ``Model:`` and
    ``Serial number:``/``SN:`` lines inside it win. A repeated display
    number keeps the first block so ids stay unique.
    """
    descriptors: List[MonitorDescriptor] = []
    seen: set[int] = set()
    current: Optional[Dict[str, object]] = None

    def flush() -> None:
        if current is None:
            return
        display_id = current["id"]
        if display_id in seen:
            return
        seen.add(display_id)
        descriptors.append(MonitorDescriptor(
            id=display_id,
            model=current["model"] or "",
            serial=current["serial"] or "",
        ))

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue

        match = _DISPLAY_RE.match(line)
        if match:
            flush()
            current = {"id": int(match.group(1)), "model": None, "serial": None}
            continue

        if _INVALID_RE.match(line):
            flush()
            current = None
            continue

        if current is None:
            continue

        match = _MODEL_RE.match(line)
        if match:
            if current["model"] is None:
                current["model"] = match.group(1)
            continue

        match = _SERIAL_RE.match(line)
        if match and current["serial"] is None:
            current["serial"] = match.group(1)

    flush()
    return [d for d in descriptors if d.id > 0]


def parse_terse(text: str) -> List[MonitorDescriptor]:
    """Parse ``ddcutil detect --terse`` output; only ids are kept."""
    descriptors: List[MonitorDescriptor] = []
    seen: set[int] = set()
    for raw_line in (text or "").splitlines():
        match = _DISPLAY_RE.match(raw_line.strip())
        if not match:
            continue
        display_id = int(match.group(1))
        if display_id <= 0 or display_id in seen:
            continue
        seen.add(display_id)
        descriptors.append(MonitorDescriptor(id=display_id))
    return descriptors


def parse_query_value(text: str) -> Optional[str]:
    """Extract the active input from ``getvcp 60`` output.

    Prefers ``current value = <v>`` and falls back to ``sl = <v>``; the
    value may be decimal or ``0x`` hex and is returned in canonical form.
    """
    if not text:
        return None
    match = _CURRENT_VALUE_RE.search(text) or _SL_VALUE_RE.search(text)
    if not match:
        return None
    return normalize_code(match.group(1))


__all__ = ["parse_detect", "parse_query_value", "parse_terse"]
