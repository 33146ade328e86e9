"""
Identity resolution for probed monitors.

Serial-based keys survive re-enumeration; model+id keys are only as stable as
the bus index ddcutil hands out, which can change across reboots or hot-plug.
"""

from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Sequence

from .models import MonitorDescriptor, decorate_label, identity_key


def resolve(descriptors: Sequence[MonitorDescriptor]) -> List[MonitorDescriptor]:
    """Attach identity keys and disambiguated labels.

    Monitors sharing a display label get `` (k)`` appended in id order.
    The returned list keeps the input order.
    """
    groups: Dict[str, List[MonitorDescriptor]] = defaultdict(list)
    for descriptor in descriptors:
        groups[descriptor.display_label].append(descriptor)

    label_by_id: Dict[int, str] = {}
    for label, members in groups.items():
        if len(members) == 1:
            label_by_id[members[0].id] = label
            continue
        for ordinal, member in enumerate(sorted(members, key=lambda d: d.id), start=1):
            label_by_id[member.id] = f"{label} ({ordinal})"

    resolved = []
    for descriptor in descriptors:
        base = label_by_id[descriptor.id]
        resolved.append(replace(
            descriptor,
            identity_key=identity_key(descriptor.id, descriptor.model, descriptor.serial),
            label_base=base,
            label=base,
        ))
    return resolved


__all__ = ["decorate_label", "identity_key", "resolve"]
