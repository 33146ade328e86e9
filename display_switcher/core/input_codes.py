"""Input source codes for VCP feature 0x60 and their canonical form."""

import re
from typing import Dict, Optional, Union

VCP_INPUT_SOURCE = "60"

DISPLAYPORT_1 = "0x0f"
DISPLAYPORT_2 = "0x10"
HDMI_1 = "0x11"
HDMI_2 = "0x12"
USB_C = "0x1b"

INPUT_LABELS: Dict[str, str] = {
    DISPLAYPORT_1: "DisplayPort-1",
    DISPLAYPORT_2: "DisplayPort-2",
    HDMI_1: "HDMI-1",
    HDMI_2: "HDMI-2",
    USB_C: "USB-C",
}

# Inputs offered in menus, in display order
MENU_INPUTS = (HDMI_1, DISPLAYPORT_1, USB_C)

UNKNOWN_LABEL = "Unknown"

_ALIASES: Dict[str, str] = {
    "hdmi": HDMI_1,
    "hdmi1": HDMI_1,
    "hdmi2": HDMI_2,
    "dp": DISPLAYPORT_1,
    "dp1": DISPLAYPORT_1,
    "dp2": DISPLAYPORT_2,
    "displayport": DISPLAYPORT_1,
    "displayport1": DISPLAYPORT_1,
    "displayport2": DISPLAYPORT_2,
    "usbc": USB_C,
    "typec": USB_C,
}

_DECIMAL_RE = re.compile(r"^\d+$")
_HEX_RE = re.compile(r"^0x([0-9a-f]+)$")


def normalize_code(value: Union[str, int, None]) -> Optional[str]:
    """Return the canonical ``0x..`` form of an input code, or None.

    Plain digits are decimal, ``0x`` prefixed values are hex. Anything that
    does not fit in a byte is rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip().lower()
        if _DECIMAL_RE.match(text):
            number = int(text, 10)
        else:
            match = _HEX_RE.match(text)
            if not match:
                return None
            number = int(match.group(1), 16)

    if not 0 <= number <= 0xFF:
        return None
    return f"0x{number:02x}"


def is_recognized(value: Union[str, int, None]) -> bool:
    code = normalize_code(value)
    return code is not None and code in INPUT_LABELS


def input_label(code: Optional[str]) -> str:
    if not code:
        return UNKNOWN_LABEL
    normalized = normalize_code(code)
    if normalized is None:
        return UNKNOWN_LABEL
    return INPUT_LABELS.get(normalized, normalized)


def parse_input_arg(text: str) -> Optional[str]:
    """Resolve a user-typed input (code, label or short alias) to a code."""
    code = normalize_code(text)
    if code is not None:
        return code

    key = re.sub(r"[\s_\-]", "", text.strip().lower())
    if key in _ALIASES:
        return _ALIASES[key]
    for candidate, label in INPUT_LABELS.items():
        if re.sub(r"[\s_\-]", "", label.lower()) == key:
            return candidate
    return None


__all__ = [
    "DISPLAYPORT_1",
    "DISPLAYPORT_2",
    "HDMI_1",
    "HDMI_2",
    "USB_C",
    "INPUT_LABELS",
    "MENU_INPUTS",
    "UNKNOWN_LABEL",
    "VCP_INPUT_SOURCE",
    "input_label",
    "is_recognized",
    "normalize_code",
    "parse_input_arg",
]
