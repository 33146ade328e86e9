"""Centralized path constants for display-switcher."""

from __future__ import annotations

import os
from pathlib import Path

# User-specific state (overridable so tests and sandboxes stay out of $HOME)
_USER_STATE_ENV = os.environ.get("DISPLAY_SWITCHER_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".display_switcher")

CONFIG_PATH = USER_STATE_DIR / "config.txt"
SETTINGS_FILE = USER_STATE_DIR / "settings.json"

LOGS_DIR = USER_STATE_DIR / "logs"
LOG_FILE = LOGS_DIR / "display_switcher.log"


__all__ = [
    'USER_STATE_DIR',
    'CONFIG_PATH',
    'SETTINGS_FILE',
    'LOGS_DIR',
    'LOG_FILE',
]
