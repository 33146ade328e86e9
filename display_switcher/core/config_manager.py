"""Reads ``config.txt`` style settings (``key = value`` lines).

Blank lines and ``#`` comments are skipped, a `` #`` after a value starts a
trailing comment, and matching quotes around a value are stripped.
"""

import asyncio
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import aiofiles

from .logging_utils import get_module_logger
from .paths import CONFIG_PATH, LOG_FILE, SETTINGS_FILE

_TRAILING_COMMENT_RE = re.compile(r"\s+#.*$")
_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


class ConfigManager:
    """Parses config files into plain string dicts with typed lookups."""

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")

    @staticmethod
    def parse_lines(lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}
        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            key, sep, value = line.partition('=')
            if not sep or not key.strip():
                continue
            value = _TRAILING_COMMENT_RE.sub("", value.strip())
            config[key.strip()] = _unquote(value)
        return config

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Blocking read; used while parsing arguments, before the loop runs."""
        try:
            text = Path(config_path).read_text(encoding='utf-8')
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error("Cannot read config %s: %s", config_path, e)
            return {}
        return self.parse_lines(text.splitlines())

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        if not await asyncio.to_thread(Path(config_path).is_file):
            return {}
        try:
            async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                text = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error("Cannot read config %s: %s", config_path, e)
            return {}
        return self.parse_lines(text.splitlines())

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        raw = config.get(key)
        if raw is None:
            return default
        value = raw.strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        self.logger.warning("%s = %r is not a boolean, using %s", key, raw, default)
        return default

    def get_int(self, config: Dict[str, str], key: str, default: int = 0) -> int:
        raw = config.get(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            self.logger.warning("%s = %r is not an integer, using %d", key, raw, default)
            return default

    def get_str(self, config: Dict[str, str], key: str, default: str = "") -> str:
        return config.get(key, default)


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager


def _split_args(value: str) -> List[str]:
    try:
        return shlex.split(value)
    except ValueError as e:
        _config_manager.logger.warning("Ignoring ddcutil_args %r: %s", value, e)
        return []


@dataclass
class AppConfig:
    """Typed view of the application settings."""

    ddcutil_path: str = "ddcutil"
    ddcutil_args: List[str] = field(default_factory=list)
    detect_timeout_ms: int = 10000
    query_timeout_ms: int = 3000
    switch_timeout_ms: int = 5000
    settings_file: Path = SETTINGS_FILE
    log_level: str = "info"
    log_file: Optional[Path] = LOG_FILE
    console_output: bool = False
    refresh_on_start: bool = True

    @classmethod
    def from_mapping(cls, config: Dict[str, str]) -> "AppConfig":
        cm = get_config_manager()
        defaults = cls()

        log_file_value = cm.get_str(config, 'log_file', default=str(defaults.log_file))
        settings_value = cm.get_str(config, 'settings_file', default='')

        return cls(
            ddcutil_path=cm.get_str(config, 'ddcutil_path', default=defaults.ddcutil_path) or defaults.ddcutil_path,
            ddcutil_args=_split_args(cm.get_str(config, 'ddcutil_args', default='')),
            detect_timeout_ms=cm.get_int(config, 'detect_timeout_ms', default=defaults.detect_timeout_ms),
            query_timeout_ms=cm.get_int(config, 'query_timeout_ms', default=defaults.query_timeout_ms),
            switch_timeout_ms=cm.get_int(config, 'switch_timeout_ms', default=defaults.switch_timeout_ms),
            settings_file=Path(settings_value).expanduser() if settings_value else defaults.settings_file,
            log_level=cm.get_str(config, 'log_level', default=defaults.log_level).lower(),
            log_file=Path(log_file_value).expanduser() if log_file_value else None,
            console_output=cm.get_bool(config, 'console_output', default=defaults.console_output),
            refresh_on_start=cm.get_bool(config, 'refresh_on_start', default=defaults.refresh_on_start),
        )

    @classmethod
    def load(cls, config_path: Path = CONFIG_PATH) -> "AppConfig":
        return cls.from_mapping(get_config_manager().read_config(config_path))


__all__ = ["AppConfig", "ConfigManager", "get_config_manager"]
