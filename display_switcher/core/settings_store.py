"""
Settings Store - JSON file backend for persisted monitor state.

Example content:
{
  "monitors": [
    "{\"id\": 1, \"model\": \"DELL U2719D\", \"serial\": \"ABC123\", ...}"
  ],
  "positions": {"sn:ABC123": "left"}
}

``monitors`` is a list of opaque strings (one serialized record each) and
``positions`` the legacy identity -> position map. Writes are atomic
(temp file + fsync + rename) and serialized by a lock.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import aiofiles

from .logging_utils import get_module_logger
from .paths import SETTINGS_FILE

logger = get_module_logger("SettingsStore")

MONITORS_KEY = "monitors"
POSITIONS_KEY = "positions"


class SettingsStore:
    """String-keyed settings persisted in a single JSON document."""

    def __init__(self, file_path: Path = SETTINGS_FILE):
        self._file_path = Path(file_path)
        self._write_lock = asyncio.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    @classmethod
    def open(cls, file_path: Path = SETTINGS_FILE) -> Optional["SettingsStore"]:
        """Return a store, or None when the location can't be used."""
        path = Path(file_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Settings directory %s unavailable: %s", path.parent, e)
            return None

        if not os.access(path.parent, os.W_OK):
            logger.warning("Settings directory %s is not writable", path.parent)
            return None
        if path.exists() and not os.access(path, os.W_OK):
            logger.warning("Settings file %s is not writable", path)
            return None
        return cls(path)

    # ------------------------------------------------------------------
    # Typed accessors

    async def get_strv(self, key: str) -> List[str]:
        value = (await self._read()).get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    async def set_strv(self, key: str, values: Sequence[str]) -> bool:
        return await self._set(key, [str(v) for v in values])

    async def get_map(self, key: str) -> Dict[str, str]:
        value = (await self._read()).get(key)
        if not isinstance(value, dict):
            return {}
        return {str(k): v for k, v in value.items() if isinstance(v, str)}

    async def set_map(self, key: str, mapping: Mapping[str, str]) -> bool:
        return await self._set(key, {str(k): str(v) for k, v in mapping.items()})

    # ------------------------------------------------------------------
    # File I/O

    async def _read(self) -> Dict[str, Any]:
        if not await asyncio.to_thread(self._file_path.exists):
            return {}

        try:
            async with aiofiles.open(self._file_path, 'r', encoding='utf-8') as f:
                content = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read settings %s: %s", self._file_path, e)
            return {}

        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in settings file %s: %s", self._file_path, e)
            return {}
        if not isinstance(data, dict):
            logger.error("Settings file %s does not hold an object", self._file_path)
            return {}
        return data

    async def _set(self, key: str, value: Any) -> bool:
        async with self._write_lock:
            data = await self._read()
            data[key] = value
            try:
                await asyncio.to_thread(self._write_sync, data)
            except OSError as e:
                logger.error("Failed to write settings %s: %s", self._file_path, e)
                return False
        logger.debug("Stored %s in %s", key, self._file_path)
        return True

    def _write_sync(self, data: Dict[str, Any]) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                dir=str(self._file_path.parent),
                delete=False,
                encoding="utf-8",
            ) as tmp:
                tmp_path = Path(tmp.name)
                json.dump(data, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())

            os.replace(tmp_path, self._file_path)
            tmp_path = None
        finally:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except FileNotFoundError:
                    pass


__all__ = ["MONITORS_KEY", "POSITIONS_KEY", "SettingsStore"]
