"""Root logging setup for display-switcher.

Logs never go to stdout; stdout belongs to command output so one-shot
commands can be piped.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
_MAX_BYTES = 256 * 1024
_BACKUP_COUNT = 2

LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

# Marks handlers installed here so reconfiguring only replaces our own
_OWNED = "_display_switcher_handler"


def resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    try:
        return LOG_LEVELS[level.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown log level '{level}'") from None


def build_handlers(
    level: int,
    *,
    console: bool,
    log_file: Optional[Union[str, Path]],
    max_bytes: int = _MAX_BYTES,
    backup_count: int = _BACKUP_COUNT,
) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: List[logging.Handler] = []

    if console:
        handlers.append(logging.StreamHandler(sys.stderr))

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        setattr(handler, _OWNED, True)
    return handlers


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    console: bool = False,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = _MAX_BYTES,
    backup_count: int = _BACKUP_COUNT,
    quiet: Iterable[str] = ("asyncio",),
) -> None:
    """Install stderr and/or rotating file handlers on the root logger.

    Calling it again replaces the handlers from the previous call and leaves
    any others alone. Loggers named in ``quiet`` only report errors.
    """
    numeric_level = resolve_level(level)
    root = logging.getLogger()

    for handler in [h for h in root.handlers if getattr(h, _OWNED, False)]:
        root.removeHandler(handler)
        handler.close()

    failure: Optional[OSError] = None
    try:
        handlers = build_handlers(
            numeric_level,
            console=console,
            log_file=log_file,
            max_bytes=max_bytes,
            backup_count=backup_count,
        )
    except OSError as e:
        # An unwritable log file should not stop the tool itself
        failure = e
        handlers = build_handlers(numeric_level, console=True, log_file=None)

    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(numeric_level)

    if failure is not None:
        logging.getLogger(__name__).warning("Log file %s unavailable: %s", log_file, failure)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.ERROR)


__all__ = ["LOG_DATEFMT", "LOG_FORMAT", "LOG_LEVELS", "build_handlers", "configure_logging", "resolve_level"]
