"""Component-prefixed loggers for display-switcher.

Every logger lives under the ``display_switcher`` namespace and tags its
messages with ``[Component]`` so interleaved output from the probe, the
tracker and the store stays readable in one log file.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional, Tuple, Union

LOGGER_NAMESPACE = "display_switcher"
DEFAULT_COMPONENT = "Core"


def _qualified_name(name: Optional[str]) -> str:
    if not name:
        return LOGGER_NAMESPACE
    if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
        return name
    return f"{LOGGER_NAMESPACE}.{name}"


def _component_for(name: str) -> str:
    """``display_switcher.core.probe`` -> ``probe``; bare names pass through."""
    if name.startswith(LOGGER_NAMESPACE):
        name = name[len(LOGGER_NAMESPACE):].lstrip(".")
    return name.rsplit(".", 1)[-1] or DEFAULT_COMPONENT


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes messages with ``[Component]``."""

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        super().__init__(logger, {})
        self.component = component or _component_for(logger.name)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        prefix = f"[{self.component}]"
        text = str(msg)
        if not text.startswith(prefix):
            text = f"{prefix} {text}"
        return text, kwargs

    def getChild(self, suffix: str) -> "StructuredLogger":
        return StructuredLogger(self.logger.getChild(suffix), component=f"{self.component}.{suffix}")

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"StructuredLogger({self.logger.name!r}, component={self.component!r})"


LoggerLike = Union[StructuredLogger, logging.Logger, logging.LoggerAdapter, None]


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    """Return a prefixed logger scoped to the display_switcher namespace."""
    return StructuredLogger(logging.getLogger(_qualified_name(name)))


def ensure_structured_logger(logger: LoggerLike, *, fallback_name: Optional[str] = None) -> StructuredLogger:
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.LoggerAdapter):
        return StructuredLogger(logger.logger)
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger)
    return get_module_logger(fallback_name)


__all__ = [
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]
