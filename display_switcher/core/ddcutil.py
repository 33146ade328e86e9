"""argv builders for the ddcutil command-line tool."""

from typing import List, Optional, Sequence

from .input_codes import VCP_INPUT_SOURCE


class DdcutilCommands:
    """Builds ddcutil command lines from the configured binary and options."""

    def __init__(self, binary: str = "ddcutil", extra_args: Optional[Sequence[str]] = None):
        self.binary = binary
        self.extra_args = list(extra_args or [])

    def _base(self) -> List[str]:
        return [self.binary, *self.extra_args]

    def detect(self) -> List[str]:
        return self._base() + ["detect"]

    def detect_terse(self) -> List[str]:
        return self._base() + ["detect", "--terse"]

    def get_input(self, display_id: int) -> List[str]:
        return self._base() + ["-d", str(display_id), "getvcp", VCP_INPUT_SOURCE]

    def set_input(self, code: str, display_id: Optional[int] = None) -> List[str]:
        argv = self._base()
        if display_id is not None:
            argv += ["-d", str(display_id)]
        return argv + ["setvcp", VCP_INPUT_SOURCE, code]
