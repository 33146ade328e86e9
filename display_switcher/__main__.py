"""Allow ``python -m display_switcher``."""

from __future__ import annotations

import sys


def main() -> None:
    from display_switcher import run
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
