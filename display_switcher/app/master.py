import argparse
import shlex
from pathlib import Path
from typing import List, Optional

from display_switcher.core.cli import InteractiveShell
from display_switcher.core.config_manager import AppConfig
from display_switcher.core.display_service import DisplayService
from display_switcher.core.logging_config import LOG_LEVELS, configure_logging
from display_switcher.core.logging_utils import get_module_logger
from display_switcher.core.paths import CONFIG_PATH


logger = get_module_logger(__name__)

# Commands that act on detected monitors need a probe first
_SCAN_FIRST = {'list', 'refresh', 'switch', 'switch-all', 'position', 'usable', 'stored', 'forget-stale'}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; config file values become defaults."""
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", type=Path, default=CONFIG_PATH)
    known, _ = pre.parse_known_args(argv)
    config = AppConfig.load(known.config)

    parser = argparse.ArgumentParser(
        description="Display Switcher - switch monitor inputs through ddcutil",
        parents=[pre],
    )

    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default=config.log_level if config.log_level in LOG_LEVELS else "info",
        help="Logging level (default: info)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=config.log_file,
        help="Rotating log file (default: ~/.display_switcher/logs/display_switcher.log)"
    )

    parser.add_argument(
        "--console",
        dest="console_output",
        action="store_true",
        default=config.console_output,
        help="Also log to the console"
    )

    parser.add_argument(
        "--no-console",
        dest="console_output",
        action="store_false",
        help="Log to file only"
    )

    parser.add_argument(
        "--no-refresh",
        dest="refresh_on_start",
        action="store_false",
        default=config.refresh_on_start,
        help="Skip querying active inputs after the initial scan"
    )

    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="One-shot command (list, switch <monitor> <input>, ...); omit for the interactive shell"
    )

    args = parser.parse_args(argv)
    args.app_config = config
    return args


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    configure_logging(
        args.log_level,
        console=args.console_output,
        log_file=args.log_file,
    )

    service = DisplayService.from_config(args.app_config)
    shell = InteractiveShell(service)

    try:
        command = args.command
        if not command or command[0] == 'shell':
            await service.rescan()
            if args.refresh_on_start:
                await service.refresh_active_inputs()
            await shell.run()
            return 0

        name = command[0].lower()
        if name in _SCAN_FIRST:
            await service.rescan()
            if name == 'list' and args.refresh_on_start:
                await service.refresh_active_inputs()

        logger.debug("Running one-shot command: %s", command)
        return await shell.execute(shlex.join(command))
    finally:
        await service.close()
