import asyncio
import shlex
from typing import List, Optional

from display_switcher.core.display_service import DisplayService
from display_switcher.core.input_codes import INPUT_LABELS, MENU_INPUTS, input_label, is_recognized, parse_input_arg
from display_switcher.core.logging_utils import get_module_logger
from display_switcher.core.models import MonitorRecord, Position
from display_switcher.core.switch_orchestrator import SwitchOutcome

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

_OUTCOME_MESSAGES = {
    SwitchOutcome.SWITCHED: "switching to {input}",
    SwitchOutcome.REJECTED: "{input} is not a usable input",
    SwitchOutcome.INVALID_CODE: "unknown input {input}",
    SwitchOutcome.UNKNOWN_MONITOR: "monitor not found",
}


class InteractiveShell:
    """
    Interactive command-line shell for display-switcher.

    The same command handlers back the one-shot CLI (``execute``) and the
    prompt loop (``run``).
    """

    def __init__(self, service: DisplayService):
        self.logger = get_module_logger("InteractiveShell")
        self.service = service
        self.running = True

        self._commands = {
            'help': self._cmd_help,
            'list': self._cmd_list,
            'rescan': self._cmd_rescan,
            'refresh': self._cmd_refresh,
            'switch': self._cmd_switch,
            'switch-all': self._cmd_switch_all,
            'position': self._cmd_position,
            'usable': self._cmd_usable,
            'stored': self._cmd_stored,
            'forget-stale': self._cmd_forget_stale,
            'quit': self._cmd_quit,
            'exit': self._cmd_quit,
        }

    @property
    def command_names(self) -> List[str]:
        return sorted(self._commands)

    async def run(self) -> None:
        """Run the interactive shell."""
        self.logger.info("Starting interactive shell")
        print("Display Switcher - type 'help' for commands, 'quit' to exit")

        if not self.service.scanned:
            await self._cmd_rescan([])

        while self.running:
            try:
                line = await asyncio.get_running_loop().run_in_executor(
                    None,
                    lambda: input("\ndisplays> ").strip()
                )
            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                print("\nInterrupt received. Type 'quit' to exit.")
                continue

            if line:
                await self.execute(line)

        self.logger.info("Interactive shell exiting")

    async def execute(self, line: str) -> int:
        """Parse and execute one command line, returning an exit code."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            print(f"Error: {e}")
            return EXIT_USAGE
        if not parts:
            return EXIT_OK

        cmd = parts[0].lower()
        handler = self._commands.get(cmd)
        if handler is None:
            print(f"Unknown command: {cmd}")
            print("Type 'help' for available commands")
            return EXIT_USAGE
        return await handler(parts[1:])

    # ------------------------------------------------------------------
    # Commands

    async def _cmd_help(self, args=None) -> int:
        inputs = ", ".join(f"{label} ({code})" for code, label in INPUT_LABELS.items())
        print("\nAvailable Commands:")
        print("-" * 60)
        print("  list                          - Show detected monitors")
        print("  rescan                        - Detect monitors again")
        print("  refresh                       - Query each monitor's active input")
        print("  switch <monitor> <input>      - Switch one monitor")
        print("  switch-all <input>            - Switch every monitor")
        print("  position <monitor> <pos>      - left, center, right or unset")
        print("  usable <monitor> [inputs...]  - Limit selectable inputs (none = all)")
        print("  stored                        - Show every stored monitor record")
        print("  forget-stale                  - Delete records of monitors not detected")
        print("  quit / exit                   - Leave the shell")
        print("-" * 60)
        print(f"  Inputs: {inputs}")
        print("  <monitor> is an identity key, display number or label")
        return EXIT_OK

    async def _cmd_list(self, args=None) -> int:
        monitors = self.service.list_monitors()
        if not monitors:
            print("No monitors detected")
            return EXIT_OK

        print()
        for monitor in monitors:
            print(self._format_monitor(monitor))
        return EXIT_OK

    async def _cmd_rescan(self, args=None) -> int:
        monitors = await self.service.rescan()
        print(f"Detected {len(monitors)} monitor(s)")
        return await self._cmd_list()

    async def _cmd_refresh(self, args=None) -> int:
        if not self.service.list_monitors():
            print("No monitors detected")
            return EXIT_OK
        await self.service.refresh_active_inputs()
        return await self._cmd_list()

    async def _cmd_switch(self, args: List[str]) -> int:
        if len(args) != 2:
            print("Usage: switch <monitor> <input>")
            return EXIT_USAGE

        monitor = self._lookup(args[0])
        if monitor is None:
            return EXIT_FAILED
        code = self._parse_input(args[1])
        if code is None:
            return EXIT_USAGE

        outcome = await self.service.switch_input(monitor.identity_key, code)
        print(f"{monitor.label}: " + _OUTCOME_MESSAGES[outcome].format(input=input_label(code)))
        return EXIT_OK if outcome.issued else EXIT_FAILED

    async def _cmd_switch_all(self, args: List[str]) -> int:
        if len(args) != 1:
            print("Usage: switch-all <input>")
            return EXIT_USAGE
        code = self._parse_input(args[0])
        if code is None:
            return EXIT_USAGE

        outcomes = await self.service.switch_all(code)
        if not outcomes:
            print(f"No known monitors, sent {input_label(code)} to the default display")
            return EXIT_OK

        for identity_key, outcome in outcomes.items():
            monitor = self.service.get_monitor(identity_key)
            name = monitor.label if monitor else identity_key
            print(f"{name}: " + _OUTCOME_MESSAGES[outcome].format(input=input_label(code)))
        return EXIT_OK if any(o.issued for o in outcomes.values()) else EXIT_FAILED

    async def _cmd_position(self, args: List[str]) -> int:
        if len(args) != 2:
            print("Usage: position <monitor> <left|center|right|unset>")
            return EXIT_USAGE

        monitor = self._lookup(args[0])
        if monitor is None:
            return EXIT_FAILED

        position = Position.parse(args[1])
        if position is Position.UNSET and args[1].strip().lower() not in ("unset", "none", ""):
            print(f"Unknown position: {args[1]}")
            return EXIT_USAGE

        updated = await self.service.set_position(monitor.identity_key, position)
        if updated is None:
            print(f"{monitor.label}: no stored record")
            return EXIT_FAILED
        print(f"{updated.label}: position {position.value}")
        return EXIT_OK

    async def _cmd_usable(self, args: List[str]) -> int:
        if not args:
            print("Usage: usable <monitor> [inputs...]")
            return EXIT_USAGE

        monitor = self._lookup(args[0])
        if monitor is None:
            return EXIT_FAILED

        codes = []
        for raw in args[1:]:
            code = self._parse_input(raw)
            if code is None:
                return EXIT_USAGE
            codes.append(code)

        updated = await self.service.set_usable_inputs(monitor.identity_key, codes)
        if updated is None:
            print(f"{monitor.label}: no stored record")
            return EXIT_FAILED
        print(f"{updated.label}: usable inputs {self._format_usable(updated)}")
        return EXIT_OK

    async def _cmd_stored(self, args=None) -> int:
        records = await self.service.stored_records()
        if not records:
            print("No stored monitors")
            return EXIT_OK

        detected = {m.identity_key for m in self.service.list_monitors()}
        for record in records:
            marker = "*" if record.identity_key in detected else " "
            print(f"{marker} {self._format_monitor(record, live=False)}")
        return EXIT_OK

    async def _cmd_forget_stale(self, args=None) -> int:
        removed = await self.service.forget_stale()
        print(f"Removed {removed} stale record(s)")
        return EXIT_OK

    async def _cmd_quit(self, args=None) -> int:
        self.running = False
        return EXIT_OK

    # ------------------------------------------------------------------
    # Helpers

    def _lookup(self, selector: str) -> Optional[MonitorRecord]:
        monitor = self.service.find_monitor(selector)
        if monitor is None:
            print(f"Monitor not found: {selector}")
        return monitor

    def _parse_input(self, text: str) -> Optional[str]:
        code = parse_input_arg(text)
        if code is None or not is_recognized(code):
            choices = ", ".join(input_label(c) for c in MENU_INPUTS)
            print(f"Unknown input: {text} (try {choices})")
            return None
        return code

    @staticmethod
    def _format_usable(monitor: MonitorRecord) -> str:
        if not monitor.usable_inputs:
            return "all"
        return ", ".join(input_label(c) for c in sorted(monitor.usable_inputs))

    def _format_monitor(self, monitor: MonitorRecord, live: bool = True) -> str:
        if live:
            current = self.service.current_input(monitor.identity_key)
        else:
            current = monitor.last_input or None
        return (
            f"  [{monitor.id}] {monitor.label:<28} {input_label(current):<14} "
            f"{monitor.identity_key}  usable: {self._format_usable(monitor)}"
        )
