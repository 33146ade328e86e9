
from .command_runner import CommandResult, CommandRunner
from .config_manager import AppConfig, get_config_manager
from .ddcutil import DdcutilCommands
from .display_service import DisplayService
from .identity import decorate_label, resolve
from .input_state import InputSource, InputState, InputStateTracker
from .models import MonitorDescriptor, MonitorRecord, Position, identity_key
from .probe import MonitorProbe
from .probe_parser import parse_detect, parse_query_value, parse_terse
from .settings_store import SettingsStore
from .state_store import StateStoreAdapter, merge_records
from .switch_orchestrator import SwitchOrchestrator, SwitchOutcome

__all__ = [
    'AppConfig',
    'CommandResult',
    'CommandRunner',
    'DdcutilCommands',
    'DisplayService',
    'InputSource',
    'InputState',
    'InputStateTracker',
    'MonitorDescriptor',
    'MonitorProbe',
    'MonitorRecord',
    'Position',
    'SettingsStore',
    'StateStoreAdapter',
    'SwitchOrchestrator',
    'SwitchOutcome',
    'decorate_label',
    'get_config_manager',
    'identity_key',
    'merge_records',
    'parse_detect',
    'parse_query_value',
    'parse_terse',
    'resolve',
]
