"""Shared pytest configuration and fixtures for the display-switcher test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from display_switcher.core.ddcutil import DdcutilCommands
from display_switcher.core.settings_store import SettingsStore
from display_switcher.core.state_store import StateStoreAdapter
from tests.infrastructure.mocks.command_mocks import FakeClock, ScriptedRunner


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "hardware: mark test as requiring ddcutil and a real monitor"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that talk to real monitors through ddcutil",
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests unless --run-hardware is specified."""
    if config.getoption("--run-hardware"):
        return

    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def commands() -> DdcutilCommands:
    return DdcutilCommands("ddcutil")


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "settings.json"


@pytest.fixture
def settings_store(settings_path: Path) -> SettingsStore:
    store = SettingsStore.open(settings_path)
    assert store is not None
    return store


@pytest.fixture
def adapter(settings_store: SettingsStore) -> StateStoreAdapter:
    return StateStoreAdapter(settings_store)


@pytest.fixture
def memory_adapter() -> StateStoreAdapter:
    """Adapter without a settings store; records live for the session only."""
    return StateStoreAdapter(None)
