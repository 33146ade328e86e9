"""Unit tests for config.txt parsing and AppConfig."""

from pathlib import Path

import pytest

from display_switcher.core.config_manager import AppConfig, ConfigManager, get_config_manager
from display_switcher.core.paths import LOG_FILE, SETTINGS_FILE


SAMPLE = """\
# display-switcher settings
ddcutil_path = /opt/ddcutil/bin/ddcutil
ddcutil_args = --noverify --sleep-multiplier 0.5
detect_timeout_ms = 8000   # slower bus
query_timeout_ms = "1500"
log_level = DEBUG
refresh_on_start = no
not a setting line
"""


class TestConfigManager:

    def test_parse_lines(self):
        config = ConfigManager.parse_lines(SAMPLE.splitlines())

        assert config["ddcutil_path"] == "/opt/ddcutil/bin/ddcutil"
        assert config["detect_timeout_ms"] == "8000"
        assert config["query_timeout_ms"] == "1500"
        assert "not a setting line" not in config

    def test_missing_file(self, tmp_path):
        assert get_config_manager().read_config(tmp_path / "missing.txt") == {}

    @pytest.mark.asyncio
    async def test_read_async_matches_sync(self, tmp_path):
        path = tmp_path / "config.txt"
        path.write_text(SAMPLE)
        manager = get_config_manager()

        assert await manager.read_config_async(path) == manager.read_config(path)

    @pytest.mark.asyncio
    async def test_read_async_missing_file(self, tmp_path):
        assert await get_config_manager().read_config_async(tmp_path / "missing.txt") == {}

    @pytest.mark.asyncio
    async def test_undecodable_file_reads_empty(self, tmp_path):
        path = tmp_path / "config.txt"
        path.write_bytes(b"log_level = \xff\n")
        manager = get_config_manager()

        assert manager.read_config(path) == {}
        assert await manager.read_config_async(path) == {}

    def test_typed_getters(self):
        manager = get_config_manager()
        config = {"flag": "Yes", "off": "off", "count": "12", "bad": "x"}

        assert manager.get_bool(config, "flag") is True
        assert manager.get_bool(config, "missing", default=True) is True
        assert manager.get_int(config, "count") == 12
        assert manager.get_int(config, "bad", default=7) == 7
        assert manager.get_bool(config, "off", default=True) is False
        assert manager.get_bool(config, "bad", default=True) is True
        assert manager.get_str(config, "missing", default="d") == "d"


class TestAppConfig:

    def test_defaults(self):
        config = AppConfig.from_mapping({})

        assert config.ddcutil_path == "ddcutil"
        assert config.ddcutil_args == []
        assert config.detect_timeout_ms == 10000
        assert config.query_timeout_ms == 3000
        assert config.switch_timeout_ms == 5000
        assert config.settings_file == SETTINGS_FILE
        assert config.log_file == LOG_FILE
        assert config.log_level == "info"
        assert config.console_output is False
        assert config.refresh_on_start is True

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "config.txt"
        path.write_text(SAMPLE + "settings_file = ~/displays.json\nlog_file =\n")

        config = AppConfig.load(path)

        assert config.ddcutil_path == "/opt/ddcutil/bin/ddcutil"
        assert config.ddcutil_args == ["--noverify", "--sleep-multiplier", "0.5"]
        assert config.detect_timeout_ms == 8000
        assert config.query_timeout_ms == 1500
        assert config.log_level == "debug"
        assert config.refresh_on_start is False
        assert config.settings_file == Path("~/displays.json").expanduser()
        assert config.log_file is None

    def test_bad_numbers_fall_back(self):
        config = AppConfig.from_mapping({"switch_timeout_ms": "fast"})

        assert config.switch_timeout_ms == 5000

    def test_empty_ddcutil_path_uses_default(self):
        assert AppConfig.from_mapping({"ddcutil_path": ""}).ddcutil_path == "ddcutil"

    def test_unbalanced_ddcutil_args_ignored(self):
        assert AppConfig.from_mapping({"ddcutil_args": '--model "DELL'}).ddcutil_args == []

    def test_hash_inside_value_kept(self):
        config = ConfigManager.parse_lines(["ddcutil_path = /opt/tools#2/ddcutil"])

        assert config["ddcutil_path"] == "/opt/tools#2/ddcutil"

    def test_undecodable_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.txt"
        path.write_bytes(b"ddcutil_path = /opt/\xff/ddcutil\n")

        assert AppConfig.load(path) == AppConfig()
