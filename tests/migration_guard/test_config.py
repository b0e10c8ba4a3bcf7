from __future__ import annotations

from textwrap import dedent
from typing import TYPE_CHECKING

import pytest

from migration_guard.config import CONFIG_FILE_NAME, DEFAULT_CONFIG_TEMPLATE, Config, normalize_timestamp
from migration_guard.errors import ConfigError, InvalidCheckNameError, InvalidTimestampError

if TYPE_CHECKING:
    from pathlib import Path


class TestDefaults:
    def test_default_config(self):
        config = Config()
        assert config.start_after is None
        assert config.check_down is False
        assert config.disable_checks == frozenset()

    def test_every_check_enabled(self):
        assert Config().is_check_enabled("AddColumnCheck")

    def test_frozen(self):
        with pytest.raises(AttributeError):
            Config().check_down = True  # type: ignore[misc]


class TestValidation:
    @pytest.mark.parametrize(
        "timestamp",
        ["2024_01_01_000000", "2023_12_31_235959", "2024-01-01-000000", "20240101000000"],
    )
    def test_valid_timestamps(self, timestamp: str):
        assert Config(start_after=timestamp).start_after == timestamp

    @pytest.mark.parametrize(
        "timestamp",
        ["2024_01_01", "2024-01-01_000000", "2024_01_01_00000", "202401010000001", "yesterday", ""],
    )
    def test_invalid_timestamps(self, timestamp: str):
        with pytest.raises(InvalidTimestampError) as exc_info:
            Config(start_after=timestamp)
        assert "YYYYMMDDHHMMSS" in exc_info.value.help
        assert str(exc_info.value).startswith(f"Configuration error: Invalid timestamp format: {timestamp}")

    def test_invalid_check_name(self):
        with pytest.raises(InvalidCheckNameError) as exc_info:
            Config(disable_checks=frozenset({"NoSuchCheck"}))
        assert exc_info.value.invalid_name == "NoSuchCheck"
        assert "AddColumnCheck" in exc_info.value.help
        assert "help: Valid check names:" in str(exc_info.value)

    def test_invalid_name_is_a_config_error(self):
        with pytest.raises(ConfigError):
            Config(disable_checks=frozenset({"add_column"}))

    def test_with_disabled(self):
        config = Config(disable_checks=frozenset({"AddColumnCheck"})).with_disabled(["TruncateTableCheck"])
        assert config.disable_checks == {"AddColumnCheck", "TruncateTableCheck"}
        assert not config.is_check_enabled("TruncateTableCheck")
        with pytest.raises(InvalidCheckNameError):
            config.with_disabled(["Bogus"])


class TestShouldCheckMigration:
    def test_no_filter(self):
        assert Config().should_check_migration("2020_01_01_000000_anything")

    @pytest.mark.parametrize("start_after", ["2024_01_01_000000", "2024-01-01-000000", "20240101000000"])
    def test_formats_are_interchangeable(self, start_after: str):
        config = Config(start_after=start_after)
        assert not config.should_check_migration("2023_12_31_235959_create_users")
        assert not config.should_check_migration("2024-01-01-000000_same_moment")
        assert config.should_check_migration("20240101000001_later")
        assert config.should_check_migration("2024_06_15_120000_much_later")

    def test_short_names_always_checked(self):
        assert Config(start_after="20240101000000").should_check_migration("0001_init")

    def test_only_first_fourteen_digits_compared(self):
        config = Config(start_after="20240101000000")
        assert not config.should_check_migration("2024_01_01_000000_v2_999")

    def test_normalize(self):
        assert normalize_timestamp("2024_01_01_000000") == "20240101000000"
        assert normalize_timestamp("2024-01-01-000000_name") == "20240101000000"


class TestLoading:
    def test_load_from_path(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text(
            dedent("""\
                start_after = "2024_01_01_000000"
                check_down = true
                disable_checks = ["AddColumnCheck", "DropPrimaryKeyCheck"]
                unknown_key = "ignored"
            """)
        )
        config = Config.load_from_path(path)
        assert config.start_after == "2024_01_01_000000"
        assert config.check_down is True
        assert config.disable_checks == {"AddColumnCheck", "DropPrimaryKeyCheck"}

    def test_load_missing_file_gives_defaults(self, tmp_path: Path):
        assert Config.load(tmp_path) == Config()

    def test_load_from_directory(self, tmp_path: Path):
        (tmp_path / CONFIG_FILE_NAME).write_text("check_down = true\n")
        assert Config.load(tmp_path).check_down is True

    def test_load_uses_working_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        (tmp_path / CONFIG_FILE_NAME).write_text('disable_checks = ["WideIndexCheck"]\n')
        monkeypatch.chdir(tmp_path)
        assert Config.load().disable_checks == {"WideIndexCheck"}

    def test_invalid_toml(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text("check_down = \n")
        with pytest.raises(ConfigError, match="Failed to parse config file") as exc_info:
            Config.load_from_path(path)
        assert exc_info.value.path == str(path)

    def test_unreadable_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Failed to read config file"):
            Config.load_from_path(tmp_path / "missing.toml")

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ("start_after = 20240101000000\n", "'start_after' must be a string"),
            ('check_down = "yes"\n', "'check_down' must be a boolean"),
            ('disable_checks = "AddColumnCheck"\n', "'disable_checks' must be a list of strings"),
            ("disable_checks = [1, 2]\n", "'disable_checks' must be a list of strings"),
        ],
    )
    def test_wrong_types(self, tmp_path: Path, body: str, message: str):
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text(body)
        with pytest.raises(ConfigError, match=message) as exc_info:
            Config.load_from_path(path)
        assert exc_info.value.path == str(path)

    def test_invalid_values_carry_path(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text('disable_checks = ["Nope"]\n')
        with pytest.raises(InvalidCheckNameError) as exc_info:
            Config.load_from_path(path)
        assert exc_info.value.path == str(path)

    def test_template_loads_as_defaults(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text(DEFAULT_CONFIG_TEMPLATE)
        assert Config.load_from_path(path) == Config()
