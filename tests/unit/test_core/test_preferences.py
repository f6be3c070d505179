"""
Unit tests for preferences.

Tests defaults, JSON loading with deep merge and display formatting.
"""

import json
from datetime import date
from decimal import Decimal

from txmatch.core.preferences import (
    DATA_ROOT_ENV,
    PREFERENCES_ENV,
    DisplayConfig,
    ExportConfig,
    Preferences,
    get_data_root,
)


class TestPreferencesDefaults:
    def test_defaults(self):
        prefs = Preferences()

        assert prefs.parsers.description_max_length == 150
        assert prefs.parsers.two_digit_year_pivot == 50
        assert prefs.matching.exact_window_days == 7
        assert prefs.aging.timezone == "UTC"
        assert prefs.display.currency_symbol == "$"

    def test_load_without_path_uses_defaults(self, monkeypatch):
        monkeypatch.delenv(PREFERENCES_ENV, raising=False)

        prefs = Preferences.load()

        assert prefs.matching.exact_window_days == 7


class TestPreferencesLoad:
    def test_partial_file_is_merged(self, tmp_path):
        path = tmp_path / "preferences.json"
        path.write_text(json.dumps({"matching": {"exact_window_days": 3}}))

        prefs = Preferences.load(path)

        assert prefs.matching.exact_window_days == 3
        assert prefs.parsers.description_max_length == 150

    def test_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "prefs.json"
        path.write_text(json.dumps({"parsers": {"two_digit_year_pivot": 70}}))
        monkeypatch.setenv(PREFERENCES_ENV, str(path))

        prefs = Preferences.load()

        assert prefs.parsers.two_digit_year_pivot == 70

    def test_invalid_json_falls_back(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        prefs = Preferences.load(path)

        assert prefs.matching.exact_window_days == 7

    def test_missing_file_falls_back(self, tmp_path):
        prefs = Preferences.load(tmp_path / "missing.json")

        assert prefs.aging.timezone == "UTC"

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "preferences.json"
        Preferences({"matching": {"exact_window_days": 10}}).save(path)

        assert Preferences.load(path).matching.exact_window_days == 10


class TestDisplayConfig:
    def test_format_currency(self):
        display = DisplayConfig()

        assert display.format_currency(Decimal("1234.5")) == "$1,234.50"
        assert display.format_currency(0) == "$0.00"
        assert display.format_currency(Decimal("-42.5")) == "-$42.50"

    def test_negative_in_brackets(self):
        display = DisplayConfig(negative_in_brackets=True)

        assert display.format_currency(Decimal("-42.5")) == "($42.50)"

    def test_format_date(self):
        display = DisplayConfig()

        assert display.format_date(date(2024, 1, 5)) == "Jan 5, 2024"
        assert display.format_date(None) == ""


class TestExportConfig:
    def test_generate_filename(self):
        assert ExportConfig().generate_filename(date(2024, 3, 1)) == "transaction-matcher-2024-03-01.json"


def test_data_root_env(tmp_path, monkeypatch):
    monkeypatch.setenv(DATA_ROOT_ENV, str(tmp_path))

    assert get_data_root() == tmp_path
