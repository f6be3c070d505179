"""Preferences management for txmatch.

Provides data-driven configuration with sensible defaults.
"""

import copy
import json
import logging
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

PREFERENCES_ENV = "TXMATCH_PREFERENCES"
DATA_ROOT_ENV = "TXMATCH_DATA_ROOT"

# Default preferences (used when nothing is configured)
DEFAULT_PREFERENCES = {
    "$schema": "txmatch_preferences_v1",
    "version": "1.0",

    "parsers": {
        "description_max_length": 150,
        "two_digit_year_pivot": 50
    },

    "matching": {
        "exact_window_days": 7
    },

    "aging": {
        "timezone": "UTC"
    },

    "display": {
        "currency_symbol": "$",
        "decimal_places": 2,
        "date_format": "%b %-d, %Y",
        "negative_in_brackets": False
    },

    "export": {
        "filename_pattern": "transaction-matcher-{date}.json"
    }
}


@dataclass
class ParserConfig:
    """Configuration for the bank and receipt parsers."""
    description_max_length: int = 150
    two_digit_year_pivot: int = 50


@dataclass
class MatchingConfig:
    """Configuration for the matching engine."""
    exact_window_days: int = 7  # Date gap at or below this is "exact"


@dataclass
class AgingConfig:
    """Configuration for aging analysis."""
    timezone: str = "UTC"


@dataclass
class DisplayConfig:
    """Configuration for display formatting."""
    currency_symbol: str = "$"
    decimal_places: int = 2
    date_format: str = "%b %-d, %Y"
    negative_in_brackets: bool = False

    def format_currency(self, amount) -> str:
        """Format amount with currency symbol, e.g. $1,234.56."""
        amount = Decimal(str(amount))
        body = f"{abs(amount):,.{self.decimal_places}f}"
        if amount < 0:
            if self.negative_in_brackets:
                return f"({self.currency_symbol}{body})"
            return f"-{self.currency_symbol}{body}"
        return f"{self.currency_symbol}{body}"

    def format_date(self, value: date) -> str:
        """Format a date for display, e.g. Jan 5, 2024."""
        if value is None:
            return ""
        fmt = self.date_format
        # %-d is not portable; expand it by hand
        if "%-d" in fmt:
            fmt = fmt.replace("%-d", str(value.day))
        return value.strftime(fmt)


@dataclass
class ExportConfig:
    """Configuration for the JSON export document."""
    filename_pattern: str = "transaction-matcher-{date}.json"

    def generate_filename(self, on: Optional[date] = None) -> str:
        on = on or date.today()
        return self.filename_pattern.format(date=on.isoformat())


class Preferences:
    """
    Preferences for txmatch.

    Loads from a preferences.json with fallback to defaults.

    Usage:
        prefs = Preferences.load(Path("~/.txmatch/preferences.json"))
        window = prefs.matching.exact_window_days
        print(prefs.display.format_currency(1234.56))
    """

    def __init__(self, data: Dict[str, Any] = None):
        """Initialize from preference dictionary."""
        if data is None:
            data = copy.deepcopy(DEFAULT_PREFERENCES)
        self._raw = data

        parsers = data.get("parsers", {})
        self.parsers = ParserConfig(
            description_max_length=int(parsers.get("description_max_length", 150)),
            two_digit_year_pivot=int(parsers.get("two_digit_year_pivot", 50))
        )

        matching = data.get("matching", {})
        self.matching = MatchingConfig(
            exact_window_days=int(matching.get("exact_window_days", 7))
        )

        aging = data.get("aging", {})
        self.aging = AgingConfig(
            timezone=aging.get("timezone", "UTC")
        )

        display = data.get("display", {})
        self.display = DisplayConfig(
            currency_symbol=display.get("currency_symbol", "$"),
            decimal_places=display.get("decimal_places", 2),
            date_format=display.get("date_format", "%b %-d, %Y"),
            negative_in_brackets=display.get("negative_in_brackets", False)
        )

        export = data.get("export", {})
        self.export = ExportConfig(
            filename_pattern=export.get("filename_pattern", "transaction-matcher-{date}.json")
        )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Preferences":
        """
        Load preferences with fallback to defaults.

        Args:
            path: preferences.json to load. Defaults to $TXMATCH_PREFERENCES.

        Returns:
            Preferences instance
        """
        data = copy.deepcopy(DEFAULT_PREFERENCES)

        if path is None and os.environ.get(PREFERENCES_ENV):
            path = Path(os.environ[PREFERENCES_ENV])

        if path is not None:
            path = Path(path)
            if path.exists():
                try:
                    with open(path, encoding="utf-8") as f:
                        user_data = json.load(f)
                    data = cls._deep_merge(data, user_data)
                    logger.debug(f"Loaded preferences from {path}")
                except (OSError, ValueError) as e:
                    logger.warning(f"Failed to load preferences from {path}: {e}")
            else:
                logger.debug(f"Preferences file {path} not found, using defaults")

        return cls(data)

    @staticmethod
    def _deep_merge(base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries, override takes precedence."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = Preferences._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def save(self, path: Path) -> None:
        """Save current preferences to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self._raw, f, indent=2)
        logger.info(f"Saved preferences to {path}")


def get_data_root() -> Path:
    """Get the data root directory ($TXMATCH_DATA_ROOT or ./.txmatch)."""
    if DATA_ROOT_ENV in os.environ:
        return Path(os.environ[DATA_ROOT_ENV])
    return Path.cwd() / ".txmatch"
