"""
Shared fixtures: sheet rows in the shapes the ad exports arrive in, a fake
sheet reader standing in for the Google transports, and a fixed today.
"""

import os
import threading
from datetime import date

os.environ["LOG_FILE_ENABLED"] = "false"

import pytest

import shared.utils
from apps.pacewise.api.v1.helpers.evaluations import REGISTRY
from shared.settings import clear_settings_cache

SPREADSHEET_ID = "sheet-123"

GOOGLE_HEADERS = ["Day", "Campaign", "Cost", "CTR", "Budget amount", "Conversions"]
FB_HEADERS = [
    "Date",
    "Campaign name",
    "Ad set name",
    "Amount spent (GBP)",
    "CTR (all)",
    "Ad set daily budget",
    "Care applications",
    "Nurse applications",
]
CONVERSION_HEADERS = ["Date", "Campaign", "Care conversions", "Nurse conversions", "Support conversions"]
CONFIG_HEADERS = ["Client", "Budget", "Cycle", "Tab Prefix", "Skip Spend", "Campaigns", "Platform"]


class FakeSheet:
    """
    Range -> rows (or an exception to raise). Records every range read.
    """

    def __init__(self, ranges: dict | None = None) -> None:
        self.ranges = dict(ranges or {})
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, spreadsheet_id: str, range_name: str) -> list[list[str]]:
        with self._lock:
            self.calls.append(range_name)
        value = self.ranges.get(range_name, [])
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture(autouse=True)
def pacewise_env(monkeypatch):
    monkeypatch.setenv("SPREADSHEET_ID", SPREADSHEET_ID)
    for key in (
        "PACEWISE_SETTINGS_FILE",
        "SHEETS_API_KEY",
        "SHEETS_RELAY_URL",
        "SOURCE_RANGES",
        "CYCLE_CUTOFFS",
        "CONFIG_RANGE",
    ):
        monkeypatch.delenv(key, raising=False)
    clear_settings_cache()

    monkeypatch.setattr(shared.utils, "PARALLEL_INITIAL_BACKOFF", 0)
    monkeypatch.setattr(shared.utils, "PARALLEL_JITTER_MAX", 0)

    REGISTRY.clear()
    yield
    REGISTRY.clear()
    clear_settings_cache()


@pytest.fixture
def today() -> date:
    return date(2025, 6, 15)


@pytest.fixture
def google_rows() -> list[list[str]]:
    return [
        GOOGLE_HEADERS,
        ["2025-06-01", "Care Search", "£100.00", "2.5%", "50", "3"],
        ["2025-06-10", "Care Search", "£200.00", "3.5%", "60", "2"],
        ["2025-05-31", "Care Search", "£999.00", "1.0%", "40", "9"],
    ]


@pytest.fixture
def fb_rows() -> list[list[str]]:
    return [
        FB_HEADERS,
        ["10/06/2025", "Care Leads", "Adset A", "150.50", "1.5", "20", "1", "2"],
        ["10/06/2025", "Care Leads", "Adset B", "49.50", "0", "20", "0", "1"],
        ["not a date", "Care Leads", "Adset A", "500", "9", "999", "5", "5"],
    ]


@pytest.fixture
def conversion_rows() -> list[list[str]]:
    return [
        CONVERSION_HEADERS,
        ["2025-06-05", "Care Search", "4", "1", "2"],
        ["2025-07-05", "Care Search", "100", "100", "100"],
    ]


@pytest.fixture
def config_rows() -> list[list[str]]:
    return [
        CONFIG_HEADERS,
        ["Acme", "3,000", "standard", "", "", "", ""],
        ["Brandon Trust", "£1,500", "brandon", "Brandon", "", "", "facebook"],
    ]


@pytest.fixture
def fake_sheet(config_rows, google_rows, fb_rows, conversion_rows) -> FakeSheet:
    return FakeSheet(
        {
            "Config!A:G": config_rows,
            "Acme Google!A:F": google_rows,
            "Acme FB!A:H": fb_rows,
            "Acme Google Conversions!A:E": conversion_rows,
        }
    )
