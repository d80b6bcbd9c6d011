from datetime import date, datetime

import pytest

from apps.pacewise.api.v1.helpers.dates import parse_date


class TestParseDate:
    def test_iso_and_uk_agree(self):
        assert parse_date("2025-03-07") == date(2025, 3, 7)
        assert parse_date("07/03/2025") == date(2025, 3, 7)

    @pytest.mark.parametrize(
        "value",
        ["2025/03/07", "2025.3.7", " 2025-03-07 ", "2025-03-07 14:30:00", "7-3-2025"],
    )
    def test_separator_and_padding_variants(self, value):
        assert parse_date(value) == date(2025, 3, 7)

    @pytest.mark.parametrize(
        "value",
        ["7 Mar 2025", "7 March 2025", "Mar 7, 2025", "March 7, 2025", "2025-03-07T09:15:00"],
    )
    def test_textual_formats(self, value):
        assert parse_date(value) == date(2025, 3, 7)

    def test_date_and_datetime_pass_through(self):
        assert parse_date(date(2025, 1, 2)) == date(2025, 1, 2)
        assert parse_date(datetime(2025, 1, 2, 23, 59)) == date(2025, 1, 2)

    @pytest.mark.parametrize("value", ["2025-02-30", "31/02/2025", "13/13/2025"])
    def test_impossible_calendar_values(self, value):
        assert parse_date(value) is None

    @pytest.mark.parametrize("value", [None, "", "   ", "Total", "n/a", 45000, 3.5])
    def test_garbage_returns_none(self, value):
        assert parse_date(value) is None
