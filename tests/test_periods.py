from datetime import date

import pytest

from apps.pacewise.api.v1.helpers.periods import (
    MonthSelector,
    available_months,
    format_period_label,
    get_cycle_cutoff,
    parse_month_selector,
    previous_window,
    resolve_period,
)

CURRENT = MonthSelector()


class TestMonthSelector:
    def test_current_variants(self):
        assert parse_month_selector(None).is_current
        assert parse_month_selector("").is_current
        assert parse_month_selector("Current").is_current

    def test_explicit_month(self):
        selector = parse_month_selector("2025-3")
        assert (selector.year, selector.month) == (2025, 3)
        assert selector.value == "2025-03"

    @pytest.mark.parametrize("value", ["2025-13", "2025-00", "March", "03-2025", "1999-01"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_month_selector(value)


class TestCycleCutoff:
    def test_named_cycles(self):
        assert get_cycle_cutoff("apollo") == 26
        assert get_cycle_cutoff("Brandon") == 21
        assert get_cycle_cutoff("hc1") == 11
        assert get_cycle_cutoff("standard") is None
        assert get_cycle_cutoff("") is None

    def test_generic_and_extra_cycles(self):
        assert get_cycle_cutoff("cutoff-15") == 15
        assert get_cycle_cutoff("acme", {"acme": 5}) == 5

    @pytest.mark.parametrize("value", ["weekly", "cutoff-29", "cutoff-1"])
    def test_unknown_or_out_of_range(self, value):
        with pytest.raises(ValueError):
            get_cycle_cutoff(value)


class TestResolvePeriod:
    def test_standard_current_month(self):
        period = resolve_period("standard", CURRENT, date(2024, 2, 10))
        assert period.start == date(2024, 2, 1)
        assert period.end == date(2024, 2, 29)
        assert period.days_total == 29
        assert not period.is_historical

    def test_custom_cycle_before_cutoff(self):
        period = resolve_period("apollo", CURRENT, date(2025, 3, 10))
        assert period.start == date(2025, 2, 26)
        assert period.end == date(2025, 3, 25)
        assert period.label == "Feb 26 - Mar 25"

    def test_custom_cycle_on_cutoff_day_rolls_forward(self):
        period = resolve_period("apollo", CURRENT, date(2025, 3, 26))
        assert period.start == date(2025, 3, 26)
        assert period.end == date(2025, 4, 25)
        assert period.start.day == 26

    def test_december_rollover(self):
        period = resolve_period("brandon", CURRENT, date(2025, 12, 28))
        assert period.start == date(2025, 12, 21)
        assert period.end == date(2026, 1, 20)

    def test_january_underflow(self):
        period = resolve_period("hc1", CURRENT, date(2026, 1, 5))
        assert period.start == date(2025, 12, 11)
        assert period.end == date(2026, 1, 10)

    def test_explicit_month_is_historical(self):
        period = resolve_period("hc1", MonthSelector(2025, 1), date(2025, 6, 1))
        assert period.start == date(2024, 12, 11)
        assert period.end == date(2025, 1, 10)
        assert period.is_historical

    def test_explicit_standard_month(self):
        period = resolve_period("standard", MonthSelector(2025, 4), date(2025, 6, 1))
        assert (period.start, period.end) == (date(2025, 4, 1), date(2025, 4, 30))
        assert period.to_dict()["isHistorical"] is True

    def test_unknown_cycle(self):
        with pytest.raises(ValueError):
            resolve_period("fortnightly", CURRENT, date(2025, 6, 1))

    def test_label_format(self):
        assert format_period_label(date(2025, 12, 21), date(2026, 1, 20)) == "Dec 21 - Jan 20"


class TestPreviousWindow:
    def test_same_length_at_start_of_previous_cycle(self):
        period = resolve_period("apollo", CURRENT, date(2025, 3, 10))
        assert previous_window(period, 13) == (date(2025, 1, 26), date(2025, 2, 7))

    def test_clipped_to_previous_cycle_end(self):
        period = resolve_period("standard", CURRENT, date(2025, 3, 31))
        assert previous_window(period, 31) == (date(2025, 2, 1), date(2025, 2, 28))

    def test_no_elapsed_days(self):
        period = resolve_period("standard", CURRENT, date(2025, 3, 1))
        assert previous_window(period, 0) is None


def test_available_months():
    months = available_months(date(2025, 3, 14))
    assert [m["value"] for m in months] == ["current", "2025-01", "2025-02", "2025-03"]
    assert months[0]["isCurrent"] is True
    assert months[2]["label"] == "February 2025"
