from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta

from shared.constants import CYCLE_CUTOFFS, MAX_CUTOFF_DAY, STANDARD_CYCLE

MONTH_ABBR = (
    "", "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
MONTH_NAMES = (
    "", "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

CURRENT = "current"

_GENERIC_CUTOFF_RE = re.compile(r"^cutoff[-_ ]?(\d{1,2})$")
_MONTH_VALUE_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


@dataclass(frozen=True)
class MonthSelector:
    year: int | None = None
    month: int | None = None

    @property
    def is_current(self) -> bool:
        return self.year is None or self.month is None

    @property
    def value(self) -> str:
        if self.is_current:
            return CURRENT
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class BillingPeriod:
    start: date
    end: date
    label: str
    cycle_type: str
    cutoff_day: int | None
    is_historical: bool

    @property
    def days_total(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, value: date | None) -> bool:
        return value is not None and self.start <= value <= self.end

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "label": self.label,
            "cycleType": self.cycle_type,
            "daysTotal": self.days_total,
            "isHistorical": self.is_historical,
        }


def parse_month_selector(value: str | None) -> MonthSelector:
    """
    "current" (or empty) -> current cycle; "YYYY-MM" -> that month.
    """
    if value is None:
        return MonthSelector()
    cleaned = str(value).strip().lower()
    if not cleaned or cleaned == CURRENT:
        return MonthSelector()

    match = _MONTH_VALUE_RE.match(cleaned)
    if not match:
        raise ValueError(f"Invalid month selector '{value}', expected 'current' or YYYY-MM")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    if not 2000 <= year <= 2100:
        raise ValueError("year must be between 2000 and 2100")
    return MonthSelector(year=year, month=month)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    total = year * 12 + (month - 1) + delta
    new_year = total // 12
    new_month = (total % 12) + 1
    return new_year, new_month


def get_cycle_cutoff(
    cycle_type: str | None,
    extra_cutoffs: dict[str, int] | None = None,
) -> int | None:
    """
    Cutoff day for a cycle type; None for the standard calendar month.
    Raises ValueError for unknown cycle types.
    """
    normalized = (cycle_type or "").strip().lower()
    if not normalized or normalized == STANDARD_CYCLE:
        return None

    cutoffs = {**CYCLE_CUTOFFS, **(extra_cutoffs or {})}
    if normalized in cutoffs:
        cutoff = int(cutoffs[normalized])
    else:
        match = _GENERIC_CUTOFF_RE.match(normalized)
        if not match:
            raise ValueError(f"Unknown cycle type '{cycle_type}'")
        cutoff = int(match.group(1))

    if not 1 < cutoff <= MAX_CUTOFF_DAY:
        raise ValueError(f"Cutoff day for '{cycle_type}' must be between 2 and {MAX_CUTOFF_DAY}")
    return cutoff


def _bounds_for_month(cutoff: int | None, year: int, month: int) -> tuple[date, date]:
    if cutoff is None:
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day)

    start_year, start_month = _shift_month(year, month, -1)
    return date(start_year, start_month, cutoff), date(year, month, cutoff - 1)


def format_period_label(start: date, end: date) -> str:
    return f"{MONTH_ABBR[start.month]} {start.day} - {MONTH_ABBR[end.month]} {end.day}"


def resolve_period(
    cycle_type: str,
    selector: MonthSelector,
    today: date,
    *,
    extra_cutoffs: dict[str, int] | None = None,
) -> BillingPeriod:
    """
    Inclusive billing period for a cycle and month selector.

    Custom cycles run from the cutoff day of the prior month through the
    day before the cutoff in the target month. For the current selector the
    target month is next month once today has reached the cutoff.
    """
    cutoff = get_cycle_cutoff(cycle_type, extra_cutoffs)

    if selector.is_current:
        year, month = today.year, today.month
        if cutoff is not None and today.day >= cutoff:
            year, month = _shift_month(year, month, 1)
    else:
        year, month = selector.year, selector.month

    start, end = _bounds_for_month(cutoff, year, month)
    return BillingPeriod(
        start=start,
        end=end,
        label=format_period_label(start, end),
        cycle_type=(cycle_type or STANDARD_CYCLE).strip().lower(),
        cutoff_day=cutoff,
        is_historical=not selector.is_current,
    )


def previous_window(period: BillingPeriod, days_elapsed: int) -> tuple[date, date] | None:
    """
    Same-length window at the start of the previous cycle, for
    like-for-like comparisons.
    """
    if days_elapsed <= 0:
        return None

    year, month = _shift_month(period.end.year, period.end.month, -1)
    prev_start, prev_end = _bounds_for_month(period.cutoff_day, year, month)
    window_end = min(prev_start + timedelta(days=days_elapsed - 1), prev_end)
    return prev_start, window_end


def available_months(today: date) -> list[dict]:
    months = [{"value": CURRENT, "label": "Current Period", "isCurrent": True}]
    for month in range(1, today.month + 1):
        months.append(
            {
                "value": f"{today.year:04d}-{month:02d}",
                "label": f"{MONTH_NAMES[month]} {today.year}",
                "isCurrent": False,
            }
        )
    return months
