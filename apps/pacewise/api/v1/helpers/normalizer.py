"""
Sheet row -> CanonicalRecord.

Export headers drift ("Amount spent (GBP)" vs "Cost", "Adset daily budget"
vs "Budget Amount"), so headers are matched against an ordered table of
canonical fields instead of exact names. Each header set is classified once
and the resulting layout is reused for every row of that source.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Callable, Iterable, Sequence

from apps.pacewise.api.v1.helpers.dates import parse_date

CARE = "care"
NURSE = "nurse"
SUPPORT = "support"
CONVERSION_CATEGORIES = (CARE, NURSE, SUPPORT)

_NUMERIC_STRIP_RE = re.compile(r"[^0-9.\-]")
_WORD_RE = re.compile(r"[a-z]+")

Matcher = Callable[[str], bool]


@dataclass(frozen=True)
class CanonicalRecord:
    date: date | None
    cost: float = 0.0
    ctr: float = 0.0
    daily_budget: float = 0.0
    care_count: float = 0.0
    nurse_count: float = 0.0
    support_count: float = 0.0
    identity_key: str = ""
    campaign: str = ""

    def conversions(self, category: str) -> float:
        return getattr(self, f"{category}_count")


# ============================================================
# MATCHERS
# ============================================================


def _equals(*names: str) -> Matcher:
    targets = frozenset(names)
    return lambda header: header in targets


def _contains(*fragments: str) -> Matcher:
    return lambda header: any(fragment in header for fragment in fragments)


def _contains_without(fragments: Iterable[str], excluded: Iterable[str]) -> Matcher:
    fragments = tuple(fragments)
    excluded = tuple(excluded)
    return lambda header: (
        any(fragment in header for fragment in fragments)
        and not any(word in header for word in excluded)
    )


def _contains_without_words(fragment: str, excluded: Iterable[str]) -> Matcher:
    excluded = frozenset(excluded)
    return lambda header: (
        fragment in header and not excluded.intersection(_WORD_RE.findall(header))
    )


def conversion_category(header: str) -> str:
    """Nurse and support are checked before the generic care bucket."""
    lowered = header.strip().lower()
    if "nurs" in lowered:
        return NURSE
    if "support" in lowered:
        return SUPPORT
    return CARE


# Ordered: the first field that accepts a header claims it. Campaign comes
# last so "Campaign daily budget" style headers land on their metric.
# Within a field, matchers are ranked; a column found by an earlier matcher
# replaces one found by a later matcher.
FIELD_MATCHERS: tuple[tuple[str, tuple[Matcher, ...]], ...] = (
    ("date", (_equals("date", "day"),)),
    ("identity", (_contains("adset name", "ad set name"),)),
    ("daily_budget", (_contains("daily budget", "budget amount"),)),
    ("cost", (_contains("amount spent"), _equals("cost", "spend"))),
    ("ctr", (_contains("ctr"),)),
    (
        "conversions",
        (
            _contains_without(
                ("application", "conversion", "conv.", "apps"),
                ("cost", "rate", "value"),
            ),
        ),
    ),
    (
        "campaign",
        (
            _equals("campaign", "campaign name"),
            _contains_without_words(
                "campaign", ("status", "type", "id", "state", "budget")
            ),
        ),
    ),
)


@dataclass(frozen=True)
class HeaderLayout:
    date: int | None = None
    cost: int | None = None
    ctr: int | None = None
    daily_budget: int | None = None
    identity: int | None = None
    campaign: int | None = None
    conversions: tuple[tuple[int, str], ...] = ()


def _classify_header(header: str) -> tuple[str, int] | None:
    """Field name and matcher rank of the first field accepting the header."""
    lowered = header.strip().lower()
    if not lowered:
        return None
    for field_name, matchers in FIELD_MATCHERS:
        for rank, matcher in enumerate(matchers):
            if matcher(lowered):
                return field_name, rank
    return None


@lru_cache(maxsize=256)
def _build_layout(headers: tuple[str, ...]) -> HeaderLayout:
    # field -> (rank, column)
    singles: dict[str, tuple[int, int]] = {}
    conversions: list[tuple[int, str]] = []

    for idx, header in enumerate(headers):
        match = _classify_header(header)
        if match is None:
            continue
        field_name, rank = match
        if field_name == "conversions":
            conversions.append((idx, conversion_category(header)))
        elif field_name not in singles or rank < singles[field_name][0]:
            singles[field_name] = (rank, idx)

    def column(field_name: str) -> int | None:
        found = singles.get(field_name)
        return found[1] if found else None

    return HeaderLayout(
        date=column("date"),
        cost=column("cost"),
        ctr=column("ctr"),
        daily_budget=column("daily_budget"),
        identity=column("identity"),
        campaign=column("campaign"),
        conversions=tuple(conversions),
    )


def layout_for(headers: Sequence[object]) -> HeaderLayout:
    return _build_layout(tuple("" if h is None else str(h) for h in headers))


# ============================================================
# CELL PARSING
# ============================================================


def parse_number(value: object) -> float:
    """
    Currency symbols, %, thousands separators and codes are dropped;
    anything still unparsable is 0.0.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return 0.0

    cleaned = _NUMERIC_STRIP_RE.sub("", value)
    if not cleaned:
        return 0.0
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _cell(row: Sequence[object], idx: int | None) -> object:
    if idx is None or idx >= len(row):
        return ""
    value = row[idx]
    return "" if value is None else value


def _text(row: Sequence[object], idx: int | None) -> str:
    return str(_cell(row, idx)).strip()


# ============================================================
# NORMALIZATION
# ============================================================


def normalize_row(headers: Sequence[object], row: Sequence[object]) -> CanonicalRecord:
    layout = layout_for(headers)

    counts = {category: 0.0 for category in CONVERSION_CATEGORIES}
    for idx, category in layout.conversions:
        counts[category] += parse_number(_cell(row, idx))

    campaign = _text(row, layout.campaign)
    identity = _text(row, layout.identity) or campaign

    return CanonicalRecord(
        date=parse_date(_cell(row, layout.date)),
        cost=parse_number(_cell(row, layout.cost)),
        ctr=parse_number(_cell(row, layout.ctr)),
        daily_budget=parse_number(_cell(row, layout.daily_budget)),
        care_count=counts[CARE],
        nurse_count=counts[NURSE],
        support_count=counts[SUPPORT],
        identity_key=identity,
        campaign=campaign,
    )


def normalize_rows(values: Sequence[Sequence[object]] | None) -> list[CanonicalRecord]:
    """
    Header row + data rows -> records. Fewer than two rows means no data.
    """
    if not values or len(values) < 2:
        return []

    headers = values[0]
    return [normalize_row(headers, row) for row in values[1:] if row]
