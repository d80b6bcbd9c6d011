# api/v1/helpers/aggregator.py

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping

from apps.pacewise.api.v1.helpers.normalizer import (
    CARE,
    NURSE,
    SUPPORT,
    CONVERSION_CATEGORIES,
    CanonicalRecord,
)
from apps.pacewise.api.v1.helpers.periods import BillingPeriod
from shared.constants import PLATFORMS

WILDCARD = "*"


@dataclass(frozen=True)
class ConversionTotals:
    care: float = 0.0
    nurse: float = 0.0
    support: float = 0.0

    @property
    def total(self) -> float:
        return self.care + self.nurse + self.support

    def to_dict(self) -> dict:
        return {
            "care": self.care,
            "nurse": self.nurse,
            "support": self.support,
            "total": self.total,
        }


@dataclass(frozen=True)
class AggregateResult:
    total_spend: float
    spend_by_platform: dict[str, float]
    conversions: ConversionTotals
    average_ctr: float
    latest_daily_budget_by_platform: dict[str, float]
    records_in_period: int = 0
    latest_budget_date_by_platform: dict[str, date | None] = field(default_factory=dict)

    @property
    def cpa(self) -> float | None:
        if self.conversions.total <= 0:
            return None
        return self.total_spend / self.conversions.total

    @property
    def current_daily_budget(self) -> float:
        return sum(self.latest_daily_budget_by_platform.values())

    def to_dict(self) -> dict:
        return {
            "totalSpend": self.total_spend,
            "spendByPlatform": dict(self.spend_by_platform),
            "conversions": self.conversions.to_dict(),
            "cpa": self.cpa,
            "averageCtr": self.average_ctr,
            "currentDailyBudget": self.current_daily_budget,
            "latestDailyBudgetByPlatform": dict(self.latest_daily_budget_by_platform),
            "latestBudgetDateByPlatform": {
                platform: value.isoformat() if value else None
                for platform, value in self.latest_budget_date_by_platform.items()
            },
            "recordsInPeriod": self.records_in_period,
        }


# ============================================================
# FILTERS
# ============================================================


def is_wildcard(campaign_filter: Iterable[str] | None) -> bool:
    if not campaign_filter:
        return True
    names = {str(name).strip() for name in campaign_filter}
    return not names - {"", WILDCARD}


def matches_filter(record: CanonicalRecord, campaign_filter: Iterable[str] | None) -> bool:
    """
    Literal name match against the record's campaign or identity key.
    """
    if is_wildcard(campaign_filter):
        return True
    names = set(campaign_filter)
    return record.campaign in names or record.identity_key in names


def in_period(
    record: CanonicalRecord,
    period: BillingPeriod,
    campaign_filter: Iterable[str] | None = None,
) -> bool:
    return period.contains(record.date) and matches_filter(record, campaign_filter)


def in_window(record: CanonicalRecord, start: date, end: date) -> bool:
    return record.date is not None and start <= record.date <= end


# ============================================================
# LATEST DAILY BUDGET
# ============================================================


def latest_daily_budget(
    records: Iterable[CanonicalRecord],
    campaign_filter: Iterable[str] | None = None,
) -> tuple[float, date | None]:
    """
    Sum of per-identity daily budgets on the most recent date that has any
    budget figure. Not bounded by the billing period.
    """
    by_date: dict[date, dict[str, float]] = defaultdict(dict)

    for record in records:
        if record.date is None or record.daily_budget <= 0:
            continue
        if not matches_filter(record, campaign_filter):
            continue
        budgets = by_date[record.date]
        key = record.identity_key
        budgets[key] = max(budgets.get(key, 0.0), record.daily_budget)

    if not by_date:
        return 0.0, None

    latest = max(by_date)
    return sum(by_date[latest].values()), latest


# ============================================================
# AGGREGATION
# ============================================================


def _add_conversions(counts: dict[str, float], record: CanonicalRecord) -> None:
    for category in CONVERSION_CATEGORIES:
        counts[category] += record.conversions(category)


def aggregate(
    records_by_platform: Mapping[str, Iterable[CanonicalRecord]],
    conversion_records: Iterable[CanonicalRecord],
    period: BillingPeriod,
    campaign_filter: Iterable[str] | None = None,
) -> AggregateResult:
    """
    Fold platform and conversion-source records into period totals.
    """
    spend_by_platform: dict[str, float] = {p: 0.0 for p in PLATFORMS}
    latest_budgets: dict[str, float] = {p: 0.0 for p in PLATFORMS}
    latest_dates: dict[str, date | None] = {p: None for p in PLATFORMS}
    counts = {category: 0.0 for category in CONVERSION_CATEGORIES}
    ctr_values: list[float] = []
    in_period_count = 0

    for platform, records in records_by_platform.items():
        records = list(records)
        spend_by_platform.setdefault(platform, 0.0)

        for record in records:
            if not in_period(record, period, campaign_filter):
                continue
            in_period_count += 1
            spend_by_platform[platform] += record.cost
            _add_conversions(counts, record)
            if record.ctr > 0:
                ctr_values.append(record.ctr)

        budget, budget_date = latest_daily_budget(records, campaign_filter)
        latest_budgets[platform] = budget
        latest_dates[platform] = budget_date

    for record in conversion_records:
        if not in_period(record, period, campaign_filter):
            continue
        in_period_count += 1
        _add_conversions(counts, record)

    return AggregateResult(
        total_spend=sum(spend_by_platform.values()),
        spend_by_platform=spend_by_platform,
        conversions=ConversionTotals(
            care=counts[CARE],
            nurse=counts[NURSE],
            support=counts[SUPPORT],
        ),
        average_ctr=sum(ctr_values) / len(ctr_values) if ctr_values else 0.0,
        latest_daily_budget_by_platform=latest_budgets,
        records_in_period=in_period_count,
        latest_budget_date_by_platform=latest_dates,
    )


def window_metrics(
    records_by_platform: Mapping[str, Iterable[CanonicalRecord]],
    conversion_records: Iterable[CanonicalRecord],
    start: date,
    end: date,
    campaign_filter: Iterable[str] | None = None,
) -> dict[str, float | None]:
    """
    Spend, conversions, CPA and CTR over an arbitrary inclusive window.
    """
    spend = 0.0
    conversions = 0.0
    ctr_values: list[float] = []

    for records in records_by_platform.values():
        for record in records:
            if not in_window(record, start, end) or not matches_filter(record, campaign_filter):
                continue
            spend += record.cost
            conversions += sum(record.conversions(c) for c in CONVERSION_CATEGORIES)
            if record.ctr > 0:
                ctr_values.append(record.ctr)

    for record in conversion_records:
        if not in_window(record, start, end) or not matches_filter(record, campaign_filter):
            continue
        conversions += sum(record.conversions(c) for c in CONVERSION_CATEGORIES)

    return {
        "spend": spend,
        "conversions": conversions,
        "cpa": spend / conversions if conversions > 0 else None,
        "ctr": sum(ctr_values) / len(ctr_values) if ctr_values else 0.0,
    }
