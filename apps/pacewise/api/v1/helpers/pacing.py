from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from apps.pacewise.api.v1.helpers.periods import BillingPeriod
from shared.constants import PACE_TOLERANCE, TARGET_BAND_HIGH, TARGET_BAND_LOW

ON_TRACK = "ON_TRACK"
HOT = "HOT"
COLD = "COLD"
OVER_BUDGET = "OVER_BUDGET"
COMPLETE = "COMPLETE"

TARGET_HIT = "TARGET_HIT"
UNDER_BUDGET = "UNDER_BUDGET"


@dataclass(frozen=True)
class PacingResult:
    days_total: int
    days_elapsed: int
    days_left: int
    projected_spend: float
    pct_used: float
    projected_over_pct: float
    status: str
    outcome: str | None = None
    variance: float | None = None

    def to_dict(self) -> dict:
        return {
            "daysTotal": self.days_total,
            "daysElapsed": self.days_elapsed,
            "daysLeft": self.days_left,
            "projectedSpend": self.projected_spend,
            "pctUsed": self.pct_used,
            "projectedOverPct": self.projected_over_pct,
            "status": self.status,
            "outcome": self.outcome,
            "variance": self.variance,
        }


def days_elapsed_in(period: BillingPeriod, today: date) -> int:
    if period.is_historical:
        return period.days_total
    elapsed = (today - period.start).days + 1
    return max(0, min(elapsed, period.days_total))


def project_spend(total_spend: float, days_elapsed: int, days_left: int) -> float:
    if days_elapsed <= 0:
        return total_spend
    return total_spend + (total_spend / days_elapsed) * days_left


def classify_outcome(pct_used: float) -> str:
    if pct_used < TARGET_BAND_LOW:
        return UNDER_BUDGET
    if pct_used > TARGET_BAND_HIGH:
        return OVER_BUDGET
    return TARGET_HIT


def classify(
    total_spend: float,
    budget: float,
    period: BillingPeriod,
    today: date,
) -> PacingResult:
    """
    Project end-of-period spend and classify the pace.

    Later rules take precedence: HOT / COLD from the projection, then
    OVER_BUDGET once spend reaches budget, then COMPLETE for concluded
    periods.
    """
    days_total = period.days_total
    days_elapsed = days_elapsed_in(period, today)
    days_left = max(0, days_total - days_elapsed)

    projected = project_spend(total_spend, days_elapsed, days_left)

    if budget > 0:
        pct_used = total_spend / budget * 100
        projected_over_pct = (projected / budget - 1) * 100
    else:
        pct_used = 0.0
        projected_over_pct = 0.0

    status = ON_TRACK
    if projected > budget * (1 + PACE_TOLERANCE):
        status = HOT
    elif projected < budget * (1 - PACE_TOLERANCE):
        status = COLD
    if total_spend >= budget:
        status = OVER_BUDGET
    if period.is_historical:
        status = COMPLETE

    outcome = None
    variance = None
    if period.is_historical:
        outcome = classify_outcome(pct_used)
        variance = total_spend - budget

    return PacingResult(
        days_total=days_total,
        days_elapsed=days_elapsed,
        days_left=days_left,
        projected_spend=projected,
        pct_used=pct_used,
        projected_over_pct=projected_over_pct,
        status=status,
        outcome=outcome,
        variance=variance,
    )
