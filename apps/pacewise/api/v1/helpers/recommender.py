# api/v1/helpers/recommender.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from apps.pacewise.api.v1.helpers.pacing import PacingResult
from shared.constants import OPTIMAL_CHANGE_ABS, OPTIMAL_CHANGE_PCT, PLATFORMS

CRITICAL = "critical"
GOOD = "good"
INCREASE = "increase"
DECREASE = "decrease"

MSG_OVER_BUDGET = "Already over budget - pause campaigns to avoid further overspend"
MSG_OPTIMAL = "Current budget is close to optimal"


@dataclass(frozen=True)
class PlatformSplit:
    current: float
    recommended: float

    @property
    def change(self) -> float:
        return self.recommended - self.current

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "recommended": self.recommended,
            "change": self.change,
        }


@dataclass(frozen=True)
class Recommendation:
    target_daily_budget: float
    current_daily_budget: float
    change: float
    change_pct: float
    urgency: str
    message: str
    per_platform_split: dict[str, PlatformSplit] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "targetDailyBudget": self.target_daily_budget,
            "currentDailyBudget": self.current_daily_budget,
            "change": self.change,
            "changePct": self.change_pct,
            "urgency": self.urgency,
            "message": self.message,
            "perPlatformSplit": {
                platform: split.to_dict()
                for platform, split in self.per_platform_split.items()
            },
        }


# ============================================================
# PLATFORM SPLIT
# ============================================================


def split_target(
    target: float,
    current_by_platform: Mapping[str, float],
    single_platform: str | None = None,
) -> dict[str, PlatformSplit]:
    """
    Distribute a target daily budget across platforms.

    Proportional to current budgets when any exist; otherwise all of it goes
    to the client's single platform, or an even split.
    """
    platforms = list(PLATFORMS)
    for platform in current_by_platform:
        if platform not in platforms:
            platforms.append(platform)
    if single_platform and single_platform not in platforms:
        platforms.append(single_platform)

    current = {p: float(current_by_platform.get(p, 0.0)) for p in platforms}
    current_total = sum(current.values())

    if target <= 0:
        return {p: PlatformSplit(current=current[p], recommended=0.0) for p in platforms}

    if current_total <= 0:
        if single_platform:
            shares = {p: 1.0 if p == single_platform else 0.0 for p in platforms}
        else:
            shares = {p: 1.0 / len(platforms) for p in platforms}
    else:
        shares = {p: current[p] / current_total for p in platforms}

    return {
        p: PlatformSplit(current=current[p], recommended=target * shares[p])
        for p in platforms
    }


# ============================================================
# RECOMMENDATION
# ============================================================


def _is_optimal(change: float, change_pct: float, current: float) -> bool:
    if abs(change) < OPTIMAL_CHANGE_ABS:
        return True
    return current > 0 and abs(change_pct) < OPTIMAL_CHANGE_PCT


def recommend(
    pacing: PacingResult,
    latest_budgets: Mapping[str, float],
    budget: float,
    total_spend: float,
    single_platform: str | None = None,
) -> Recommendation | None:
    """
    Daily budget that would land spend on budget by period end.

    Returns None once no days are left.
    """
    if pacing.days_left <= 0:
        return None

    current = sum(latest_budgets.values())

    if total_spend >= budget:
        return Recommendation(
            target_daily_budget=0.0,
            current_daily_budget=current,
            change=-current,
            change_pct=-100.0,
            urgency=CRITICAL,
            message=MSG_OVER_BUDGET,
            per_platform_split=split_target(0.0, latest_budgets, single_platform),
        )

    target = max(0.0, (budget - total_spend) / pacing.days_left)
    change = target - current
    change_pct = change / current * 100 if current > 0 else 0.0

    if _is_optimal(change, change_pct, current):
        urgency = GOOD
        message = MSG_OPTIMAL
    elif change > 0:
        urgency = INCREASE
        message = f"Increase budget to hit target ({abs(round(change_pct))}% increase needed)"
    else:
        urgency = DECREASE
        message = f"Decrease budget to avoid overspend ({abs(round(change_pct))}% decrease needed)"

    return Recommendation(
        target_daily_budget=target,
        current_daily_budget=current,
        change=change,
        change_pct=change_pct,
        urgency=urgency,
        message=message,
        per_platform_split=split_target(target, latest_budgets, single_platform),
    )
