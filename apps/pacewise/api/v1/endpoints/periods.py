from fastapi import APIRouter, HTTPException, Query

from apps.pacewise.api.v1.helpers.config import get_cycle_cutoffs
from apps.pacewise.api.v1.helpers.periods import (
    available_months,
    parse_month_selector,
    resolve_period,
)
from shared.constants import STANDARD_CYCLE
from shared.utils import get_today

router = APIRouter()


# ============================================================
# PERIODS
# ============================================================


@router.get("/periods/months")
def get_months():
    """
    Example request:
        GET /api/pacewise/v1/periods/months

    Example response:
        [
          {"value": "current", "label": "Current Period", "isCurrent": true},
          {"value": "2026-01", "label": "January 2026", "isCurrent": false}
        ]
    """
    return available_months(get_today())


@router.get("/periods/resolve")
def get_resolved_period(
    cycle_type: str = Query(STANDARD_CYCLE, alias="cycleType"),
    month: str = Query("current"),
):
    """
    Example request:
        GET /api/pacewise/v1/periods/resolve?cycleType=apollo&month=2026-03

    Example response:
        {
          "start": "2026-02-26",
          "end": "2026-03-25",
          "label": "Feb 26 - Mar 25",
          "cycleType": "apollo",
          "daysTotal": 28,
          "isHistorical": true
        }
    """
    try:
        selector = parse_month_selector(month)
        period = resolve_period(
            cycle_type,
            selector,
            get_today(),
            extra_cutoffs=get_cycle_cutoffs(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return period.to_dict()
