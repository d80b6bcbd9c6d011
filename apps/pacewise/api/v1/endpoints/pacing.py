from fastapi import APIRouter, HTTPException, Query, Request

from apps.pacewise.api.v1.helpers.evaluations import REGISTRY
from apps.pacewise.api.v1.helpers.periods import parse_month_selector
from apps.pacewise.api.v1.helpers.pipeline import evaluate_clients

router = APIRouter()


# ============================================================
# PACING
# ============================================================


@router.get("/pacing")
def get_pacing(
    request: Request,
    month: str = Query("current"),
    clients: str | None = Query(None),
    compare: bool = Query(False),
):
    """
    Example request:
        GET /api/pacewise/v1/pacing?month=current&clients=Apollo,Brandon%20Trust&compare=true

    Example response:
        {
          "evaluationId": "5f0c...",
          "month": "current",
          "today": "2026-03-10",
          "published": true,
          "clients": [
            {
              "client": "Apollo",
              "budget": 3000.0,
              "period": {"start": "2026-02-26", "end": "2026-03-25", ...},
              "pacing": {"status": "HOT", "projectedSpend": 3410.5, ...},
              "recommendation": {"urgency": "decrease", ...},
              "failedSources": []
            }
          ],
          "excludedClients": []
        }
    """
    try:
        selector = parse_month_selector(month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    ticket = REGISTRY.begin(selector.value)
    evaluation = evaluate_clients(selector, client_names=clients, compare=compare)
    published = REGISTRY.publish(ticket, evaluation)
    request.state.evaluation_id = evaluation.evaluation_id

    return {**evaluation.to_dict(), "published": published}


@router.get("/pacing/latest")
def get_latest_pacing():
    """
    Example request:
        GET /api/pacewise/v1/pacing/latest
    """
    evaluation = REGISTRY.latest()
    if evaluation is None:
        raise HTTPException(status_code=404, detail="No evaluation has been published yet")
    return evaluation.to_dict()
