from fastapi import APIRouter

from apps.pacewise.api.v1.helpers.config import get_cycle_cutoffs, get_spreadsheet_id
from apps.pacewise.api.v1.helpers.ggSheet import read_range
from apps.pacewise.api.v1.helpers.pipeline import load_clients

router = APIRouter()


@router.get("/clients")
def get_clients():
    """
    Example request:
        GET /api/pacewise/v1/clients

    Example response:
        {
          "clients": [
            {
              "name": "Apollo",
              "budget": 3000.0,
              "cycleType": "apollo",
              "sourcePrefix": "Apollo",
              "skipSpendSources": false,
              "campaignFilter": [],
              "singlePlatform": null
            }
          ],
          "excludedClients": [{"client": "Acme", "reason": "missing budget"}]
        }
    """
    clients, excluded = load_clients(
        get_spreadsheet_id(),
        read_range,
        get_cycle_cutoffs(),
    )
    return {
        "clients": [client.to_dict() for client in clients],
        "excludedClients": excluded,
    }
