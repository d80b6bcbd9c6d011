from fastapi import APIRouter

from apps.pacewise.api.v1.endpoints import (
    clients,
    pacing,
    periods,
)

router = APIRouter(prefix="/v1")
router.include_router(periods.router, tags=["periods"])
router.include_router(clients.router, tags=["clients"])
router.include_router(pacing.router, tags=["pacing"])
