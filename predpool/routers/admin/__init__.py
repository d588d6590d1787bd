"""Admin router bundle. Every route requires the X-API-Key header."""

from fastapi import APIRouter, Depends

from ...dependencies import require_admin_key
from . import matches, participants, stages, teams, tours

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_key)],
)
router.include_router(stages.router)
router.include_router(tours.router)
router.include_router(matches.router)
router.include_router(teams.router)
router.include_router(participants.router)

__all__ = ["router"]
