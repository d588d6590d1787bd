"""Player-facing pool router bundle."""

from fastapi import APIRouter

from . import predictions, stages

router = APIRouter(prefix="/api/pool", tags=["pool"])
router.include_router(stages.router)
router.include_router(predictions.router)

__all__ = ["router"]
