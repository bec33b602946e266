"""System endpoints (health)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from .. import schemas

router = APIRouter(prefix="", tags=["System"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=schemas.ApiResponse[schemas.HealthData])
def get_health() -> schemas.ApiResponse[schemas.HealthData]:
    """Liveness check."""
    return schemas.ApiResponse(
        message="BlogSpace API is running!",
        data=schemas.HealthData(timestamp=datetime.now(timezone.utc)),
    )
