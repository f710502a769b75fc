"""Liveness and readiness checks."""

import asyncio
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from folio_api.config import Settings, get_settings
from folio_api.dependencies import check_database_health, check_temporal_health

router = APIRouter()


class HealthStatus(BaseModel):
    status: Literal["healthy"]
    timestamp: datetime
    version: str


class ReadinessStatus(BaseModel):
    """
    ``ready`` follows the database alone. A Temporal outage only delays
    lifecycle jobs, so it degrades the API without taking it out of rotation.
    """

    status: Literal["ready", "degraded", "unavailable"]
    ready: bool
    timestamp: datetime
    services: dict[str, bool]


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    return HealthStatus(status="healthy", timestamp=datetime.now(UTC), version="0.1.0")


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_check(
    response: Response,
    settings: Settings = Depends(get_settings),
) -> ReadinessStatus:
    database, temporal = await asyncio.gather(
        check_database_health(settings),
        check_temporal_health(settings),
    )
    if not database:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        state = "unavailable"
    else:
        state = "ready" if temporal else "degraded"
    return ReadinessStatus(
        status=state,
        ready=database,
        timestamp=datetime.now(UTC),
        services={"database": database, "temporal": temporal},
    )
