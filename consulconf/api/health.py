"""
consulconf - Health API Routes

Exposes the refresh health of a ConsulSource so a service can report stale
configuration on its readiness check:

    app.include_router(create_health_router(source, max_staleness=60))

Patterns Applied:
- Health Check Pattern: HealthService class wrapped by thin endpoints
- Pydantic response models

Anti-Patterns Avoided:
- Bare except clauses
- Missing response models
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from consulconf.core.logging import get_logger
from consulconf.source.consul import ConsulSource

logger = get_logger(__name__)


# =============================================================================
# Response Models
# =============================================================================


class ConfigHealthResponse(BaseModel):
    """Refresh health of a configuration source."""

    status: str
    namespace: str
    version: int
    last_attempt_at: datetime | None = None
    last_success_at: datetime | None = None
    consecutive_failures: int = 0
    last_error: str | None = None
    cancelled: bool = False


# =============================================================================
# Health Service
# =============================================================================


class ConfigHealthService:
    """Turns a source's RefreshStatus into a health verdict.

    A source is unhealthy when it was cancelled, has never loaded, or has not
    read Consul successfully within max_staleness.
    """

    def __init__(
        self,
        source: ConsulSource,
        max_staleness: float | timedelta | None = None,
    ) -> None:
        """Initialize health service.

        Args:
            source: Source to report on
            max_staleness: Allowed age of the last successful read (None disables)
        """
        self._source = source
        self._max_staleness = max_staleness

    def check(self) -> tuple[dict[str, Any], bool]:
        """Check source health.

        Returns:
            Tuple of (health dict, is_healthy bool)
        """
        refresh = self._source.status()

        if refresh.cancelled:
            verdict = "cancelled"
        elif refresh.last_success_at is None:
            verdict = "not_loaded"
        elif self._max_staleness is not None and refresh.is_stale(self._max_staleness):
            verdict = "stale"
        else:
            verdict = "healthy"

        result: dict[str, Any] = {
            "status": verdict,
            "namespace": self._source.namespace.name,
            "version": refresh.version,
            "last_attempt_at": refresh.last_attempt_at,
            "last_success_at": refresh.last_success_at,
            "consecutive_failures": refresh.consecutive_failures,
            "last_error": refresh.last_error,
            "cancelled": refresh.cancelled,
        }
        return result, verdict == "healthy"


# =============================================================================
# Router
# =============================================================================


def create_health_router(
    source: ConsulSource,
    max_staleness: float | timedelta | None = None,
    path: str = "/health/config",
) -> APIRouter:
    """Build a router reporting on source.

    Args:
        source: Source to report on
        max_staleness: Allowed age of the last successful read in seconds
        path: Route path

    Returns:
        APIRouter with a single GET route (200 healthy, 503 otherwise)
    """
    service = ConfigHealthService(source, max_staleness=max_staleness)
    router = APIRouter(tags=["health"])

    @router.get(
        path,
        response_model=ConfigHealthResponse,
        responses={
            200: {"description": "Configuration is fresh"},
            503: {"description": "Configuration is stale, missing or frozen"},
        },
        summary="Configuration Health",
    )
    async def config_health() -> JSONResponse:
        data, healthy = service.check()
        status_code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
        logger.debug("config_health_check", status=data["status"], healthy=healthy)
        body = ConfigHealthResponse(**data).model_dump(mode="json")
        return JSONResponse(content=body, status_code=status_code)

    return router
