"""FastAPI routes for reporting configuration health."""

from consulconf.api.health import ConfigHealthService, create_health_router

__all__ = ["ConfigHealthService", "create_health_router"]
