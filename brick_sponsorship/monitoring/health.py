"""
Health check reporting.

Reports:
- Environment validation (missing variables and warnings)
- Which secrets are present (never their values)
- Counter store connectivity
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import structlog

from ..config import EnvironmentStatus, Settings, get_environment_status, get_settings
from ..core.inventory import InventoryStore

logger = structlog.get_logger(__name__)


class HealthCheck:
    """Health check service for configuration and dependencies."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        inventory_factory: Optional[Callable[[], InventoryStore]] = None,
        environment_status: Optional[EnvironmentStatus] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.inventory_factory = inventory_factory
        self.environment_status = environment_status

    async def check_store(self) -> Dict[str, Any]:
        """
        Check counter store connectivity.

        Returns:
            Dict[str, Any]: Store health status; failures are reported, not raised
        """
        if self.inventory_factory is None or not self.settings.redis_url:
            return {"status": "unconfigured", "service": "redis"}

        try:
            await self.inventory_factory().ping()
            return {
                "status": "healthy",
                "service": "redis",
                "message": "Redis connection successful",
            }
        except Exception as e:
            logger.error("redis_health_check_failed", error=str(e))
            return {"status": "unhealthy", "service": "redis", "error": type(e).__name__}

    def has_keys(self) -> Dict[str, bool]:
        return {
            "stripePublishable": bool(self.settings.stripe_publishable_key),
            "stripeSecret": bool(self.settings.stripe_secret_key),
            "webhookSecret": bool(self.settings.stripe_webhook_secret),
            "domain": bool(self.settings.public_domain),
            "redis": bool(self.settings.redis_url),
        }

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Dict[str, Any]: Overall health report
        """
        env_status = self.environment_status or get_environment_status()
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": self.settings.app_env,
            "environmentVariables": env_status.to_dict(),
            "hasKeys": self.has_keys(),
            "checks": {"redis": await self.check_store()},
        }
