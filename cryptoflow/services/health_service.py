"""
Health check service for monitoring application status.

Provides detailed health information about all system components.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from cryptoflow.pricing.models import utc_now

if TYPE_CHECKING:
    from cryptoflow.services.container import ServiceContainer

logger = logging.getLogger(__name__)


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: str  # "ok", "degraded", "error"
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        result = {
            "status": self.status,
        }
        if self.message:
            result["message"] = self.message
        if self.details:
            result.update(self.details)
        return result


@dataclass
class HealthReport:
    """Complete health report for the application."""

    status: str  # "healthy", "degraded", "unhealthy"
    timestamp: str
    version: str
    components: Dict[str, ComponentHealth] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "version": self.version,
            "components": {
                name: comp.to_dict()
                for name, comp in self.components.items()
            },
        }


class HealthService:
    """Service for checking application health."""

    VERSION = "1.0.0"

    def __init__(self, services: "ServiceContainer"):
        self.services = services

    def get_full_health(self) -> HealthReport:
        """
        Get complete health report for all components.

        Returns:
            HealthReport with status of all components.
        """
        components = {
            "rate_sources": self._check_sources(),
            "cache": self._check_cache(),
            "latest_rates": self._check_latest_rates(),
            "orders": self._check_orders(),
            "notifications": self._check_notifications(),
        }

        statuses = [c.status for c in components.values()]
        if all(s == "ok" for s in statuses):
            overall_status = "healthy"
        elif any(s == "error" for s in statuses):
            overall_status = "unhealthy"
        else:
            overall_status = "degraded"

        return HealthReport(
            status=overall_status,
            timestamp=utc_now().isoformat(),
            version=self.VERSION,
            components=components,
        )

    def get_simple_health(self) -> dict:
        """Get simple health check (for load balancers)."""
        return {
            "status": "ok",
            "timestamp": utc_now().isoformat(),
        }

    def is_ready(self) -> bool:
        """Ready once at least one rate source is configured."""
        return bool(self.services.resolver.sources)

    def _check_sources(self) -> ComponentHealth:
        names = self.services.resolver.source_names
        if not names:
            return ComponentHealth(
                name="rate_sources",
                status="error",
                message="No rate sources configured",
            )
        return ComponentHealth(
            name="rate_sources",
            status="ok",
            message=f"{len(names)} sources",
            details={"priority": names},
        )

    def _check_cache(self) -> ComponentHealth:
        return ComponentHealth(
            name="cache",
            status="ok",
            details=self.services.cache.get_stats(),
        )

    def _check_latest_rates(self) -> ComponentHealth:
        """Degraded when the last refresh had to use fallback or unknown rates."""
        refresher = self.services.refresher
        if refresher is None or refresher.last_refresh is None:
            return ComponentHealth(
                name="latest_rates",
                status="ok",
                message="No refresh yet",
            )

        degraded = [r.pair.key for r in refresher.latest if r.is_degraded]
        details = {
            "last_refresh": refresher.last_refresh.isoformat(),
            "pairs": len(refresher.latest),
        }
        if degraded:
            details["degraded_pairs"] = degraded
            return ComponentHealth(
                name="latest_rates",
                status="degraded",
                message=f"{len(degraded)} pairs on fallback rates",
                details=details,
            )
        return ComponentHealth(name="latest_rates", status="ok", details=details)

    def _check_orders(self) -> ComponentHealth:
        store = self.services.order_store
        return ComponentHealth(
            name="orders",
            status="ok",
            message=f"{store.count()} orders",
            details={"by_status": store.count_by_status()},
        )

    def _check_notifications(self) -> ComponentHealth:
        notifier = self.services.notifier
        if notifier.enabled:
            return ComponentHealth(name="notifications", status="ok", details={"channel": notifier.name})
        return ComponentHealth(
            name="notifications",
            status="degraded",
            message="Telegram not configured",
        )
