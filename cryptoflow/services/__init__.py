"""
Services layer.

Event hub, periodic rate refresher and health checks. The service
container lives in cryptoflow.services.container.
"""

from cryptoflow.services.event_hub import EventHub
from cryptoflow.services.health_service import HealthService
from cryptoflow.services.rate_refresher import RateRefresher

__all__ = ["EventHub", "HealthService", "RateRefresher"]
