"""
In-process event hub.

Fan-out of rate and order events to subscribers such as WebSocket
connections. Subscribers are async callables taking one event dict.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable

from cryptoflow.pricing.models import utc_now

logger = logging.getLogger(__name__)

Subscriber = Callable[[dict[str, Any]], Awaitable[None]]

RATES_UPDATE = "rates_update"
NEW_ORDER = "new_order"
ORDER_UPDATE = "order_update"


class EventHub:
    """
    Publish/subscribe hub.

    Subscribers are delivered to concurrently, each bounded by
    delivery_timeout seconds. A subscriber that raises or times out is
    logged and dropped; other subscribers still receive the event.
    """

    DEFAULT_DELIVERY_TIMEOUT = 5.0  # seconds

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        delivery_timeout: float = DEFAULT_DELIVERY_TIMEOUT,
    ) -> None:
        self._subscribers: list[Subscriber] = []
        self._clock = clock
        self.delivery_timeout = delivery_timeout

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns:
            A callable that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def make_event(self, event_type: str, data: Any) -> dict[str, Any]:
        return {
            "type": event_type,
            "data": data,
            "timestamp": self._clock().isoformat(),
        }

    async def publish(self, event_type: str, data: Any) -> int:
        """
        Deliver an event to every subscriber.

        Returns:
            Number of subscribers that received the event.
        """
        event = self.make_event(event_type, data)
        results = await asyncio.gather(
            *(self._deliver(callback, event) for callback in list(self._subscribers))
        )
        return sum(results)

    async def _deliver(self, callback: Subscriber, event: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(callback(event), timeout=self.delivery_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                f"Dropping subscriber after delivery timed out ({self.delivery_timeout}s)"
            )
        except Exception as e:
            logger.warning(f"Dropping subscriber after delivery failure: {e}")

        if callback in self._subscribers:
            self._subscribers.remove(callback)
        return False
