"""
Notifier interface.

Notifier is the collaborator the order service calls after an order is
created or changes status.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cryptoflow.orders.models import Order


class Notifier:
    """Notification collaborator. The base implementation does nothing."""

    name = "none"

    @property
    def enabled(self) -> bool:
        return False

    async def notify_order_created(self, order: "Order") -> bool:
        return False

    async def notify_status_changed(self, order: "Order") -> bool:
        return False

    async def close(self) -> None:
        return None


class NullNotifier(Notifier):
    """Used when no notification channel is configured."""
