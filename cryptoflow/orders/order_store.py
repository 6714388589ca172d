"""
In-memory order store.

Owns order records after creation. Status changes go through the
transition table; every other priced field is fixed at creation.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional

from cryptoflow.orders.models import Order
from cryptoflow.orders.status import OrderStatus, can_transition
from cryptoflow.pricing.models import utc_now

logger = logging.getLogger(__name__)


class OrderNotFoundError(Exception):
    """Raised when an order id does not exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class InvalidStatusTransitionError(Exception):
    """Raised when a status change is not allowed by the transition table."""

    def __init__(self, order_id: str, current: OrderStatus, target: OrderStatus):
        self.order_id = order_id
        self.current = current
        self.target = target
        super().__init__(
            f"Order {order_id} cannot move from {current.value} to {target.value}"
        )


class DuplicateOrderError(Exception):
    """Raised when an order id already exists."""


class OrderStore:
    """
    Dict-backed order store.

    Records are replaced, never mutated, so readers always see a consistent
    version of an order.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._orders: Dict[str, Order] = {}
        self._clock = clock

    def create(self, order: Order) -> Order:
        """
        Persist a new order.

        Raises:
            DuplicateOrderError: If the id is already taken.
        """
        if order.id in self._orders:
            raise DuplicateOrderError(f"Order already exists: {order.id}")
        self._orders[order.id] = order
        logger.info(f"Stored order {order.id} ({order.from_currency} -> {order.to_currency})")
        return order

    def exists(self, order_id: str) -> bool:
        return order_id in self._orders

    def get(self, order_id: str) -> Order:
        """
        Get an order by id.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(self, user_id: Optional[str] = None) -> List[Order]:
        """All orders, newest first, optionally for one user."""
        orders = [o for o in self._orders.values() if user_id is None or o.user_id == user_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def update_status(
        self,
        order_id: str,
        status: OrderStatus | str,
        tx_hash: Optional[str] = None,
        payout_tx_hash: Optional[str] = None,
    ) -> Order:
        """
        Move an order to a new status.

        Args:
            order_id: Order id.
            status: Target status.
            tx_hash: Deposit transaction hash, if known.
            payout_tx_hash: Payout transaction hash, if known.

        Returns:
            The updated order.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidStatusTransitionError: If the transition is not allowed.
            ValueError: If status is not a valid status value.
        """
        target = OrderStatus(status)
        order = self.get(order_id)

        if not can_transition(order.status, target):
            raise InvalidStatusTransitionError(order_id, order.status, target)

        updated = replace(
            order,
            status=target,
            tx_hash=tx_hash if tx_hash is not None else order.tx_hash,
            payout_tx_hash=payout_tx_hash if payout_tx_hash is not None else order.payout_tx_hash,
            updated_at=self._clock(),
        )
        self._orders[order_id] = updated
        logger.info(f"Order {order_id}: {order.status.value} -> {target.value}")
        return updated

    def count(self) -> int:
        return len(self._orders)

    def count_by_status(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for order in self._orders.values():
            counts[order.status.value] = counts.get(order.status.value, 0) + 1
        return counts
