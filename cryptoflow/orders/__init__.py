"""
Order lifecycle: status machine, store and creation service.
"""

from cryptoflow.orders.models import Order
from cryptoflow.orders.order_store import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    OrderStore,
)
from cryptoflow.orders.service import (
    CreateOrderRequest,
    OrderService,
    OrderValidationError,
    mask_card_number,
)
from cryptoflow.orders.status import ALLOWED_TRANSITIONS, OrderStatus, can_transition

__all__ = [
    "Order",
    "OrderStore",
    "OrderNotFoundError",
    "InvalidStatusTransitionError",
    "CreateOrderRequest",
    "OrderService",
    "OrderValidationError",
    "mask_card_number",
    "ALLOWED_TRANSITIONS",
    "OrderStatus",
    "can_transition",
]
