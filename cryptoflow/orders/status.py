"""
Order status codes and the allowed transitions between them.

    awaiting_deposit -> confirmed -> processing -> completed

failed and refunded are reachable from any non-terminal status.
Terminal statuses have no exits and no transition goes backwards.
"""

from enum import Enum


class OrderStatus(str, Enum):
    AWAITING_DEPOSIT = "awaiting_deposit"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


INITIAL_STATUS = OrderStatus.AWAITING_DEPOSIT

TERMINAL_STATUSES = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.FAILED,
    OrderStatus.REFUNDED,
})

_ERROR_EXITS = frozenset({OrderStatus.FAILED, OrderStatus.REFUNDED})

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.AWAITING_DEPOSIT: frozenset({OrderStatus.CONFIRMED}) | _ERROR_EXITS,
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING}) | _ERROR_EXITS,
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED}) | _ERROR_EXITS,
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.FAILED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    """Check whether an order may move from `current` to `target`."""
    return OrderStatus(target) in ALLOWED_TRANSITIONS[OrderStatus(current)]


def get_status_description(status: OrderStatus) -> str:
    """Human-readable description of a status, used in notifications."""
    descriptions = {
        OrderStatus.AWAITING_DEPOSIT: "Waiting for the client deposit",
        OrderStatus.CONFIRMED: "Deposit confirmed",
        OrderStatus.PROCESSING: "Payout in progress",
        OrderStatus.COMPLETED: "Payout sent",
        OrderStatus.FAILED: "Order failed",
        OrderStatus.REFUNDED: "Deposit refunded",
    }
    return descriptions.get(status, "Unknown status")
