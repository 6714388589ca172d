"""
Notification channels for order events.
"""

from cryptoflow.notifications.base import Notifier, NullNotifier
from cryptoflow.notifications.telegram import TelegramNotifier, build_notifier

__all__ = [
    "Notifier",
    "NullNotifier",
    "TelegramNotifier",
    "build_notifier",
]
