"""
Order record.

Immutable: the store replaces the record on status changes, and only
status, transaction hashes and updated_at ever differ between versions.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from cryptoflow.orders.status import OrderStatus
from cryptoflow.pricing.models import RateType


@dataclass(frozen=True)
class Order:
    id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal
    exchange_rate: Decimal
    rate_type: RateType
    platform_fee: Decimal
    network_fee: Decimal
    rate_lock_expiry: Optional[datetime]
    status: OrderStatus
    deposit_address: str
    created_at: datetime
    updated_at: datetime
    user_id: Optional[str] = None
    recipient_address: Optional[str] = None
    card_details: Optional[str] = None
    contact_email: Optional[str] = None
    tx_hash: Optional[str] = None
    payout_tx_hash: Optional[str] = None
    rate_source: Optional[str] = None

    def is_rate_locked(self, now: datetime) -> bool:
        """True while a fixed-rate lock is still in force."""
        return self.rate_lock_expiry is not None and now < self.rate_lock_expiry

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape served by the REST API."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "fromCurrency": self.from_currency,
            "toCurrency": self.to_currency,
            "fromAmount": str(self.from_amount),
            "toAmount": str(self.to_amount),
            "exchangeRate": str(self.exchange_rate),
            "rateType": self.rate_type.value,
            "rateSource": self.rate_source,
            "platformFee": str(self.platform_fee),
            "networkFee": str(self.network_fee),
            "rateLockExpiry": self.rate_lock_expiry.isoformat() if self.rate_lock_expiry else None,
            "status": self.status.value,
            "depositAddress": self.deposit_address,
            "recipientAddress": self.recipient_address,
            "cardDetails": self.card_details,
            "contactEmail": self.contact_email,
            "txHash": self.tx_hash,
            "payoutTxHash": self.payout_tx_hash,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
