"""
Data models for rate resolution and order pricing.

Contains typed dataclasses shared by the rate cache, resolver and pricer.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

USD = "usd"

# Amounts and rates are carried with 8 decimal places.
AMOUNT_QUANTUM = Decimal("0.00000001")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def quantize_amount(value: Decimal) -> Decimal:
    """Quantize an amount to 8 decimal places."""
    return value.quantize(AMOUNT_QUANTUM)


class RateOrigin(str, Enum):
    """
    Where a resolved rate came from.

    Values:
        LIVE: Direct upstream asset price (asset -> USD).
        DERIVED: Computed from live legs, a fiat multiplier, or a USD-peg identity.
        OVERRIDE: Configured direct fiat-pair override.
        FALLBACK: Static last-known-good table after every live source failed.
        UNKNOWN: No source and no table entry; the rate is a placeholder of 1.
    """
    LIVE = "live"
    DERIVED = "derived"
    OVERRIDE = "override"
    FALLBACK = "fallback"
    UNKNOWN = "unknown"


class RateType(str, Enum):
    """Order rate type."""
    FIXED = "fixed"
    FLOAT = "float"


@dataclass(frozen=True)
class CurrencyPair:
    """Ordered currency pair. (a, b) and (b, a) are distinct."""

    from_currency: str
    to_currency: str

    @property
    def key(self) -> str:
        """Literal pair string used by the static rate tables."""
        return f"{self.from_currency}-{self.to_currency}"

    @property
    def is_identity(self) -> bool:
        return self.from_currency == self.to_currency

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class ResolvedRate:
    """
    A resolved conversion rate.

    Attributes:
        pair: The ordered currency pair.
        rate: Units of `to_currency` per unit of `from_currency` (> 0).
        resolved_at: When the rate was resolved (UTC).
        origin: How the rate was obtained.
    """

    pair: CurrencyPair
    rate: Decimal
    resolved_at: datetime
    origin: RateOrigin

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError(f"Rate for {self.pair} must be positive, got {self.rate}")

    @property
    def is_degraded(self) -> bool:
        """True when the rate did not come from a live upstream."""
        return self.origin in (RateOrigin.FALLBACK, RateOrigin.UNKNOWN)

    def to_payload(self) -> dict[str, Any]:
        """Payload shape served by the rate endpoint and the broadcaster."""
        return {
            "fromCurrency": self.pair.from_currency,
            "toCurrency": self.pair.to_currency,
            "rate": f"{self.rate:.8f}",
            "timestamp": self.resolved_at.isoformat(),
            "source": self.origin.value,
            "degraded": self.is_degraded,
        }


@dataclass(frozen=True)
class OrderPricing:
    """Initial pricing snapshot for an order."""

    from_currency: str
    to_currency: str
    from_amount: Decimal
    platform_fee: Decimal
    network_fee: Decimal
    net_amount: Decimal
    exchange_rate: Decimal
    rate_origin: RateOrigin
    to_amount: Decimal
    rate_type: RateType
    rate_lock_expiry: datetime | None
    priced_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "fromCurrency": self.from_currency,
            "toCurrency": self.to_currency,
            "fromAmount": str(self.from_amount),
            "platformFee": str(self.platform_fee),
            "networkFee": str(self.network_fee),
            "netAmount": str(self.net_amount),
            "exchangeRate": str(self.exchange_rate),
            "rateSource": self.rate_origin.value,
            "toAmount": str(self.to_amount),
            "rateType": self.rate_type.value,
            "rateLockExpiry": self.rate_lock_expiry.isoformat() if self.rate_lock_expiry else None,
            "pricedAt": self.priced_at.isoformat(),
        }
