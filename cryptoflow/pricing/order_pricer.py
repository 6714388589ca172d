"""
Order pricer module.

Computes the initial pricing snapshot of an order.

Formula:
    platform_fee = from_amount × platform_fee_pct / 100
    network_fee  = per-asset constant (default for other assets)
    net_amount   = from_amount − platform_fee − network_fee
    rate         = resolved rate, rounded to 8 places
    to_amount    = net_amount × rate

Fees are denominated in the source currency. Fixed-rate orders carry a
rate-lock expiry; float-rate orders do not.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Callable

from cryptoflow.pricing.models import OrderPricing, RateType, quantize_amount, utc_now
from cryptoflow.pricing.rate_resolver import RateResolver
from cryptoflow.utils.config_loader import FeesConfig

logger = logging.getLogger(__name__)


class InsufficientAmountError(Exception):
    """Fees consume the whole submitted amount."""

    def __init__(self, from_amount: Decimal, total_fees: Decimal):
        self.from_amount = from_amount
        self.total_fees = total_fees
        super().__init__(
            f"Amount {from_amount} does not cover fees of {total_fees}"
        )


class AmountOutOfRangeError(ValueError):
    """Amount too large to price at 8 decimal places."""

    def __init__(self, from_amount: Decimal):
        self.from_amount = from_amount
        super().__init__(f"Amount {from_amount} is too large to price")


class OrderPricer:
    """
    Prices orders from resolved rates.

    Attributes:
        resolver: Rate resolver used for the exchange rate.
        platform_fee_rate: Platform fee as a fraction (0.005 = 0.5%).
        network_fees: Per-asset flat network fee.
        default_network_fee: Network fee for assets without an entry.
        rate_lock: Lock duration for fixed-rate orders.
    """

    def __init__(
        self,
        resolver: RateResolver,
        fees: FeesConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        rate_lock_minutes: int = 10,
    ) -> None:
        """
        Initialize the order pricer.

        Args:
            resolver: Rate resolver.
            fees: Fee configuration; defaults to 0.5% platform fee.
            clock: Returns the current UTC datetime.
            rate_lock_minutes: Fixed-rate lock duration.
        """
        fees = fees or FeesConfig()
        self.resolver = resolver
        self.platform_fee_rate = Decimal(str(fees.platform_fee_pct)) / Decimal("100")
        self.network_fees = {k: Decimal(str(v)) for k, v in fees.network_fees.items()}
        self.default_network_fee = Decimal(str(fees.default_network_fee))
        self.rate_lock = timedelta(minutes=rate_lock_minutes)
        self._clock = clock

    def network_fee_for(self, currency_id: str) -> Decimal:
        """Flat network fee for transferring the source asset."""
        return self.network_fees.get(currency_id, self.default_network_fee)

    async def price_order(
        self,
        from_currency: str,
        to_currency: str,
        from_amount: Decimal,
        rate_type: RateType | str,
    ) -> OrderPricing:
        """
        Price an order.

        Args:
            from_currency: Source currency id.
            to_currency: Destination currency id.
            from_amount: Amount submitted, in the source currency.
            rate_type: "fixed" or "float".

        Returns:
            OrderPricing snapshot.

        Raises:
            ValueError: If rate_type is invalid or from_amount is not positive.
            AmountOutOfRangeError: If an amount exceeds decimal precision.
            InsufficientAmountError: If fees consume the whole amount.
            CurrencyNotFoundError: If a currency id is unknown.
        """
        rate_type = RateType(rate_type)
        from_amount = Decimal(str(from_amount))
        if from_amount <= 0:
            raise ValueError(f"Amount must be positive, got {from_amount}")

        try:
            submitted = quantize_amount(from_amount)
            platform_fee = quantize_amount(from_amount * self.platform_fee_rate)
            network_fee = quantize_amount(self.network_fee_for(from_currency))
            net_amount = quantize_amount(from_amount - platform_fee - network_fee)
        except InvalidOperation:
            raise AmountOutOfRangeError(from_amount) from None

        if net_amount <= 0:
            raise InsufficientAmountError(from_amount, platform_fee + network_fee)

        resolved = await self.resolver.resolve(from_currency, to_currency)
        now = self._clock()

        try:
            exchange_rate = quantize_amount(resolved.rate)
            to_amount = quantize_amount(net_amount * exchange_rate)
        except InvalidOperation:
            raise AmountOutOfRangeError(from_amount) from None

        rate_lock_expiry = now + self.rate_lock if rate_type is RateType.FIXED else None

        if resolved.is_degraded:
            logger.warning(
                f"Pricing {from_currency}->{to_currency} with degraded rate "
                f"{resolved.rate} ({resolved.origin.value})"
            )

        return OrderPricing(
            from_currency=from_currency,
            to_currency=to_currency,
            from_amount=submitted,
            platform_fee=platform_fee,
            network_fee=network_fee,
            net_amount=net_amount,
            exchange_rate=exchange_rate,
            rate_origin=resolved.origin,
            to_amount=to_amount,
            rate_type=rate_type,
            rate_lock_expiry=rate_lock_expiry,
            priced_at=now,
        )
