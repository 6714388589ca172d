"""
Order creation service.

Validates an order request against the currency catalog, prices it,
assigns an id and deposit address, stores it and notifies collaborators.
"""

import logging
import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from cryptoflow.notifications.base import Notifier, NullNotifier
from cryptoflow.orders.models import Order
from cryptoflow.orders.order_store import OrderStore
from cryptoflow.orders.status import INITIAL_STATUS, OrderStatus
from cryptoflow.pricing.models import RateOrigin, RateType, utc_now
from cryptoflow.pricing.order_pricer import OrderPricer
from cryptoflow.services.event_hub import NEW_ORDER, ORDER_UPDATE, EventHub
from cryptoflow.storage.currency_catalog import CurrencyCatalog, CurrencyNotFoundError
from cryptoflow.storage.deposit_addresses import DepositAddressBook
from cryptoflow.utils.logging_config import LogContext

logger = logging.getLogger(__name__)

ORDER_ID_ALPHABET = string.ascii_uppercase + string.digits
ORDER_ID_LENGTH = 8


class OrderValidationError(Exception):
    """Order request rejected before pricing."""


@dataclass
class CreateOrderRequest:
    from_currency: str
    to_currency: str
    from_amount: Decimal
    rate_type: str = RateType.FLOAT.value
    recipient_address: Optional[str] = None
    card_number: Optional[str] = None
    contact_email: Optional[str] = None
    user_id: Optional[str] = None


def mask_card_number(card_number: str) -> str:
    """
    Mask a card number down to its last four digits.

    Raises:
        OrderValidationError: If fewer than four digits are present.
    """
    digits = re.sub(r"\D", "", card_number or "")
    if len(digits) < 4:
        raise OrderValidationError("Card number must contain at least 4 digits")
    return f"**** **** **** {digits[-4:]}"


def generate_order_id(prefix: str = "CF-") -> str:
    return prefix + "".join(secrets.choice(ORDER_ID_ALPHABET) for _ in range(ORDER_ID_LENGTH))


class OrderService:
    """
    Order creation and status workflow.

    Notification and event delivery failures are logged, never raised:
    the order is already stored when they run.
    """

    def __init__(
        self,
        catalog: CurrencyCatalog,
        pricer: OrderPricer,
        store: OrderStore,
        addresses: DepositAddressBook,
        notifier: Optional[Notifier] = None,
        hub: Optional[EventHub] = None,
        clock: Callable[[], datetime] = utc_now,
        id_prefix: str = "CF-",
    ) -> None:
        self.catalog = catalog
        self.pricer = pricer
        self.store = store
        self.addresses = addresses
        self.notifier = notifier or NullNotifier()
        self.hub = hub
        self.id_prefix = id_prefix
        self._clock = clock

    def _validate(self, request: CreateOrderRequest) -> None:
        try:
            from_currency = self.catalog.get_currency(request.from_currency)
            to_currency = self.catalog.get_currency(request.to_currency)
        except CurrencyNotFoundError as e:
            raise OrderValidationError(str(e)) from e

        if request.from_currency == request.to_currency:
            raise OrderValidationError("Source and destination currencies must differ")

        for currency in (from_currency, to_currency):
            if not currency.is_active:
                raise OrderValidationError(f"Currency {currency.id} is not available")

        amount = Decimal(str(request.from_amount))
        if amount < from_currency.min_amount:
            raise OrderValidationError(
                f"Minimum amount for {from_currency.id} is {from_currency.min_amount}"
            )
        if from_currency.max_amount > 0 and amount > from_currency.max_amount:
            raise OrderValidationError(
                f"Maximum amount for {from_currency.id} is {from_currency.max_amount}"
            )

        if to_currency.is_fiat:
            if not request.card_number:
                raise OrderValidationError("Card number is required for fiat payouts")
        elif not request.recipient_address:
            raise OrderValidationError("Recipient address is required for crypto payouts")

    def _new_order_id(self) -> str:
        while True:
            order_id = generate_order_id(self.id_prefix)
            if not self.store.exists(order_id):
                return order_id

    async def create_order(self, request: CreateOrderRequest) -> Order:
        """
        Create, price and store an order.

        Returns:
            The stored order in awaiting_deposit status.

        Raises:
            OrderValidationError: Unknown/inactive currency, amount out of
                range, missing payout target, or no usable rate.
            InsufficientAmountError: Fees consume the whole amount.
            ValueError: Invalid rate type.
        """
        self._validate(request)
        card_details = mask_card_number(request.card_number) if request.card_number else None

        pricing = await self.pricer.price_order(
            request.from_currency,
            request.to_currency,
            Decimal(str(request.from_amount)),
            request.rate_type,
        )
        if pricing.rate_origin is RateOrigin.UNKNOWN:
            raise OrderValidationError(
                f"No rate available for {request.from_currency} -> {request.to_currency}"
            )

        now = self._clock()
        order = Order(
            id=self._new_order_id(),
            user_id=request.user_id,
            from_currency=pricing.from_currency,
            to_currency=pricing.to_currency,
            from_amount=pricing.from_amount,
            to_amount=pricing.to_amount,
            exchange_rate=pricing.exchange_rate,
            rate_type=pricing.rate_type,
            rate_source=pricing.rate_origin.value,
            platform_fee=pricing.platform_fee,
            network_fee=pricing.network_fee,
            rate_lock_expiry=pricing.rate_lock_expiry,
            status=INITIAL_STATUS,
            deposit_address=self.addresses.address_for(request.from_currency),
            recipient_address=request.recipient_address,
            card_details=card_details,
            contact_email=request.contact_email,
            created_at=now,
            updated_at=now,
        )
        self.store.create(order)
        with LogContext(logger, order_id=order.id, rate_source=order.rate_source):
            logger.info(
                f"Created order {order.id}: {order.from_amount} {order.from_currency} -> "
                f"{order.to_amount} {order.to_currency} ({order.rate_type.value})"
            )

        await self._notify(order, created=True)
        return order

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus | str,
        tx_hash: Optional[str] = None,
        payout_tx_hash: Optional[str] = None,
    ) -> Order:
        """
        Apply a status transition and notify.

        Raises:
            OrderNotFoundError: Unknown order.
            InvalidStatusTransitionError: Transition not allowed.
        """
        order = self.store.update_status(order_id, status, tx_hash=tx_hash, payout_tx_hash=payout_tx_hash)
        await self._notify(order, created=False)
        return order

    async def _notify(self, order: Order, created: bool) -> None:
        try:
            if created:
                await self.notifier.notify_order_created(order)
            else:
                await self.notifier.notify_status_changed(order)
        except Exception as e:
            logger.error(f"Notification failed for order {order.id}: {e}")

        if self.hub is not None:
            await self.hub.publish(NEW_ORDER if created else ORDER_UPDATE, order.to_dict())
