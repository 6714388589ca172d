"""
Tests for the order creation service.
"""

import asyncio
import re
from dataclasses import replace
from decimal import Decimal

import pytest

from cryptoflow.orders import (
    CreateOrderRequest,
    InvalidStatusTransitionError,
    OrderService,
    OrderStatus,
    OrderValidationError,
    mask_card_number,
)
from cryptoflow.orders.order_store import OrderStore
from cryptoflow.pricing import InsufficientAmountError, OrderPricer, RateOrigin
from cryptoflow.services.event_hub import NEW_ORDER, ORDER_UPDATE, EventHub
from cryptoflow.storage.currency_catalog import DEFAULT_CURRENCIES, CurrencyCatalog
from cryptoflow.storage.deposit_addresses import DEFAULT_NETWORK_ADDRESSES, DepositAddressBook
from tests.fixtures.rate_mocks import FakeClock, RecordingNotifier, StubResolver


def card_request(**overrides) -> CreateOrderRequest:
    values = dict(
        from_currency="usdt-trc20",
        to_currency="card-mdl",
        from_amount=Decimal("1000"),
        rate_type="fixed",
        card_number="4242 4242 4242 4242",
        contact_email="client@example.com",
        user_id="user-1",
    )
    values.update(overrides)
    return CreateOrderRequest(**values)


class TestMaskCardNumber:
    """Tests for card masking."""

    def test_keeps_last_four_digits(self) -> None:
        assert mask_card_number("4242-4242-4242-1234") == "**** **** **** 1234"

    def test_too_short(self) -> None:
        with pytest.raises(OrderValidationError):
            mask_card_number("12")


class TestOrderService:
    """Tests for OrderService."""

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def notifier(self) -> RecordingNotifier:
        return RecordingNotifier()

    @pytest.fixture
    def events(self) -> list:
        return []

    @pytest.fixture
    def hub(self, clock: FakeClock, events: list) -> EventHub:
        hub = EventHub(clock=clock)

        async def collect(event):
            events.append(event)

        hub.subscribe(collect)
        return hub

    def build(self, clock, notifier=None, hub=None, rate="18", origin=RateOrigin.DERIVED, catalog=None):
        resolver = StubResolver(Decimal(rate), origin=origin, clock=clock)
        return OrderService(
            catalog=catalog or CurrencyCatalog(),
            pricer=OrderPricer(resolver, clock=clock),
            store=OrderStore(clock=clock),
            addresses=DepositAddressBook(),
            notifier=notifier,
            hub=hub,
            clock=clock,
        )

    @pytest.fixture
    def service(self, clock, notifier, hub) -> OrderService:
        return self.build(clock, notifier=notifier, hub=hub)

    @pytest.mark.anyio
    async def test_create_card_order(self, service: OrderService, clock: FakeClock) -> None:
        order = await service.create_order(card_request())

        assert re.match(r"^CF-[A-Z0-9]{8}$", order.id)
        assert order.status is OrderStatus.AWAITING_DEPOSIT
        assert order.deposit_address == DEFAULT_NETWORK_ADDRESSES["trc20"]
        assert order.card_details == "**** **** **** 4242"
        assert order.to_amount == Decimal("17874")
        assert order.rate_source == "derived"
        assert order.created_at == clock()
        assert order.rate_lock_expiry is not None
        assert service.store.get(order.id) is order

    @pytest.mark.anyio
    async def test_create_crypto_order(self, clock: FakeClock) -> None:
        service = self.build(clock, rate="0.00001")

        order = await service.create_order(
            CreateOrderRequest(
                from_currency="usdt-erc20",
                to_currency="btc",
                from_amount=Decimal("500"),
                recipient_address="bc1qrecipient",
            )
        )

        assert order.recipient_address == "bc1qrecipient"
        assert order.card_details is None
        assert order.deposit_address == DEFAULT_NETWORK_ADDRESSES["erc20"]
        assert order.rate_lock_expiry is None

    @pytest.mark.anyio
    async def test_notifier_and_hub_receive_new_order(
        self, service: OrderService, notifier: RecordingNotifier, events: list
    ) -> None:
        order = await service.create_order(card_request())

        assert notifier.created == [order]
        assert events[0]["type"] == NEW_ORDER
        assert events[0]["data"]["id"] == order.id

    @pytest.mark.anyio
    async def test_notifier_failure_does_not_fail_order(self, clock: FakeClock) -> None:
        service = self.build(clock, notifier=RecordingNotifier(fail=True))

        order = await service.create_order(card_request())

        assert service.store.exists(order.id)

    @pytest.mark.anyio
    async def test_stalled_subscriber_does_not_block_order(self, clock: FakeClock) -> None:
        hub = EventHub(clock=clock, delivery_timeout=0.05)

        async def stalled(event):
            await asyncio.sleep(3600)

        hub.subscribe(stalled)
        service = self.build(clock, hub=hub)

        order = await asyncio.wait_for(service.create_order(card_request()), timeout=2)

        assert service.store.exists(order.id)
        assert hub.subscriber_count == 0

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"from_currency": "doge"}, "Unknown currency"),
            ({"to_currency": "usdt-trc20"}, "must differ"),
            ({"from_amount": Decimal("10")}, "Minimum"),
            ({"from_amount": Decimal("60000")}, "Maximum"),
            ({"card_number": None}, "Card number"),
            ({"card_number": "12"}, "4 digits"),
            ({"to_currency": "eth"}, "Recipient address"),
        ],
    )
    async def test_validation_errors(self, service: OrderService, overrides: dict, message: str) -> None:
        with pytest.raises(OrderValidationError, match=message):
            await service.create_order(card_request(**overrides))
        assert service.store.count() == 0

    @pytest.mark.anyio
    async def test_inactive_currency_rejected(self, clock: FakeClock) -> None:
        currencies = [
            replace(c, is_active=False) if c.id == "card-mdl" else c for c in DEFAULT_CURRENCIES
        ]
        service = self.build(clock, catalog=CurrencyCatalog(currencies))

        with pytest.raises(OrderValidationError, match="not available"):
            await service.create_order(card_request())

    @pytest.mark.anyio
    async def test_unknown_rate_rejected(self, clock: FakeClock) -> None:
        service = self.build(clock, rate="1", origin=RateOrigin.UNKNOWN)

        with pytest.raises(OrderValidationError, match="No rate available"):
            await service.create_order(card_request())
        assert service.store.count() == 0

    @pytest.mark.anyio
    async def test_fallback_rate_accepted(self, clock: FakeClock) -> None:
        service = self.build(clock, rate="16.16", origin=RateOrigin.FALLBACK)

        order = await service.create_order(card_request())

        assert order.rate_source == "fallback"

    @pytest.mark.anyio
    async def test_insufficient_amount_propagates(self, clock: FakeClock) -> None:
        currencies = [replace(c, min_amount=Decimal("0")) for c in DEFAULT_CURRENCIES]
        service = self.build(clock, catalog=CurrencyCatalog(currencies))

        with pytest.raises(InsufficientAmountError):
            await service.create_order(card_request(from_amount=Decimal("1")))

    @pytest.mark.anyio
    async def test_update_status_notifies(
        self, service: OrderService, notifier: RecordingNotifier, events: list
    ) -> None:
        order = await service.create_order(card_request())

        updated = await service.update_status(order.id, "confirmed", tx_hash="0xabc")

        assert updated.status is OrderStatus.CONFIRMED
        assert notifier.changed == [updated]
        assert events[-1]["type"] == ORDER_UPDATE
        assert events[-1]["data"]["status"] == "confirmed"

    @pytest.mark.anyio
    async def test_invalid_update_does_not_notify(
        self, service: OrderService, notifier: RecordingNotifier
    ) -> None:
        order = await service.create_order(card_request())

        with pytest.raises(InvalidStatusTransitionError):
            await service.update_status(order.id, OrderStatus.COMPLETED)
        assert notifier.changed == []
