"""
Fakes for rate resolution tests.

Rate sources with call counting, a controllable clock, a stub resolver
and a recording notifier.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from cryptoflow.notifications.base import Notifier
from cryptoflow.orders.models import Order
from cryptoflow.pricing.models import CurrencyPair, RateOrigin, ResolvedRate
from cryptoflow.pricing.rate_cache import RateCache
from cryptoflow.pricing.rate_resolver import RateResolver
from cryptoflow.pricing.static_rates import StaticRateTable
from cryptoflow.sources.base import FetchFailure
from cryptoflow.storage.currency_catalog import CurrencyCatalog
from cryptoflow.utils.config_loader import DEFAULT_FALLBACK_RATES, DEFAULT_FIAT_MULTIPLIERS

MOCK_PRICES = {
    "btc": Decimal("60000"),
    "eth": Decimal("3000"),
}

STABLECOINS = frozenset({"usdt-trc20", "usdt-erc20", "usdc"})


class FakeClock:
    """Callable clock returning a fixed UTC datetime until advanced."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeRateSource:
    """
    Rate source double.

    Records every asset requested. Fails for every asset when `fail` is set,
    or for assets missing from `prices`. Stablecoins short-circuit to 1
    without being recorded, like the real sources.
    """

    def __init__(
        self,
        name: str,
        prices: Optional[Mapping[str, Decimal]] = None,
        fail: bool = False,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        stablecoins: Iterable[str] = STABLECOINS,
    ):
        self.name = name
        self.prices = dict(prices or {})
        self.fail = fail
        self.delay = delay
        self.error = error
        self.stablecoins = frozenset(stablecoins)
        self.calls: list[str] = []

    async def fetch_usd_price(self, asset_id: str, timeout: Optional[float] = None) -> Decimal:
        if asset_id in self.stablecoins:
            return Decimal("1")

        self.calls.append(asset_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.fail or asset_id not in self.prices:
            raise FetchFailure(self.name, asset_id, "mock failure")
        return self.prices[asset_id]


def make_sources(
    fail: Iterable[bool] = (False, False, False),
    prices: Optional[Mapping[str, Decimal]] = None,
) -> list[FakeRateSource]:
    """Three sources named like the real priority order."""
    names = ["coingecko", "binance", "bybit"]
    return [
        FakeRateSource(name, prices=prices if prices is not None else MOCK_PRICES, fail=failed)
        for name, failed in zip(names, fail)
    ]


def make_resolver(
    sources: list,
    clock: Optional[FakeClock] = None,
    overrides: Optional[Mapping[str, float]] = None,
    fallbacks: Optional[Mapping[str, float]] = None,
    catalog: Optional[CurrencyCatalog] = None,
    source_timeout: float = 5.0,
    resolution_deadline: float = 10.0,
) -> RateResolver:
    clock = clock or FakeClock()
    return RateResolver(
        catalog=catalog or CurrencyCatalog(),
        sources=sources,
        cache=RateCache(ttl_seconds=30, clock=clock),
        table=StaticRateTable(
            fiat_multipliers=DEFAULT_FIAT_MULTIPLIERS,
            overrides=overrides or {},
            fallbacks=DEFAULT_FALLBACK_RATES if fallbacks is None else fallbacks,
        ),
        clock=clock,
        source_timeout=source_timeout,
        resolution_deadline=resolution_deadline,
    )


class StubResolver:
    """Resolver double returning one fixed rate for every pair."""

    def __init__(self, rate: Decimal, origin: RateOrigin = RateOrigin.DERIVED, clock=None):
        self.rate = Decimal(rate)
        self.origin = origin
        self._clock = clock or FakeClock()
        self.calls: list[tuple[str, str]] = []

    async def resolve(self, from_id: str, to_id: str) -> ResolvedRate:
        self.calls.append((from_id, to_id))
        return ResolvedRate(
            pair=CurrencyPair(from_id, to_id),
            rate=self.rate,
            resolved_at=self._clock(),
            origin=self.origin,
        )


class RecordingNotifier(Notifier):
    """Notifier double recording every notification."""

    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.created: list[Order] = []
        self.changed: list[Order] = []

    @property
    def enabled(self) -> bool:
        return True

    async def notify_order_created(self, order: Order) -> bool:
        if self.fail:
            raise RuntimeError("chat unavailable")
        self.created.append(order)
        return True

    async def notify_status_changed(self, order: Order) -> bool:
        if self.fail:
            raise RuntimeError("chat unavailable")
        self.changed.append(order)
        return True
