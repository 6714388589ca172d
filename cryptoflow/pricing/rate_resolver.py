"""
Rate resolver.

Resolves conversion rates between catalog currencies:
- USD-equivalent and identity pairs short-circuit to 1
- crypto -> fiat goes through the asset's USD price and a fiat multiplier,
  unless a direct override is configured for the pair
- crypto -> crypto divides the two USD prices
- USD prices walk the ordered source list and stop at the first success
- when live resolution is not possible the static fallback table is used,
  and a pair missing from it degrades to 1 tagged "unknown"

The public contract never fails for upstream reasons; only an unknown
currency id raises.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

from cryptoflow.pricing.models import USD, CurrencyPair, RateOrigin, ResolvedRate, utc_now
from cryptoflow.pricing.rate_cache import RateCache
from cryptoflow.pricing.static_rates import StaticRateTable
from cryptoflow.sources.base import FetchFailure, RateSource
from cryptoflow.storage.currency_catalog import Currency, CurrencyCatalog

logger = logging.getLogger(__name__)

ONE = Decimal("1")


@dataclass(frozen=True)
class UsdQuote:
    """
    Result of the USD-price walk for one asset.

    Either a price with the name of the source that produced it, or
    exhausted (price is None) with the failure reason of every attempt.
    """

    asset_id: str
    price: Optional[Decimal] = None
    source: Optional[str] = None
    live: bool = True
    failures: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.price is not None


class RateResolver:
    """
    Orchestrates cache, sources and static tables for one process.

    Attributes:
        catalog: Currency catalog for type branching.
        sources: Rate sources in priority order.
        cache: Shared rate cache.
        table: Static multipliers, overrides and fallbacks.
    """

    def __init__(
        self,
        catalog: CurrencyCatalog,
        sources: Sequence[RateSource],
        cache: RateCache,
        table: StaticRateTable,
        clock: Callable[[], datetime] = utc_now,
        source_timeout: float = 5.0,
        resolution_deadline: float = 10.0,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            clock: Returns the current UTC datetime, stamped on resolved rates.
            source_timeout: Upper bound for a single source attempt (seconds).
            resolution_deadline: Upper bound for one resolve() call across
                all source attempts (seconds).
            timer: Monotonic timer used for the deadline.
        """
        self.catalog = catalog
        self.sources = list(sources)
        self.cache = cache
        self.table = table
        self.source_timeout = source_timeout
        self.resolution_deadline = resolution_deadline
        self._clock = clock
        self._timer = timer

    @property
    def source_names(self) -> list[str]:
        return [source.name for source in self.sources]

    def _rate(self, pair: CurrencyPair, value: Decimal, origin: RateOrigin) -> ResolvedRate:
        return ResolvedRate(pair=pair, rate=value, resolved_at=self._clock(), origin=origin)

    async def resolve(self, from_id: str, to_id: str) -> ResolvedRate:
        """
        Resolve the rate for an ordered currency pair.

        Args:
            from_id: Source currency id.
            to_id: Destination currency id.

        Returns:
            ResolvedRate; check `is_degraded` before trusting it for pricing.

        Raises:
            CurrencyNotFoundError: If either id is not in the catalog.
        """
        from_currency = self.catalog.get_currency(from_id)
        to_currency = self.catalog.get_currency(to_id)
        pair = CurrencyPair(from_id, to_id)

        if pair.is_identity or (
            self.catalog.is_usd_equivalent(from_id) and self.catalog.is_usd_equivalent(to_id)
        ):
            return self._rate(pair, ONE, RateOrigin.DERIVED)

        cached = self.cache.get(pair)
        if cached is not None:
            return cached

        deadline = self._timer() + self.resolution_deadline

        if to_currency.is_fiat:
            result = await self._resolve_to_fiat(pair, from_currency, to_currency, deadline)
        else:
            result = await self._resolve_to_crypto(pair, from_currency, to_currency, deadline)

        if result is None:
            result = self._fallback(pair)

        self.cache.set(result)
        return result

    async def resolve_many(self, pairs: Iterable[tuple[str, str]]) -> list[ResolvedRate]:
        """Resolve several pairs concurrently, preserving order."""
        return list(await asyncio.gather(*(self.resolve(f, t) for f, t in pairs)))

    async def resolve_usd(self, asset_id: str) -> UsdQuote:
        """
        Resolve the USD price of one catalog currency.

        Raises:
            CurrencyNotFoundError: If the id is not in the catalog.
        """
        currency = self.catalog.get_currency(asset_id)
        return await self._usd_price(currency, self._timer() + self.resolution_deadline)

    async def _resolve_to_fiat(
        self,
        pair: CurrencyPair,
        from_currency: Currency,
        to_currency: Currency,
        deadline: float,
    ) -> Optional[ResolvedRate]:
        override = self.table.override_for(pair)
        if override is not None:
            return self._rate(pair, override, RateOrigin.OVERRIDE)

        multiplier = self.table.fiat_multiplier(to_currency.fiat_code or "")
        if multiplier is None:
            logger.warning(f"No fiat multiplier for {to_currency.id} ({to_currency.fiat_code})")
            return None

        quote = await self._usd_price(from_currency, deadline)
        if not quote.ok:
            return None

        value = quote.price * multiplier
        direct = quote.live and to_currency.fiat_code == USD
        return self._rate(pair, value, RateOrigin.LIVE if direct else RateOrigin.DERIVED)

    async def _resolve_to_crypto(
        self,
        pair: CurrencyPair,
        from_currency: Currency,
        to_currency: Currency,
        deadline: float,
    ) -> Optional[ResolvedRate]:
        from_quote = await self._usd_price(from_currency, deadline)
        if not from_quote.ok:
            return None

        to_quote = await self._usd_price(to_currency, deadline)
        if not to_quote.ok or to_quote.price == 0:
            return None

        return self._rate(pair, from_quote.price / to_quote.price, RateOrigin.DERIVED)

    async def _usd_price(self, currency: Currency, deadline: float) -> UsdQuote:
        """USD price of a currency: fiat via its multiplier, crypto via the sources."""
        if currency.is_fiat:
            multiplier = self.table.fiat_multiplier(currency.fiat_code or "")
            if multiplier is None:
                return UsdQuote(currency.id, failures=("no fiat multiplier",))
            return UsdQuote(currency.id, price=ONE / multiplier, source="static", live=False)

        leg_pair = CurrencyPair(currency.id, USD)
        cached = self.cache.get(leg_pair)
        if cached is not None:
            return UsdQuote(currency.id, price=cached.rate, source="cache")

        quote = await self._walk_sources(currency.id, deadline)
        if quote.ok:
            self.cache.set(self._rate(leg_pair, quote.price, RateOrigin.LIVE))
        else:
            logger.warning(f"All sources failed for {currency.id}: {'; '.join(quote.failures)}")
        return quote

    async def _walk_sources(self, asset_id: str, deadline: float) -> UsdQuote:
        """Try each source in priority order; stop at the first success."""
        failures: list[str] = []

        for source in self.sources:
            remaining = deadline - self._timer()
            if remaining <= 0:
                failures.append(f"{source.name}: resolution deadline exceeded")
                break

            attempt_timeout = min(self.source_timeout, remaining)
            try:
                price = await asyncio.wait_for(
                    source.fetch_usd_price(asset_id, timeout=attempt_timeout),
                    timeout=attempt_timeout,
                )
            except FetchFailure as e:
                logger.warning(str(e), extra={"pair": f"{asset_id}-usd", "source": source.name})
                failures.append(f"{source.name}: {e.reason}")
                continue
            except asyncio.TimeoutError:
                logger.warning(
                    f"{source.name} timed out for {asset_id} after {attempt_timeout:.1f}s",
                    extra={"pair": f"{asset_id}-usd", "source": source.name},
                )
                failures.append(f"{source.name}: timed out")
                continue
            except Exception as e:
                logger.warning(
                    f"Unexpected error from {source.name} for {asset_id}: {e}",
                    extra={"pair": f"{asset_id}-usd", "source": source.name},
                )
                failures.append(f"{source.name}: {e}")
                continue

            return UsdQuote(asset_id, price=price, source=source.name)

        return UsdQuote(asset_id, failures=tuple(failures))

    def _fallback(self, pair: CurrencyPair) -> ResolvedRate:
        value = self.table.fallback_for(pair)
        if value is not None:
            logger.warning(
                f"Using fallback rate for {pair}: {value}",
                extra={"pair": pair.key, "rate_source": RateOrigin.FALLBACK.value},
            )
            return self._rate(pair, value, RateOrigin.FALLBACK)

        logger.warning(
            f"No rate available for {pair}; returning placeholder 1 (unknown)",
            extra={"pair": pair.key, "rate_source": RateOrigin.UNKNOWN.value},
        )
        return self._rate(pair, ONE, RateOrigin.UNKNOWN)
