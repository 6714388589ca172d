"""
Tests for the rate resolver.

Sources are replaced with call-counting fakes; the clock is controlled.
"""

import logging
from decimal import Decimal

import pytest

from cryptoflow.pricing.models import RateOrigin
from cryptoflow.pricing.static_rates import StaticRateTable
from cryptoflow.storage.currency_catalog import CurrencyNotFoundError
from tests.fixtures.rate_mocks import (
    FakeClock,
    FakeRateSource,
    make_resolver,
    make_sources,
)


def total_calls(sources) -> int:
    return sum(len(s.calls) for s in sources)


class TestShortCircuits:
    """USD-equivalent and identity pairs never reach the sources."""

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "from_id,to_id",
        [
            ("usdt-trc20", "usdt-erc20"),
            ("usdt-erc20", "usdc"),
            ("usdc", "usdt-trc20"),
            ("usdt-trc20", "card-usd"),
            ("card-usd", "usdc"),
            ("btc", "btc"),
        ],
    )
    async def test_returns_one_without_sources(self, from_id: str, to_id: str) -> None:
        sources = make_sources(fail=(True, True, True))
        resolver = make_resolver(sources)

        result = await resolver.resolve(from_id, to_id)

        assert result.rate == Decimal("1")
        assert result.origin is RateOrigin.DERIVED
        assert not result.is_degraded
        assert total_calls(sources) == 0

    @pytest.mark.anyio
    async def test_short_circuit_is_not_cached(self) -> None:
        resolver = make_resolver(make_sources())
        await resolver.resolve("usdt-trc20", "usdc")
        assert len(resolver.cache) == 0


class TestFiatDestination:
    """Crypto -> fiat goes through the USD price and a multiplier."""

    @pytest.mark.anyio
    async def test_override_bypasses_usd_path(self) -> None:
        sources = make_sources()
        resolver = make_resolver(sources, overrides={"btc-card-mdl": 1700000})

        result = await resolver.resolve("btc", "card-mdl")

        assert result.rate == Decimal("1700000")
        assert result.origin is RateOrigin.OVERRIDE
        assert total_calls(sources) == 0

    @pytest.mark.anyio
    async def test_multiplier_applied_to_usd_price(self) -> None:
        resolver = make_resolver(make_sources())

        result = await resolver.resolve("btc", "card-mdl")

        assert result.rate == Decimal("60000") * Decimal("18.0")
        assert result.origin is RateOrigin.DERIVED

    @pytest.mark.anyio
    async def test_usd_card_is_live(self) -> None:
        resolver = make_resolver(make_sources())

        result = await resolver.resolve("eth", "card-usd")

        assert result.rate == Decimal("3000")
        assert result.origin is RateOrigin.LIVE

    @pytest.mark.anyio
    async def test_stablecoin_to_fiat_uses_multiplier(self) -> None:
        resolver = make_resolver(make_sources())

        result = await resolver.resolve("usdt-trc20", "card-mdl")

        assert result.rate == Decimal("18.0")
        assert result.origin is RateOrigin.DERIVED

    @pytest.mark.anyio
    async def test_usd_leg_is_shared_between_fiat_pairs(self) -> None:
        sources = make_sources()
        resolver = make_resolver(sources)

        await resolver.resolve("btc", "card-mdl")
        await resolver.resolve("btc", "card-eur")

        assert sources[0].calls == ["btc"]


class TestCaching:
    """Cache interaction."""

    @pytest.mark.anyio
    async def test_second_resolve_is_identical_and_skips_sources(self) -> None:
        clock = FakeClock()
        sources = make_sources()
        resolver = make_resolver(sources, clock=clock)

        first = await resolver.resolve("btc", "eth")
        clock.advance(10)
        second = await resolver.resolve("btc", "eth")

        assert second.rate == first.rate
        assert second.resolved_at == first.resolved_at
        assert sources[0].calls == ["btc", "eth"]

    @pytest.mark.anyio
    async def test_refetches_after_freshness_window(self) -> None:
        clock = FakeClock()
        sources = make_sources()
        resolver = make_resolver(sources, clock=clock)

        await resolver.resolve("btc", "card-usd")
        clock.advance(31)
        refreshed = await resolver.resolve("btc", "card-usd")

        assert sources[0].calls == ["btc", "btc"]
        assert refreshed.resolved_at == clock()

    @pytest.mark.anyio
    async def test_fallback_results_are_cached(self) -> None:
        sources = make_sources(fail=(True, True, True))
        resolver = make_resolver(sources)

        await resolver.resolve("btc", "card-usd")
        await resolver.resolve("btc", "card-usd")

        assert [len(s.calls) for s in sources] == [1, 1, 1]

    @pytest.mark.anyio
    async def test_unknown_results_are_cached(self) -> None:
        sources = make_sources(fail=(True, True, True))
        resolver = make_resolver(sources)

        first = await resolver.resolve("eth", "card-eur")
        second = await resolver.resolve("eth", "card-eur")

        assert second is first
        assert len(sources[0].calls) == 1


class TestSourceFailover:
    """Sources are tried strictly in priority order."""

    @pytest.mark.anyio
    async def test_second_source_used_when_first_fails(self) -> None:
        primary = FakeRateSource("coingecko", fail=True)
        secondary = FakeRateSource("binance", prices={"btc": Decimal("61000")})
        tertiary = FakeRateSource("bybit", prices={"btc": Decimal("99999")})
        resolver = make_resolver([primary, secondary, tertiary])

        result = await resolver.resolve("btc", "card-usd")

        assert result.rate == Decimal("61000")
        assert primary.calls == ["btc"]
        assert secondary.calls == ["btc"]
        assert tertiary.calls == []

    @pytest.mark.anyio
    async def test_third_source_used_when_first_two_fail(self) -> None:
        sources = make_sources(fail=(True, True, False))
        resolver = make_resolver(sources)

        result = await resolver.resolve("btc", "card-usd")

        assert result.rate == Decimal("60000")
        assert result.origin is RateOrigin.LIVE

    @pytest.mark.anyio
    async def test_slow_source_times_out_and_next_runs(self) -> None:
        slow = FakeRateSource("coingecko", prices={"btc": Decimal("1")}, delay=1.0)
        fast = FakeRateSource("binance", prices={"btc": Decimal("62000")})
        resolver = make_resolver([slow, fast], source_timeout=0.05)

        result = await resolver.resolve("btc", "card-usd")

        assert result.rate == Decimal("62000")
        assert fast.calls == ["btc"]

    @pytest.mark.anyio
    async def test_unexpected_source_error_does_not_propagate(self) -> None:
        broken = FakeRateSource("coingecko", error=RuntimeError("boom"))
        healthy = FakeRateSource("binance", prices={"btc": Decimal("63000")})
        resolver = make_resolver([broken, healthy])

        result = await resolver.resolve("btc", "card-usd")

        assert result.rate == Decimal("63000")

    @pytest.mark.anyio
    async def test_exhausted_deadline_skips_sources(self) -> None:
        sources = make_sources()
        resolver = make_resolver(sources, resolution_deadline=0)

        result = await resolver.resolve("btc", "card-usd")

        assert total_calls(sources) == 0
        assert result.origin is RateOrigin.FALLBACK

    @pytest.mark.anyio
    async def test_resolve_usd_reports_failures(self) -> None:
        resolver = make_resolver(make_sources(fail=(True, True, True)))

        quote = await resolver.resolve_usd("btc")

        assert not quote.ok
        assert len(quote.failures) == 3
        assert quote.failures[0].startswith("coingecko")


class TestFallback:
    """Static fallback table and the unknown placeholder."""

    @pytest.mark.anyio
    async def test_full_outage_returns_fallback_value(self) -> None:
        resolver = make_resolver(make_sources(fail=(True, True, True)))

        result = await resolver.resolve("btc", "card-usd")

        assert result.rate == Decimal("90000.0")
        assert result.origin is RateOrigin.FALLBACK
        assert result.is_degraded

    @pytest.mark.anyio
    async def test_crypto_pair_outage_uses_fallback(self) -> None:
        resolver = make_resolver(make_sources(fail=(True, True, True)))

        result = await resolver.resolve("btc", "usdt-trc20")

        # The stablecoin leg resolves, the btc leg does not
        assert result.rate == Decimal("97500.0")
        assert result.origin is RateOrigin.FALLBACK

    @pytest.mark.anyio
    async def test_missing_fallback_is_unknown_placeholder(self, caplog) -> None:
        resolver = make_resolver(make_sources(fail=(True, True, True)), fallbacks={})

        with caplog.at_level(logging.WARNING):
            result = await resolver.resolve("eth", "card-eur")

        assert result.rate == Decimal("1")
        assert result.origin is RateOrigin.UNKNOWN
        assert result.is_degraded
        assert "eth-card-eur" in caplog.text

    @pytest.mark.anyio
    async def test_missing_multiplier_uses_fallback(self) -> None:
        resolver = make_resolver(make_sources())
        resolver.table = StaticRateTable(
            fiat_multipliers={"usd": 1.0}, fallbacks={"btc-card-mdl": 1500000}
        )

        result = await resolver.resolve("btc", "card-mdl")

        assert result.rate == Decimal("1500000")
        assert result.origin is RateOrigin.FALLBACK


class TestCrossRates:
    """Crypto -> crypto divides the two USD prices."""

    @pytest.mark.anyio
    async def test_cross_rate_equals_ratio_of_usd_prices(self) -> None:
        resolver = make_resolver(make_sources())

        result = await resolver.resolve("btc", "eth")
        btc_usd = await resolver.resolve_usd("btc")
        eth_usd = await resolver.resolve_usd("eth")

        assert result.rate == btc_usd.price / eth_usd.price
        assert result.rate == Decimal("20")
        assert result.origin is RateOrigin.DERIVED

    @pytest.mark.anyio
    async def test_reverse_pair_is_resolved_separately(self) -> None:
        resolver = make_resolver(make_sources())

        forward = await resolver.resolve("btc", "eth")
        reverse = await resolver.resolve("eth", "btc")

        assert forward.rate == Decimal("20")
        assert reverse.rate == Decimal("0.05")

    @pytest.mark.anyio
    async def test_stablecoin_to_crypto(self) -> None:
        resolver = make_resolver(make_sources())

        result = await resolver.resolve("usdt-trc20", "eth")

        assert result.rate == Decimal("1") / Decimal("3000")


class TestErrors:
    """Only invalid input raises."""

    @pytest.mark.anyio
    async def test_unknown_currency_raises(self) -> None:
        resolver = make_resolver(make_sources())

        with pytest.raises(CurrencyNotFoundError):
            await resolver.resolve("doge", "card-usd")

    @pytest.mark.anyio
    async def test_resolve_many_preserves_order(self) -> None:
        resolver = make_resolver(make_sources())

        results = await resolver.resolve_many([("btc", "card-usd"), ("eth", "card-usd"), ("usdc", "card-usd")])

        assert [r.rate for r in results] == [Decimal("60000"), Decimal("3000"), Decimal("1")]
