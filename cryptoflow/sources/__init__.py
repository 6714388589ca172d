"""
Upstream market-data sources.

One adapter per upstream, built in priority order by build_sources().
"""

from typing import Iterable

import httpx

from cryptoflow.sources.base import FetchFailure, RateSource
from cryptoflow.sources.binance import BinanceSource
from cryptoflow.sources.bybit import BybitSource
from cryptoflow.sources.coingecko import CoinGeckoSource
from cryptoflow.storage.currency_catalog import CurrencyCatalog
from cryptoflow.utils.config_loader import SourcesConfig

SOURCE_TYPES: dict[str, tuple[type[RateSource], str, str]] = {
    # name: (class, catalog symbol attribute, config url attribute)
    "coingecko": (CoinGeckoSource, "coingecko_id", "coingecko_url"),
    "binance": (BinanceSource, "binance_symbol", "binance_url"),
    "bybit": (BybitSource, "bybit_symbol", "bybit_url"),
}


def build_sources(
    client: httpx.AsyncClient,
    catalog: CurrencyCatalog,
    sources_config: SourcesConfig,
    timeout: float = 5.0,
    priority: Iterable[str] | None = None,
) -> list[RateSource]:
    """
    Build the ordered source list.

    Raises:
        ValueError: If the priority names an unknown source.
    """
    names = list(priority if priority is not None else sources_config.priority)
    stablecoins = catalog.stablecoins()
    sources: list[RateSource] = []
    for name in names:
        if name not in SOURCE_TYPES:
            raise ValueError(f"Unknown rate source: {name}")
        source_cls, symbol_attr, url_attr = SOURCE_TYPES[name]
        sources.append(
            source_cls(
                client=client,
                base_url=getattr(sources_config, url_attr),
                symbols=catalog.symbol_map(symbol_attr),
                stablecoins=stablecoins,
                timeout=timeout,
            )
        )
    return sources


__all__ = [
    "FetchFailure",
    "RateSource",
    "CoinGeckoSource",
    "BinanceSource",
    "BybitSource",
    "build_sources",
]
