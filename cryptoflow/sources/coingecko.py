"""
CoinGecko price source (primary aggregator).
"""

from typing import Any

from cryptoflow.sources.base import RateSource


class CoinGeckoSource(RateSource):
    """Simple-price endpoint: data[coin_id]["usd"]."""

    name = "coingecko"

    def _price_path(self) -> str:
        return "/api/v3/simple/price"

    def _price_params(self, symbol: str) -> dict[str, str]:
        return {"ids": symbol, "vs_currencies": "usd"}

    def _extract_price(self, data: Any, symbol: str) -> Any:
        if not isinstance(data, dict):
            return None
        entry = data.get(symbol)
        if not isinstance(entry, dict):
            return None
        return entry.get("usd")
