"""
Binance ticker price source (secondary exchange).

USDT-quoted symbols are treated as USD prices.
"""

from typing import Any

from cryptoflow.sources.base import RateSource


class BinanceSource(RateSource):
    name = "binance"

    def _price_path(self) -> str:
        return "/api/v3/ticker/price"

    def _price_params(self, symbol: str) -> dict[str, str]:
        return {"symbol": symbol}

    def _extract_price(self, data: Any, symbol: str) -> Any:
        if not isinstance(data, dict):
            return None
        return data.get("price")
