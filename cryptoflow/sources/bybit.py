"""
Bybit spot ticker price source (tertiary exchange).

Response envelope: {"retCode": 0, "result": {"list": [{"lastPrice": "..."}]}}.
A non-zero retCode is a failure even with HTTP 200.
"""

from typing import Any

from cryptoflow.sources.base import RateSource


class BybitSource(RateSource):
    name = "bybit"

    def _price_path(self) -> str:
        return "/v5/market/tickers"

    def _price_params(self, symbol: str) -> dict[str, str]:
        return {"category": "spot", "symbol": symbol}

    def _extract_price(self, data: Any, symbol: str) -> Any:
        if not isinstance(data, dict) or data.get("retCode") != 0:
            return None
        result = data.get("result")
        if not isinstance(result, dict):
            return None
        tickers = result.get("list")
        if not isinstance(tickers, list) or not tickers or not isinstance(tickers[0], dict):
            return None
        return tickers[0].get("lastPrice")
