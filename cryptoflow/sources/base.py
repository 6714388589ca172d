"""
Rate source base class.

Each source wraps exactly one upstream market-data API and normalizes its
response into a single asset -> USD price, or raises FetchFailure.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0  # seconds


class FetchFailure(Exception):
    """A single source failed to produce a price (HTTP, parse or timeout)."""

    def __init__(self, source: str, asset_id: str, reason: str):
        self.source = source
        self.asset_id = asset_id
        self.reason = reason
        super().__init__(f"{source} failed for {asset_id}: {reason}")


def parse_price(value: Any) -> Optional[Decimal]:
    """
    Parse an upstream price field.

    Returns:
        Positive Decimal, or None if the value is missing or not a positive number.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


class RateSource(ABC):
    """
    Base class for upstream price sources.

    Attributes:
        name: Short source name used in logs and rate metadata.
        client: Shared async HTTP client.
        timeout: Per-request timeout in seconds.
        symbols: Currency id -> upstream symbol.
        stablecoins: Currency ids pegged 1:1 to USD.
    """

    name: str = "base"

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        symbols: Mapping[str, str],
        stablecoins: Iterable[str] = (),
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.symbols = dict(symbols)
        self.stablecoins = frozenset(stablecoins)
        self.timeout = timeout

    async def fetch_usd_price(self, asset_id: str, timeout: Optional[float] = None) -> Decimal:
        """
        Fetch the USD price of an asset.

        Args:
            asset_id: Catalog currency id.
            timeout: Overrides the per-request timeout (never raises it).

        Returns:
            Decimal price > 0.

        Raises:
            FetchFailure: On any upstream or parsing failure.
        """
        if asset_id in self.stablecoins:
            return Decimal("1")

        symbol = self.symbols.get(asset_id)
        if not symbol:
            raise FetchFailure(self.name, asset_id, "no symbol for this source")

        effective_timeout = self.timeout if timeout is None else min(timeout, self.timeout)
        data = await self._get_json(asset_id, self._price_path(), self._price_params(symbol), effective_timeout)

        price = parse_price(self._extract_price(data, symbol))
        if price is None:
            raise FetchFailure(self.name, asset_id, "missing or invalid price field")

        logger.debug(f"{self.name}: {asset_id} = {price} USD")
        return price

    async def _get_json(
        self,
        asset_id: str,
        path: str,
        params: dict[str, str],
        timeout: float,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.get(url, params=params, timeout=timeout)
        except httpx.TimeoutException as e:
            raise FetchFailure(self.name, asset_id, f"timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise FetchFailure(self.name, asset_id, f"transport error: {e}") from e

        if not response.is_success:
            raise FetchFailure(self.name, asset_id, f"HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise FetchFailure(self.name, asset_id, "invalid JSON") from e

    @abstractmethod
    def _price_path(self) -> str:
        """URL path of the price endpoint."""

    @abstractmethod
    def _price_params(self, symbol: str) -> dict[str, str]:
        """Query parameters for one symbol."""

    @abstractmethod
    def _extract_price(self, data: Any, symbol: str) -> Any:
        """Pull the raw price field out of the response, or None."""
