"""
Currency catalog.

Read-only registry of the currencies the exchange supports, with the
upstream symbols used by the rate sources and the order amount limits.
"""

import logging
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class CurrencyNotFoundError(Exception):
    """Raised when a currency id is not in the catalog."""

    def __init__(self, currency_id: str):
        self.currency_id = currency_id
        super().__init__(f"Unknown currency: {currency_id}")


@dataclass(frozen=True)
class Currency:
    """
    A supported currency.

    Attributes:
        id: Catalog id, e.g. "btc", "usdt-trc20", "card-mdl".
        type: "crypto" or "fiat".
        usd_pegged: Crypto asset pegged 1:1 to USD (stablecoin).
        fiat_code: ISO-ish code for fiat currencies ("usd", "eur", "mdl").
        coingecko_id: Aggregator coin id.
        binance_symbol: Exchange ticker symbol quoted in USDT.
        bybit_symbol: Exchange ticker symbol quoted in USDT.
    """

    id: str
    name: str
    symbol: str
    type: str
    network: Optional[str] = None
    min_amount: Decimal = Decimal("0")
    max_amount: Decimal = Decimal("0")
    is_active: bool = True
    usd_pegged: bool = False
    fiat_code: Optional[str] = None
    coingecko_id: Optional[str] = None
    binance_symbol: Optional[str] = None
    bybit_symbol: Optional[str] = None

    @property
    def is_fiat(self) -> bool:
        return self.type == "fiat"

    @property
    def is_crypto(self) -> bool:
        return self.type == "crypto"

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Currency":
        """Build a Currency from a config mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in raw.items() if k in known}
        for key in ("min_amount", "max_amount"):
            if key in data:
                data[key] = Decimal(str(data[key]))
        if "id" not in data or "type" not in data:
            raise ValueError(f"Currency entry needs 'id' and 'type': {raw}")
        data.setdefault("name", data["id"])
        data.setdefault("symbol", data["id"].upper())
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "type": self.type,
            "network": self.network,
            "minAmount": str(self.min_amount),
            "maxAmount": str(self.max_amount),
            "isActive": self.is_active,
        }


DEFAULT_CURRENCIES: list[Currency] = [
    Currency(
        id="btc", name="Bitcoin", symbol="BTC", type="crypto", network="BTC",
        min_amount=Decimal("0.001"), max_amount=Decimal("10"),
        coingecko_id="bitcoin", binance_symbol="BTCUSDT", bybit_symbol="BTCUSDT",
    ),
    Currency(
        id="eth", name="Ethereum", symbol="ETH", type="crypto", network="ERC20",
        min_amount=Decimal("0.01"), max_amount=Decimal("100"),
        coingecko_id="ethereum", binance_symbol="ETHUSDT", bybit_symbol="ETHUSDT",
    ),
    Currency(
        id="usdt-trc20", name="Tether TRC20", symbol="USDT", type="crypto", network="TRC20",
        min_amount=Decimal("50"), max_amount=Decimal("50000"),
        usd_pegged=True, coingecko_id="tether",
    ),
    Currency(
        id="usdt-erc20", name="Tether ERC20", symbol="USDT", type="crypto", network="ERC20",
        min_amount=Decimal("50"), max_amount=Decimal("50000"),
        usd_pegged=True, coingecko_id="tether",
    ),
    Currency(
        id="usdc", name="USD Coin", symbol="USDC", type="crypto", network="ERC20",
        min_amount=Decimal("50"), max_amount=Decimal("50000"),
        usd_pegged=True, coingecko_id="usd-coin",
        binance_symbol="USDCUSDT", bybit_symbol="USDCUSDT",
    ),
    Currency(
        id="card-mdl", name="Card MDL", symbol="MDL", type="fiat",
        min_amount=Decimal("500"), max_amount=Decimal("500000"), fiat_code="mdl",
    ),
    Currency(
        id="card-usd", name="Card USD", symbol="USD", type="fiat",
        min_amount=Decimal("50"), max_amount=Decimal("50000"), fiat_code="usd",
    ),
    Currency(
        id="card-eur", name="Card EUR", symbol="EUR", type="fiat",
        min_amount=Decimal("50"), max_amount=Decimal("50000"), fiat_code="eur",
    ),
]


class CurrencyCatalog:
    """
    In-memory currency registry.

    Seeded once at startup, from configuration or the built-in defaults.
    """

    def __init__(self, currencies: Optional[Iterable[Currency]] = None) -> None:
        source = list(currencies) if currencies is not None else DEFAULT_CURRENCIES
        self._currencies: dict[str, Currency] = {c.id: c for c in source}

    @classmethod
    def from_config(cls, raw_currencies: list[dict[str, Any]]) -> "CurrencyCatalog":
        """
        Build a catalog from raw config entries.

        An empty list yields the built-in default currencies.
        """
        if not raw_currencies:
            return cls()
        currencies = [Currency.from_dict(entry) for entry in raw_currencies]
        logger.info(f"Loaded {len(currencies)} currencies from config")
        return cls(currencies)

    def get_currency(self, currency_id: str) -> Currency:
        """
        Look up a currency by id.

        Raises:
            CurrencyNotFoundError: If the id is unknown.
        """
        currency = self._currencies.get(currency_id)
        if currency is None:
            raise CurrencyNotFoundError(currency_id)
        return currency

    def __contains__(self, currency_id: str) -> bool:
        return currency_id in self._currencies

    def list_currencies(self, active_only: bool = True) -> list[Currency]:
        return [c for c in self._currencies.values() if c.is_active or not active_only]

    def is_usd_equivalent(self, currency_id: str) -> bool:
        """True for USD-pegged crypto, the "usd" pseudo-id and USD fiat."""
        if currency_id == "usd":
            return True
        currency = self._currencies.get(currency_id)
        if currency is None:
            return False
        if currency.is_crypto:
            return currency.usd_pegged
        return currency.fiat_code == "usd"

    def stablecoins(self) -> set[str]:
        return {c.id for c in self._currencies.values() if c.is_crypto and c.usd_pegged}

    def symbol_map(self, attr: str) -> dict[str, str]:
        """
        Map currency id to an upstream symbol attribute.

        Args:
            attr: One of "coingecko_id", "binance_symbol", "bybit_symbol".
        """
        return {
            c.id: getattr(c, attr)
            for c in self._currencies.values()
            if getattr(c, attr, None)
        }
