"""
Static rate tables.

USD -> fiat multipliers, direct fiat-pair overrides, and the last-known-good
fallback table used when every live source fails.
"""

from decimal import Decimal
from typing import Mapping, Optional

from cryptoflow.pricing.models import CurrencyPair
from cryptoflow.utils.config_loader import RatesConfig


def _to_decimals(values: Mapping[str, float]) -> dict[str, Decimal]:
    return {str(k).lower(): Decimal(str(v)) for k, v in values.items() if float(v) > 0}


class StaticRateTable:
    """Read-only lookup over the configured static rates."""

    def __init__(
        self,
        fiat_multipliers: Mapping[str, float],
        overrides: Optional[Mapping[str, float]] = None,
        fallbacks: Optional[Mapping[str, float]] = None,
    ) -> None:
        self._fiat_multipliers = _to_decimals(fiat_multipliers)
        self._overrides = _to_decimals(overrides or {})
        self._fallbacks = _to_decimals(fallbacks or {})

    @classmethod
    def from_config(cls, rates_config: RatesConfig) -> "StaticRateTable":
        return cls(
            fiat_multipliers=rates_config.fiat_multipliers,
            overrides=rates_config.overrides,
            fallbacks=rates_config.fallbacks,
        )

    def fiat_multiplier(self, fiat_code: str) -> Optional[Decimal]:
        """USD -> fiat multiplier for a fiat code, or None if not configured."""
        return self._fiat_multipliers.get(fiat_code.lower())

    def override_for(self, pair: CurrencyPair) -> Optional[Decimal]:
        return self._overrides.get(pair.key)

    def fallback_for(self, pair: CurrencyPair) -> Optional[Decimal]:
        return self._fallbacks.get(pair.key)
