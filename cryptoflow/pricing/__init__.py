"""
Pricing modules.

Rate model, cache, resolver and order pricer.
"""

from cryptoflow.pricing.models import (
    CurrencyPair,
    OrderPricing,
    RateOrigin,
    RateType,
    ResolvedRate,
)
from cryptoflow.pricing.rate_cache import CacheEntry, RateCache
from cryptoflow.pricing.static_rates import StaticRateTable
from cryptoflow.pricing.rate_resolver import RateResolver, UsdQuote
from cryptoflow.pricing.order_pricer import AmountOutOfRangeError, InsufficientAmountError, OrderPricer

__all__ = [
    "CurrencyPair",
    "OrderPricing",
    "RateOrigin",
    "RateType",
    "ResolvedRate",
    "CacheEntry",
    "RateCache",
    "StaticRateTable",
    "RateResolver",
    "UsdQuote",
    "AmountOutOfRangeError",
    "InsufficientAmountError",
    "OrderPricer",
]
