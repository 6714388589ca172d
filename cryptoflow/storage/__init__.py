"""
Storage modules.

Currency catalog, deposit address book and rate history.
"""

from cryptoflow.storage.currency_catalog import (
    DEFAULT_CURRENCIES,
    Currency,
    CurrencyCatalog,
    CurrencyNotFoundError,
)
from cryptoflow.storage.deposit_addresses import DepositAddressBook
from cryptoflow.storage.rate_history import RateHistoryStore

__all__ = [
    "DEFAULT_CURRENCIES",
    "Currency",
    "CurrencyCatalog",
    "CurrencyNotFoundError",
    "DepositAddressBook",
    "RateHistoryStore",
]
