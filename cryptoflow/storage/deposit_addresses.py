"""
Deposit address book.

Resolves the address a client sends funds to for a given source currency.
"""

from typing import Mapping, Optional

MOCK_DEPOSIT_ADDRESS = "mock-deposit-address"

# Network-level defaults used when no wallet is configured for the currency.
DEFAULT_NETWORK_ADDRESSES: dict[str, str] = {
    "btc": "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
    "eth": "0x742d35Cc6634C0532925a3b8D0c2AC4B5d4A2c37",
    "erc20": "0x742d35Cc6634C0532925a3b8D0c2AC4B5d4A2c37",
    "trc20": "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgj3xDT",
}


class DepositAddressBook:
    """Lookup of configured wallets by currency id, then by network."""

    def __init__(
        self,
        wallets: Optional[Mapping[str, str]] = None,
        network_defaults: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._wallets = dict(wallets or {})
        self._network_defaults = dict(
            DEFAULT_NETWORK_ADDRESSES if network_defaults is None else network_defaults
        )

    def address_for(self, currency_id: str) -> str:
        """
        Get the deposit address for a currency.

        Order: configured wallet for the id, then a network default matched
        by id or by the network suffix ("usdt-trc20" -> "trc20"), then the
        mock placeholder.
        """
        if currency_id in self._wallets:
            return self._wallets[currency_id]

        if currency_id in self._network_defaults:
            return self._network_defaults[currency_id]

        for network, address in self._network_defaults.items():
            if currency_id.endswith(f"-{network}"):
                return address

        return MOCK_DEPOSIT_ADDRESS
