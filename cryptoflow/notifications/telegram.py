"""
Telegram order notifications.

TelegramNotifier posts to the Bot API; build_notifier falls back to
NullNotifier when Telegram is not configured.
"""

import logging
import re
from typing import Optional

import httpx

from cryptoflow.notifications.base import Notifier, NullNotifier
from cryptoflow.orders.models import Order
from cryptoflow.orders.status import get_status_description

logger = logging.getLogger(__name__)

BOT_TOKEN_PATTERN = re.compile(r"^\d+:[A-Za-z0-9_-]{35}$")
CHAT_ID_PATTERN = re.compile(r"^(-?\d+|@[a-zA-Z0-9_]+)$")


def is_valid_bot_token(token: str) -> bool:
    return bool(token) and BOT_TOKEN_PATTERN.match(token) is not None


def is_valid_chat_id(chat_id: str) -> bool:
    return bool(chat_id) and CHAT_ID_PATTERN.match(chat_id) is not None


class TelegramNotifier(Notifier):
    """
    Telegram Bot API notifier.

    Never raises on delivery failure: a failed send is logged and reported
    as False so order flows are not affected by chat outages.
    """

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        api_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            bot_token: Bot token in "<id>:<secret>" form.
            chat_id: Numeric chat id or "@channel" name.
            api_url: Bot API base URL.
            timeout: HTTP request timeout (seconds).
            client: Shared HTTP client; one is created lazily if omitted.

        Raises:
            ValueError: If the token or chat id is malformed.
        """
        if not is_valid_bot_token(bot_token):
            raise ValueError("Invalid Telegram bot token format")
        if not is_valid_chat_id(chat_id):
            raise ValueError("Invalid Telegram chat id format")

        self.bot_token = bot_token
        self.chat_id = chat_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def enabled(self) -> bool:
        return True

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send_message(self, text: str) -> bool:
        """
        Send a plain text message to the configured chat.

        Returns:
            True if Telegram accepted the message.
        """
        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": text}

        try:
            client = await self._get_client()
            response = await client.post(url, json=payload, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.error(f"Telegram send failed: {e}")
            return False

        if not response.is_success:
            logger.error(f"Telegram API error: HTTP {response.status_code}")
            return False

        try:
            ok = bool(response.json().get("ok", False))
        except ValueError:
            ok = False
        if not ok:
            logger.error("Telegram API rejected the message")
        return ok

    async def notify_order_created(self, order: Order) -> bool:
        lines = [
            f"New order {order.id}",
            f"{order.from_amount} {order.from_currency} -> {order.to_amount} {order.to_currency}",
            f"Rate: {order.exchange_rate} ({order.rate_type.value})",
            f"Deposit: {order.deposit_address}",
        ]
        if order.contact_email:
            lines.append(f"Contact: {order.contact_email}")
        return await self.send_message("\n".join(lines))

    async def notify_status_changed(self, order: Order) -> bool:
        text = (
            f"Order {order.id} is now {order.status.value}: "
            f"{get_status_description(order.status)}"
        )
        return await self.send_message(text)


def build_notifier(
    bot_token: str,
    chat_id: str,
    api_url: str = "https://api.telegram.org",
    timeout: float = 10.0,
    client: Optional[httpx.AsyncClient] = None,
) -> Notifier:
    """
    Build a TelegramNotifier when credentials are valid, else a NullNotifier.
    """
    if not bot_token or not chat_id:
        logger.info("Telegram not configured; notifications disabled")
        return NullNotifier()

    try:
        return TelegramNotifier(bot_token, chat_id, api_url=api_url, timeout=timeout, client=client)
    except ValueError as e:
        logger.warning(f"Telegram disabled: {e}")
        return NullNotifier()
