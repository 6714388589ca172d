"""
Service container.

Builds every long-lived service once from configuration and wires them
together explicitly. The web app and the CLI each build one container.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

import httpx

from cryptoflow.notifications.base import Notifier
from cryptoflow.notifications.telegram import build_notifier
from cryptoflow.orders.order_store import OrderStore
from cryptoflow.orders.service import OrderService
from cryptoflow.pricing.models import utc_now
from cryptoflow.pricing.order_pricer import OrderPricer
from cryptoflow.pricing.rate_cache import RateCache
from cryptoflow.pricing.rate_resolver import RateResolver
from cryptoflow.pricing.static_rates import StaticRateTable
from cryptoflow.services.event_hub import EventHub
from cryptoflow.services.health_service import HealthService
from cryptoflow.services.rate_refresher import RateRefresher
from cryptoflow.sources import RateSource, build_sources
from cryptoflow.storage.currency_catalog import CurrencyCatalog
from cryptoflow.storage.deposit_addresses import DepositAddressBook
from cryptoflow.storage.rate_history import RateHistoryStore
from cryptoflow.utils.config_loader import AppConfig, get_telegram_credentials

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Process-wide services, constructed by build_services()."""

    config: AppConfig
    http_client: httpx.AsyncClient
    catalog: CurrencyCatalog
    addresses: DepositAddressBook
    cache: RateCache
    table: StaticRateTable
    resolver: RateResolver
    pricer: OrderPricer
    order_store: OrderStore
    notifier: Notifier
    hub: EventHub
    order_service: OrderService
    history: Optional[RateHistoryStore] = None
    refresher: Optional[RateRefresher] = None
    health: HealthService = field(init=False)
    _owns_client: bool = False

    def __post_init__(self) -> None:
        self.health = HealthService(self)

    async def aclose(self) -> None:
        """Stop background work and release HTTP connections."""
        if self.refresher is not None:
            await self.refresher.stop()
        await self.notifier.close()
        if self._owns_client:
            await self.http_client.aclose()


def build_services(
    config: Optional[AppConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Callable[[], datetime] = utc_now,
    sources: Optional[Sequence[RateSource]] = None,
    notifier: Optional[Notifier] = None,
    history_file: Optional[Path] = None,
) -> ServiceContainer:
    """
    Build the service graph.

    Args:
        config: Application configuration (defaults when None).
        http_client: Shared HTTP client; created when None.
        clock: Returns the current UTC datetime.
        sources: Rate sources overriding the configured ones.
        notifier: Notifier overriding the Telegram settings.
        history_file: Rate history path overriding the configured one.

    Returns:
        ServiceContainer with every service wired.
    """
    config = config or AppConfig()
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=config.rates.source_timeout_seconds)

    catalog = CurrencyCatalog.from_config(config.currencies)
    addresses = DepositAddressBook(config.wallets)
    cache = RateCache(ttl_seconds=config.rates.cache_ttl_seconds, clock=clock)
    table = StaticRateTable.from_config(config.rates)

    if sources is None:
        sources = build_sources(
            client,
            catalog,
            config.sources,
            timeout=config.rates.source_timeout_seconds,
        )

    resolver = RateResolver(
        catalog=catalog,
        sources=sources,
        cache=cache,
        table=table,
        clock=clock,
        source_timeout=config.rates.source_timeout_seconds,
        resolution_deadline=config.rates.resolution_deadline_seconds,
    )
    pricer = OrderPricer(
        resolver,
        fees=config.fees,
        clock=clock,
        rate_lock_minutes=config.orders.rate_lock_minutes,
    )

    if notifier is None:
        token, chat_id = get_telegram_credentials(config)
        notifier = build_notifier(
            token,
            chat_id,
            api_url=config.telegram.api_url,
            timeout=config.telegram.timeout_seconds,
            client=client,
        )

    hub = EventHub(clock=clock, delivery_timeout=config.broadcast.delivery_timeout_seconds)
    order_store = OrderStore(clock=clock)
    order_service = OrderService(
        catalog=catalog,
        pricer=pricer,
        store=order_store,
        addresses=addresses,
        notifier=notifier,
        hub=hub,
        clock=clock,
        id_prefix=config.orders.id_prefix,
    )

    history = None
    if config.history.enabled:
        history = RateHistoryStore(Path(history_file or config.history.history_file))

    refresher = RateRefresher(
        resolver,
        config.broadcast.pairs,
        interval_seconds=config.broadcast.interval_seconds,
        hub=hub,
        history=history,
        clock=clock,
    )

    logger.info(
        f"Services built: {len(catalog.list_currencies())} currencies, "
        f"sources={resolver.source_names}, notifier={notifier.name}"
    )

    return ServiceContainer(
        config=config,
        http_client=client,
        catalog=catalog,
        addresses=addresses,
        cache=cache,
        table=table,
        resolver=resolver,
        pricer=pricer,
        order_store=order_store,
        notifier=notifier,
        hub=hub,
        order_service=order_service,
        history=history,
        refresher=refresher,
        _owns_client=owns_client,
    )
