"""
Periodic rate refresh.

Resolves the configured display pairs on a fixed interval, appends them to
the rate history and publishes a rates_update event to the hub. Shares the
resolver and cache with on-demand requests.
"""

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional

from cryptoflow.pricing.models import ResolvedRate, utc_now
from cryptoflow.pricing.rate_resolver import RateResolver
from cryptoflow.services.event_hub import RATES_UPDATE, EventHub
from cryptoflow.storage.rate_history import RateHistoryStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RateRefresher:
    """
    Scheduled refresh task.

    Args:
        resolver: Shared rate resolver.
        pairs: (from_id, to_id) pairs to refresh.
        interval_seconds: Delay between refreshes.
        hub: Event hub for rates_update events.
        history: Optional history store.
        sleep: Awaitable sleep, injectable so tests do not wait on the clock.
        clock: Returns the current UTC datetime.
    """

    def __init__(
        self,
        resolver: RateResolver,
        pairs: Iterable[Iterable[str]],
        interval_seconds: float = 900,
        hub: Optional[EventHub] = None,
        history: Optional[RateHistoryStore] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.resolver = resolver
        self.pairs = [tuple(pair) for pair in pairs]
        self.interval_seconds = interval_seconds
        self.hub = hub
        self.history = history
        self._sleep = sleep
        self._clock = clock

        self.latest: list[ResolvedRate] = []
        self.last_refresh: datetime | None = None
        self.refresh_count = 0
        self._task: asyncio.Task | None = None
        self._stopping = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def latest_payload(self) -> list[dict[str, Any]]:
        return [rate.to_payload() for rate in self.latest]

    async def refresh_once(self) -> list[ResolvedRate]:
        """
        Resolve every pair, record and publish.

        A pair that fails to resolve (unknown currency id) is logged and
        skipped; the remaining pairs are still published.
        """
        results = await asyncio.gather(
            *(self.resolver.resolve(f, t) for f, t in self.pairs),
            return_exceptions=True,
        )

        rates: list[ResolvedRate] = []
        for (from_id, to_id), result in zip(self.pairs, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Refresh failed for {from_id}-{to_id}: {result}",
                    extra={"pair": f"{from_id}-{to_id}"},
                )
                continue
            rates.append(result)

        self.latest = rates
        self.last_refresh = self._clock()
        self.refresh_count += 1

        if self.history is not None and rates:
            try:
                self.history.record(rates)
            except OSError as e:
                logger.error(f"Failed to record rate history: {e}")

        if self.hub is not None:
            await self.hub.publish(RATES_UPDATE, self.latest_payload())

        degraded = sum(1 for r in rates if r.is_degraded)
        logger.info(f"Refreshed {len(rates)} rates ({degraded} degraded)")
        return rates

    async def run(self, iterations: Optional[int] = None) -> None:
        """
        Refresh in a loop until stopped.

        Args:
            iterations: Stop after this many refreshes (None = forever).
        """
        done = 0
        while not self._stopping:
            try:
                await self.refresh_once()
            except Exception as e:
                logger.exception(f"Rate refresh failed: {e}")

            done += 1
            if iterations is not None and done >= iterations:
                break
            await self._sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        """Start the refresh loop as a background task."""
        if self.is_running:
            return self._task
        self._stopping = False
        self._task = asyncio.create_task(self.run(), name="rate-refresher")
        logger.info(f"Rate refresher started: {len(self.pairs)} pairs every {self.interval_seconds}s")
        return self._task

    async def stop(self) -> None:
        """Stop the refresh loop and wait for it to exit."""
        self._stopping = True
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Rate refresher stopped")
