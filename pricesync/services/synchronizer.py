"""
Polling synchronizer: keeps the tracked coin set's prices fresh and pushes
each successful fetch cycle to the broadcaster.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set, Tuple

from config import settings
from pricesync.api import CoinGeckoMarketFetcher, PriceFetchError
from pricesync.models import PriceUpdate
from pricesync.services.broadcaster import PriceBroadcaster, PriceUpdateCallback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollingPolicy:
    """
    Fetch cadence and retry behaviour.

    Retrying is passive: a failed cycle is abandoned and the next tick tries
    again, with no backoff and no cap on consecutive failures.

    Attributes:
        interval_seconds (float): Delay between ticks.
        skip_overlapping_ticks (bool): Skip a tick while the previous cycle's
            request is still in flight instead of starting a second one.
    """
    interval_seconds: float = field(default_factory=lambda: settings.POLL_INTERVAL_SECONDS)
    skip_overlapping_ticks: bool = field(default_factory=lambda: settings.SKIP_OVERLAPPING_TICKS)

    def __post_init__(self):
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")


class PriceUpdateService:
    """
    Owns the tracked coin set, the repeating timer task and the fetch step.

    Lifecycle: `start_updates` moves the service to running (re-arming if it
    already was), `stop_updates` moves it back to idle and drops every
    subscriber. Subscribers must re-subscribe after a stop.

    All state is mutated on the event loop thread; the blocking HTTP request
    runs in a worker thread via `asyncio.to_thread`.

    Args:
        fetcher: Object exposing `get_prices(ids) -> List[PriceUpdate]`.
        broadcaster (PriceBroadcaster): Subscriber registry.
        policy (PollingPolicy): Cadence and overlap handling.
    """
    def __init__(self,
                 fetcher: Optional[CoinGeckoMarketFetcher] = None,
                 broadcaster: Optional[PriceBroadcaster] = None,
                 policy: Optional[PollingPolicy] = None):
        self.fetcher = fetcher or CoinGeckoMarketFetcher()
        self.broadcaster = broadcaster or PriceBroadcaster()
        self.policy = policy or PollingPolicy()

        self._coin_ids: List[str] = []
        self._timer_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        # Strong references to every task we spawn, so none is collected mid-run
        self._tasks: Set[asyncio.Task] = set()
        # Bumped by every start/stop; cycles from an older generation never broadcast
        self._generation = 0

        self.cycles_completed = 0
        self.cycles_failed = 0

    # --- Properties ---

    @property
    def is_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def tracked_ids(self) -> Tuple[str, ...]:
        return tuple(self._coin_ids)

    # --- Lifecycle ---

    def start_updates(self, coin_ids: Sequence[str]) -> None:
        """
        Replaces the tracked set, fetches immediately and (re)arms the timer.

        Must be called from a running event loop. Any timer armed by a
        previous call is cancelled first. An empty `coin_ids` still arms the
        timer, but its cycles make no request and broadcast nothing.
        """
        loop = asyncio.get_running_loop()

        self._coin_ids = list(coin_ids)
        self._generation += 1
        generation = self._generation
        self._cancel_timer()
        self._inflight = None

        self._trigger_cycle(generation)
        self._timer_task = self._spawn(loop, self._run_timer(generation), f"price-timer-{generation}")
        logger.info(f"Price updates started for {len(self._coin_ids)} coin(s), "
                    f"every {self.policy.interval_seconds}s (generation {generation}).")

    def stop_updates(self) -> None:
        """
        Cancels the timer if armed and clears the tracked set and all subscribers.

        Safe to call when already stopped. A request already in flight is left
        to finish, but its results are discarded.
        """
        was_running = self.is_running
        self._generation += 1
        self._cancel_timer()
        self._coin_ids = []
        self._inflight = None
        self.broadcaster.clear()
        if was_running:
            logger.info("Price updates stopped.")
        else:
            logger.debug("stop_updates called while idle.")

    async def close(self, timeout: float = 5.0) -> None:
        """Stops updates and waits for the timer and any in-flight cycle to wind down."""
        self.stop_updates()
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if not pending:
            return
        try:
            await asyncio.wait_for(asyncio.gather(*pending, return_exceptions=True), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timeout waiting for {len(pending)} price update task(s) to finish cancellation.")

    def subscribe(self, callback: PriceUpdateCallback) -> Callable[[], None]:
        """Registers `callback` with the broadcaster. Returns its unsubscribe function."""
        return self.broadcaster.subscribe(callback)

    # --- Fetch cycle ---

    async def fetch_cycle(self) -> Optional[List[PriceUpdate]]:
        """Runs one fetch cycle for the current tracked set and returns what was broadcast."""
        return await self._fetch_cycle(self._generation, list(self._coin_ids))

    async def _fetch_cycle(self, generation: int, coin_ids: List[str]) -> Optional[List[PriceUpdate]]:
        if not coin_ids or generation != self._generation:
            return None

        try:
            updates = await asyncio.to_thread(self.fetcher.get_prices, coin_ids)
        except PriceFetchError as e:
            self.cycles_failed += 1
            logger.error(f"Error fetching price updates: {e}")
            return None
        except Exception as e:
            self.cycles_failed += 1
            logger.exception(f"Unexpected error fetching price updates: {e}")
            return None

        if generation != self._generation:
            logger.info(f"Discarding {len(updates)} price update(s) from superseded generation {generation}.")
            return None

        self.cycles_completed += 1
        self.broadcaster.broadcast(updates)
        return updates

    def _trigger_cycle(self, generation: int) -> None:
        if (self.policy.skip_overlapping_ticks
                and self._inflight is not None and not self._inflight.done()):
            logger.debug("Previous price fetch still in flight; skipping this tick.")
            return
        self._inflight = self._spawn(asyncio.get_running_loop(),
                                     self._fetch_cycle(generation, list(self._coin_ids)),
                                     f"price-fetch-{generation}")

    async def _run_timer(self, generation: int) -> None:
        try:
            while generation == self._generation:
                await asyncio.sleep(self.policy.interval_seconds)
                if generation != self._generation:
                    break
                self._trigger_cycle(generation)
        except asyncio.CancelledError:
            logger.debug(f"Price timer for generation {generation} cancelled.")

    def _cancel_timer(self) -> None:
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro, name: str) -> asyncio.Task:
        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
