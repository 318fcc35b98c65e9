"""
Observer registry that fans price updates out to subscribers.
"""

import logging
import threading
from typing import Callable, Dict, List, Sequence

from pricesync.models import PriceUpdate

logger = logging.getLogger(__name__)

PriceUpdateCallback = Callable[[List[PriceUpdate]], None]


class PriceBroadcaster:
    """
    Holds an insertion-ordered set of callbacks and delivers each fetch cycle's
    records to all of them.

    Registering the same callback twice keeps a single entry at its original
    position. Mutations are guarded by a lock; callbacks are always invoked
    outside it so a subscriber may (un)subscribe from within its callback.
    """
    def __init__(self):
        # dict used as an ordered set
        self._callbacks: Dict[PriceUpdateCallback, None] = {}
        self._lock = threading.Lock()

    def subscribe(self, callback: PriceUpdateCallback) -> Callable[[], None]:
        """
        Registers `callback` for future broadcasts.

        Returns:
            Callable[[], None]: Removes exactly this callback. Safe to call repeatedly.
        """
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            self._callbacks.setdefault(callback, None)
            count = len(self._callbacks)
        logger.debug(f"Subscriber registered: {callback!r} ({count} total).")

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: PriceUpdateCallback) -> bool:
        """Removes `callback`. Returns False if it wasn't registered."""
        with self._lock:
            removed = callback in self._callbacks
            if removed:
                del self._callbacks[callback]
        if removed:
            logger.debug(f"Subscriber removed: {callback!r}.")
        return removed

    def clear(self) -> None:
        with self._lock:
            count = len(self._callbacks)
            self._callbacks.clear()
        if count:
            logger.info(f"Cleared {count} subscriber(s).")

    def broadcast(self, records: Sequence[PriceUpdate]) -> int:
        """
        Invokes every registered callback once, in registration order, with the
        same `records` object.

        The call list is fixed when the broadcast begins; a callback removed
        before its turn is skipped. Exceptions raised by a callback are logged
        and do not stop delivery to the rest.

        Returns:
            int: Number of callbacks that completed without raising.
        """
        with self._lock:
            snapshot = list(self._callbacks)

        delivered = 0
        for callback in snapshot:
            with self._lock:
                still_registered = callback in self._callbacks
            if not still_registered:
                continue
            try:
                callback(records)
                delivered += 1
            except Exception as e:
                logger.exception(f"Error in price update subscriber {callback!r}: {e}")

        logger.debug(f"Broadcast {len(records)} record(s) to {delivered}/{len(snapshot)} subscriber(s).")
        return delivered

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def __contains__(self, callback) -> bool:
        with self._lock:
            return callback in self._callbacks
