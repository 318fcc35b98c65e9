"""
Polling helpers for tests that drive the synchronizer's background tasks.
"""

import asyncio
import time


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


def active_timers():
    return [task for task in asyncio.all_tasks()
            if task.get_name().startswith("price-timer-") and not task.done()]
