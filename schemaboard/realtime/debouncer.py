from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Set

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesces bursts of triggers per key into one delayed action.

    ``schedule(key)`` cancels any timer still waiting for that key and starts a
    new one, so the action runs once, ``delay`` seconds after the last trigger.
    A timer leaves the pending map as soon as its delay elapses; an action
    already running is never cancelled by a later trigger.
    """

    def __init__(self, delay: float, action: Callable[[str], Awaitable[None]]) -> None:
        self._delay = delay
        self._action = action
        self._timers: Dict[str, asyncio.Task] = {}
        self._running: Set[asyncio.Task] = set()

    @property
    def delay(self) -> float:
        return self._delay

    def schedule(self, key: str) -> None:
        previous = self._timers.pop(key, None)
        if previous is not None:
            previous.cancel()
        self._timers[key] = asyncio.get_running_loop().create_task(self._fire(key), name=f"debounce:{key}")

    def cancel(self, key: str) -> bool:
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    def pending_keys(self) -> Set[str]:
        return set(self._timers)

    async def _fire(self, key: str) -> None:
        await asyncio.sleep(self._delay)

        task = asyncio.current_task()
        if self._timers.get(key) is task:
            del self._timers[key]
        self._running.add(task)
        try:
            await self._action(key)
        except Exception as e:
            logger.error(f"Debounced action failed for {key}: {e}")
        finally:
            self._running.discard(task)

    async def close(self) -> None:
        """Cancel every waiting timer and let in-flight actions finish."""
        timers = list(self._timers.values())
        self._timers.clear()
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
