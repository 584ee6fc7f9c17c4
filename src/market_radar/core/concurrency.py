"""Concurrency primitives for the fetch cycle: an at-most-one gate and cancellation tokens."""

import asyncio
import itertools
import logging
from contextlib import asynccontextmanager
from typing import Callable, List

from .errors import CancellationError

logger = logging.getLogger(__name__)


class FetchGate:
    """Non-queueing async gate.

    A second caller never waits for the holder: it is told the gate is busy
    and is expected to drop its request.
    """

    def __init__(self, name: str):
        """Initialize fetch gate."""
        self.name = name
        self._lock = asyncio.Lock()
        self._dropped = 0
        logger.debug(f"Fetch gate '{name}' created")

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def try_enter(self):
        """Yield True while holding the gate, or False if it was already held.

        Acquiring an unlocked asyncio.Lock does not suspend, so the busy check
        and the acquisition happen without another task running in between.
        """
        if self._lock.locked():
            self._dropped += 1
            logger.debug(f"Fetch gate '{self.name}' busy, request dropped (total: {self._dropped})")
            yield False
            return
        async with self._lock:
            yield True

    def dropped_count(self) -> int:
        """Get number of requests dropped while the gate was held."""
        return self._dropped


class CancellationToken:
    """Cancellation token owned by exactly one fetch cycle."""

    _ids = itertools.count(1)

    def __init__(self):
        self.id = next(self._ids)
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run *callback* on cancellation, immediately if already cancelled."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def cancel(self) -> None:
        """Cancel the token. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        logger.debug(f"Cancellation token {self.id} cancelled")

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancellationError(f"Fetch cycle {self.id} was superseded")
