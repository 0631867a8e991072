"""Tip-change notification with explicit lock hand-off."""

from __future__ import annotations

import asyncio
import logging

from namesync.errors import ServiceStopping

log = logging.getLogger(__name__)


class TipNotifier:
    """Broadcast condition signalled whenever the chain tip height changes.

    `lock` guards tip state shared between the ledger and its readers.
    wait_for_change() must be called with the lock held: the lock is
    released while suspended and held again when it returns, so writers
    publishing new blocks are never blocked by a waiting reader.
    """

    def __init__(self, lock: asyncio.Lock | None = None) -> None:
        self._cond = asyncio.Condition(lock)
        self._height: int | None = None
        self._stopping = False

    @property
    def lock(self) -> asyncio.Condition:
        """Async context manager for the shared lock."""
        return self._cond

    @property
    def height(self) -> int | None:
        return self._height

    @property
    def stopping(self) -> bool:
        return self._stopping

    async def publish(self, height: int) -> None:
        """Record a new tip height and wake every waiter."""
        async with self._cond:
            self.publish_locked(height)

    def publish_locked(self, height: int) -> None:
        """publish() for callers already holding the lock."""
        if height == self._height:
            return
        log.debug("Tip height %s -> %d", self._height, height)
        self._height = height
        self._cond.notify_all()

    async def close(self) -> None:
        """Fail all current and future waits with ServiceStopping."""
        async with self._cond:
            self._stopping = True
            self._cond.notify_all()

    async def wait_for_change(self, known_height: int) -> int:
        """Suspend until the tip differs from known_height; return the new height.

        Each waiter re-checks the height after waking, so spurious and
        shared wakeups are harmless.
        """
        await self._cond.wait_for(
            lambda: self._stopping or (self._height is not None and self._height != known_height)
        )
        if self._stopping:
            raise ServiceStopping()
        assert self._height is not None
        return self._height
