"""Sync client loop - mirrors name_sync batches into a NameStore."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

from namesync.errors import RetriesExhausted, ServiceStopping, UnknownBlock
from namesync.interfaces.extractor import Extractor
from namesync.interfaces.store import NameStore
from namesync.models.config import SyncConfig
from namesync.models.events import Checkpoint, OperationKind, SyncEvent
from namesync.models.records import BatchResult

log = logging.getLogger(__name__)


class SyncLoop:
    """Long-polls an extractor from a durable cursor and applies the events.

    Names are upserted in event order. At every checkpoint the staged
    writes and the new cursor are committed together, so a crash resumes
    from the last checkpoint and re-applies the tail of the batch.

    UnknownBlock on the stored cursor is fatal and needs an operator.
    Transient failures are retried with the same cursor and exponential
    backoff, up to max_retries consecutive failures (0 = no limit).
    """

    def __init__(
        self,
        extractor: Extractor,
        store: NameStore,
        config: SyncConfig,
        status_update: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._extractor = extractor
        self._store = store
        self._cfg = config
        self._status_update = status_update
        self._cursor: str | None = None
        self._height: int | None = None
        self._running = False
        self._stop_event = asyncio.Event()
        self._fetch: asyncio.Future | None = None

    @property
    def cursor(self) -> str | None:
        return self._cursor

    @property
    def height(self) -> int | None:
        return self._height

    def _status(self, status: str) -> None:
        if self._status_update is not None:
            self._status_update(status)

    # ── Lifecycle ──────────────────────────────────────────

    async def load_cursor(self) -> str:
        """Restore the persisted cursor, seeding it from config on first run."""
        record = await self._store.get_cursor_record()
        if record is not None:
            self._cursor, self._height = record.block_hash, record.height
            log.info("Restored cursor %s (height %s)", record.block_hash, record.height)
        else:
            self._cursor, self._height = self._cfg.start_block_hash, None
            log.info("No cursor, starting from configured block %s", self._cursor)
        return self._cursor

    async def stop(self) -> None:
        """Stop after the current step; an in-flight fetch is abandoned."""
        log.info("Stop requested")
        self._running = False
        self._stop_event.set()
        if self._fetch is not None:
            self._fetch.cancel()

    async def run(self) -> None:
        """Run until stop() or a fatal error."""
        await self.load_cursor()
        self._running = True
        self._stop_event.clear()
        failures = 0
        self._status(f"syncing from {self._cursor}")

        while self._running:
            try:
                result = await self.run_once()
            except asyncio.CancelledError:
                if self._running:
                    raise
                break
            except UnknownBlock as exc:
                log.error("Cursor %s rejected: %s", self._cursor, exc)
                await self._store.log_activity("sync_fatal", str(exc), block_hash=self._cursor)
                self._status(f"halted: {exc}")
                raise
            except ServiceStopping:
                log.info("Extractor is shutting down, leaving sync loop")
                await self._store.log_activity(
                    "sync_stopped", "extractor stopping", block_hash=self._cursor,
                )
                break
            except Exception as exc:
                failures += 1
                await self._store.log_activity(
                    "sync_error", f"attempt {failures}: {exc}", block_hash=self._cursor,
                )
                if self._cfg.max_retries and failures > self._cfg.max_retries:
                    self._status(f"halted after {failures} failures: {exc}")
                    raise RetriesExhausted(
                        f"giving up after {failures} consecutive failures: {exc}"
                    ) from exc
                delay = self.backoff_delay(failures)
                log.warning(
                    "Sync attempt %d failed (%s), retrying in %.1fs", failures, exc, delay,
                )
                self._status(f"retrying ({failures}): {exc}")
                await self._sleep(delay)
                continue

            if failures:
                log.info("Sync recovered after %d failures", failures)
                failures = 0
            if result.checkpoints:
                self._status(f"synced to {self._height}")

        self._status("stopped")

    def backoff_delay(self, failures: int) -> float:
        delay = self._cfg.initial_backoff * self._cfg.backoff_multiplier ** (failures - 1)
        return min(delay, self._cfg.max_backoff)

    async def _sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    # ── One step ───────────────────────────────────────────

    async def run_once(self) -> BatchResult:
        """Fetch one batch from the cursor and apply it."""
        if self._cursor is None:
            await self.load_cursor()
        assert self._cursor is not None

        self._fetch = asyncio.ensure_future(
            self._extractor.sync(self._cursor, self._cfg.batch_size, self._cfg.wait)
        )
        try:
            events = await self._fetch
        finally:
            self._fetch = None
        return await self.apply_batch(events)

    async def apply_batch(self, events: Sequence[SyncEvent]) -> BatchResult:
        """Apply events in order, committing at each checkpoint.

        On error everything after the last checkpoint is rolled back and
        the cursor stays at that checkpoint.
        """
        start = time.monotonic()
        result = BatchResult()
        pending = 0

        try:
            for event in events:
                if isinstance(event, Checkpoint):
                    await self._store.persist_cursor(event.block_hash, event.height)
                    self._cursor, self._height = event.block_hash, event.height
                    result.checkpoints += 1
                    result.cursor, result.height = event.block_hash, event.height
                    pending = 0
                elif event.kind == OperationKind.EXPIRE:
                    await self._store.mark_expired(event.name)
                    result.operations += 1
                    pending += 1
                else:
                    await self._store.upsert(event.name, event.value)
                    result.operations += 1
                    pending += 1
        except Exception:
            await self._store.rollback()
            raise

        if pending:
            log.warning("Discarding %d operations after the last checkpoint", pending)
            await self._store.rollback()
            result.operations -= pending

        result.duration_ms = int((time.monotonic() - start) * 1000)
        if result.checkpoints:
            log.info(
                "Applied %d operations, cursor at height %s (%s) in %dms",
                result.operations, result.height, result.cursor, result.duration_ms,
            )
        if result.operations:
            await self._store.log_activity(
                "batch_applied",
                f"{result.operations} name operations",
                block_hash=result.cursor,
                height=result.height,
            )
        return result
