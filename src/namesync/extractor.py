"""Block event extractor - turns a range of blocks into a resumable event batch."""

from __future__ import annotations

import logging

from namesync.errors import BlockNotCanonical, UnknownBlock
from namesync.interfaces.ledger import Ledger
from namesync.ledger.script import extract_name_operations
from namesync.models.events import Checkpoint, SyncEvent
from namesync.models.ledger import BlockHandle

log = logging.getLogger(__name__)


class BlockEventExtractor:
    """Stateless name_sync implementation over a Ledger.

    All state needed to resume is the caller's block hash. The scan reads
    whole blocks: `count` is a soft cap checked after each block, and the
    last scanned block always yields a checkpoint so cursors advance across
    stretches without name operations.
    """

    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger

    async def sync(self, start_hash: str, count: int, wait: bool = False) -> list[SyncEvent]:
        if count < 0:
            return []

        start, tip = await self._resolve_range(start_hash, wait)

        events: list[SyncEvent] = []
        emitted = 0
        for height in range(start.height + 1, tip + 1):
            handle = await self._ledger.block_at_height(height)
            block = await self._ledger.read_block(handle)
            ops = extract_name_operations(block)
            events.extend(ops)
            emitted += len(ops)

            last = height == tip or emitted > count
            if ops or last:
                events.append(Checkpoint(block_hash=block.block_hash, height=block.height))
            if last:
                break

        log.debug(
            "name_sync %s..%d: %d events (%d operations)",
            start_hash[:16], tip, len(events), emitted,
        )
        return events

    async def _resolve_range(self, start_hash: str, wait: bool) -> tuple[BlockHandle, int]:
        """Resolve the start block and sample the tip, long-polling if asked.

        Ledger reads happen outside the notifier lock. The lock is taken
        only to line the notifier up with the sampled tip and park; the
        wait hands it back, so block publication and other readers proceed
        while this call is parked.
        """
        start = await self._ledger.lookup_block_by_hash(start_hash)
        if start is None:
            raise UnknownBlock(start_hash)
        tip = await self._ledger.current_tip_height()
        if start.height > tip:
            raise BlockNotCanonical(start_hash, start.height)
        canonical = await self._ledger.block_at_height(start.height)
        if canonical.block_hash != start.block_hash:
            raise BlockNotCanonical(start_hash, start.height)

        if wait and start.height == tip:
            notifier = self._ledger.notifier
            async with notifier.lock:
                # A notifier behind the sampled tip would end the wait at once
                if notifier.height is None or notifier.height < tip:
                    notifier.publish_locked(tip)
                if notifier.height == tip:
                    log.debug("Waiting for a block after %d", tip)
                    await notifier.wait_for_change(tip)
            tip = await self._ledger.current_tip_height()

        return start, tip
