"""Ledger protocol - read-only query interface over the name blockchain."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from namesync.models.ledger import Block, BlockHandle

if TYPE_CHECKING:
    from namesync.ledger.notifier import TipNotifier


class Ledger(Protocol):
    """Read-only view of the canonical chain plus a tip-change signal."""

    @property
    def notifier(self) -> TipNotifier:
        """Broadcast signal fired whenever the tip height changes."""
        ...

    async def lookup_block_by_hash(self, block_hash: str) -> BlockHandle | None:
        """Resolve a hash to a known block (canonical or not). None if unknown."""
        ...

    async def read_block(self, handle: BlockHandle) -> Block:
        """Read a block's transactions. Raises LedgerReadError on failure."""
        ...

    async def current_tip_height(self) -> int:
        ...

    async def block_at_height(self, height: int) -> BlockHandle:
        """Canonical block at the given height. Raises LedgerReadError on failure."""
        ...
