"""Extractor protocol - produces sync event batches from a cursor."""

from __future__ import annotations

from typing import Protocol

from namesync.models.events import SyncEvent


class Extractor(Protocol):
    """Stateless event extraction, either in-process or over RPC."""

    async def sync(self, start_hash: str, count: int, wait: bool = False) -> list[SyncEvent]:
        """Events after start_hash, roughly `count` operations, whole blocks only."""
        ...
