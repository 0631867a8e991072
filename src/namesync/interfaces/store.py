"""NameStore protocol - the downstream mirror of current name values."""

from __future__ import annotations

from typing import Protocol

from namesync.models.records import ActivityRecord, CursorRecord, NameRecord


class NameStore(Protocol):
    """Persists names and the sync cursor.

    Writes are staged in an open transaction; persist_cursor() commits them
    together with the new cursor and rollback() discards everything since
    the last committed checkpoint.
    """

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        ...

    async def close(self) -> None:
        ...

    # ── Apply ──────────────────────────────────────────────

    async def upsert(self, name: bytes, value: bytes) -> None:
        ...

    async def mark_expired(self, name: bytes) -> None:
        ...

    async def rollback(self) -> None:
        ...

    # ── Cursor ─────────────────────────────────────────────

    async def load_cursor(self) -> str | None:
        ...

    async def persist_cursor(self, block_hash: str, height: int | None = None) -> None:
        ...

    async def get_cursor_record(self) -> CursorRecord | None:
        ...

    # ── Reads ──────────────────────────────────────────────

    async def get_name(self, name: bytes) -> NameRecord | None:
        ...

    async def get_all_names(self, include_expired: bool = True) -> list[NameRecord]:
        ...

    async def count_names(self) -> int:
        ...

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        block_hash: str | None = None,
        height: int | None = None,
    ) -> None:
        ...

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        ...
