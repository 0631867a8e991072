"""SQLite implementation of the NameStore protocol."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from namesync.models.records import ActivityRecord, CursorRecord, NameRecord

SCHEMA = """
-- Sync cursor: last fully applied checkpoint
CREATE TABLE IF NOT EXISTS cursor (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    block_hash TEXT NOT NULL,
    height INTEGER,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Current value per name
CREATE TABLE IF NOT EXISTS names (
    name BLOB PRIMARY KEY,
    value BLOB,
    expired INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Activity log
CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    block_hash TEXT,
    height INTEGER,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_activity_created ON activity_log(created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _name_record(row: aiosqlite.Row) -> NameRecord:
    return NameRecord(
        name=bytes(row["name"]),
        value=bytes(row["value"]) if row["value"] is not None else None,
        expired=bool(row["expired"]),
        updated_at=row["updated_at"],
    )


class SQLiteNameStore:
    """SQLite-backed implementation of the NameStore protocol.

    upsert() and mark_expired() are left uncommitted; persist_cursor()
    commits them together with the cursor, so the names table never runs
    ahead of the persisted checkpoint.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.rollback()
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Apply ──────────────────────────────────────────────

    async def upsert(self, name: bytes, value: bytes) -> None:
        await self.db.execute(
            "INSERT INTO names (name, value, expired, updated_at) VALUES (?, ?, 0, ?)"
            " ON CONFLICT(name) DO UPDATE SET value=excluded.value, expired=0,"
            " updated_at=excluded.updated_at",
            (name, value, _now()),
        )

    async def mark_expired(self, name: bytes) -> None:
        await self.db.execute(
            "INSERT INTO names (name, value, expired, updated_at) VALUES (?, NULL, 1, ?)"
            " ON CONFLICT(name) DO UPDATE SET expired=1, updated_at=excluded.updated_at",
            (name, _now()),
        )

    async def rollback(self) -> None:
        await self.db.rollback()

    # ── Cursor ─────────────────────────────────────────────

    async def load_cursor(self) -> str | None:
        record = await self.get_cursor_record()
        return record.block_hash if record else None

    async def persist_cursor(self, block_hash: str, height: int | None = None) -> None:
        await self.db.execute(
            "INSERT INTO cursor (id, block_hash, height, updated_at) VALUES (1, ?, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET block_hash=excluded.block_hash,"
            " height=excluded.height, updated_at=excluded.updated_at",
            (block_hash, height, _now()),
        )
        await self.db.commit()

    async def get_cursor_record(self) -> CursorRecord | None:
        async with self.db.execute(
            "SELECT block_hash, height, updated_at FROM cursor WHERE id=1"
        ) as cur:
            row = await cur.fetchone()
            if row is None:
                return None
            return CursorRecord(
                block_hash=row["block_hash"],
                height=row["height"],
                updated_at=row["updated_at"],
            )

    async def clear_cursor(self) -> None:
        await self.db.execute("DELETE FROM cursor WHERE id=1")
        await self.db.commit()

    # ── Reads ──────────────────────────────────────────────

    async def get_name(self, name: bytes) -> NameRecord | None:
        async with self.db.execute("SELECT * FROM names WHERE name=?", (name,)) as cur:
            row = await cur.fetchone()
            return _name_record(row) if row else None

    async def get_all_names(self, include_expired: bool = True) -> list[NameRecord]:
        query = "SELECT * FROM names"
        if not include_expired:
            query += " WHERE expired=0"
        query += " ORDER BY name"
        async with self.db.execute(query) as cur:
            rows = await cur.fetchall()
            return [_name_record(r) for r in rows]

    async def count_names(self) -> int:
        async with self.db.execute("SELECT COUNT(*) FROM names WHERE expired=0") as cur:
            row = await cur.fetchone()
            return row[0] if row else 0

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        block_hash: str | None = None,
        height: int | None = None,
    ) -> None:
        # Inside an open batch the entry rides along with its commit or rollback
        batch_open = self.db.in_transaction
        await self.db.execute(
            "INSERT INTO activity_log (event_type, block_hash, height, message, created_at)"
            " VALUES (?, ?, ?, ?, ?)",
            (event_type, block_hash, height, message, _now()),
        )
        if not batch_open:
            await self.db.commit()

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        async with self.db.execute(
            "SELECT * FROM activity_log ORDER BY id DESC LIMIT ?", (limit,)
        ) as cur:
            rows = await cur.fetchall()
            return [
                ActivityRecord(
                    id=r["id"],
                    event_type=r["event_type"],
                    message=r["message"],
                    block_hash=r["block_hash"],
                    height=r["height"],
                    created_at=r["created_at"],
                )
                for r in rows
            ]
