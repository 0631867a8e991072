"""Record types for the downstream store and sync loop results."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class NameRecord:
    """Current value of a name as mirrored in the store."""

    name: bytes
    value: bytes | None
    expired: bool = False
    updated_at: str = ""

    @property
    def display_name(self) -> str:
        return self.name.decode("utf-8", "replace")


@dataclass
class CursorRecord:
    """The persisted sync cursor."""

    block_hash: str
    height: int | None = None
    updated_at: str = ""


@dataclass
class ActivityRecord:
    id: int
    event_type: str
    message: str
    block_hash: str | None = None
    height: int | None = None
    created_at: str = ""


@dataclass
class BatchResult:
    """Outcome of applying one event batch to the store."""

    operations: int = 0
    checkpoints: int = 0
    cursor: str | None = None
    height: int | None = None
    duration_ms: int = 0
