"""Sync event models and their JSON-RPC wire encoding."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence, Union

ATBLOCK = "atblock"

BLOCK_HASH_RE = re.compile(r"[0-9a-fA-F]{64}")


class OperationKind(str, Enum):
    """Effect of a name-registry output on its name."""

    FIRSTUPDATE = "firstupdate"  # name claimed
    UPDATE = "update"  # value changed
    EXPIRE = "expire"  # registration lapsed (never produced by block scanning)


@dataclass(frozen=True)
class NameOperation:
    """One decoded name operation. The block is implied by the next checkpoint."""

    kind: OperationKind
    name: bytes
    value: bytes = b""


@dataclass(frozen=True)
class Checkpoint:
    """Resumability marker emitted after a scanned block."""

    block_hash: str  # 64 hex chars
    height: int


SyncEvent = Union[NameOperation, Checkpoint]


def _bytes_to_wire(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")


def _bytes_from_wire(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def event_to_wire(event: SyncEvent) -> list[Any]:
    """Encode an event as the JSON-RPC tuple shape."""
    if isinstance(event, Checkpoint):
        return [ATBLOCK, event.block_hash, event.height]
    return [event.kind.value, _bytes_to_wire(event.name), _bytes_to_wire(event.value)]


def event_from_wire(item: Sequence[Any]) -> SyncEvent:
    """Decode one JSON-RPC tuple. Raises ValueError on a malformed tuple."""
    if not isinstance(item, (list, tuple)) or len(item) != 3:
        raise ValueError(f"malformed sync event: {item!r}")

    tag = item[0]
    if tag == ATBLOCK:
        block_hash, height = item[1], item[2]
        if not isinstance(block_hash, str) or not isinstance(height, int) or isinstance(height, bool):
            raise ValueError(f"malformed checkpoint: {item!r}")
        return Checkpoint(block_hash=block_hash, height=height)

    try:
        kind = OperationKind(tag)
    except ValueError:
        raise ValueError(f"unknown sync event kind: {tag!r}") from None
    name, value = item[1], item[2]
    if not isinstance(name, str) or not isinstance(value, str):
        raise ValueError(f"malformed name operation: {item!r}")
    return NameOperation(kind=kind, name=_bytes_from_wire(name), value=_bytes_from_wire(value))


def batch_to_wire(events: Sequence[SyncEvent]) -> list[list[Any]]:
    return [event_to_wire(e) for e in events]


def batch_from_wire(items: Sequence[Any]) -> list[SyncEvent]:
    return [event_from_wire(item) for item in items]
