"""Data models for namesync."""

from namesync.models.events import (
    Checkpoint,
    NameOperation,
    OperationKind,
    SyncEvent,
    batch_from_wire,
    batch_to_wire,
    event_from_wire,
    event_to_wire,
)
from namesync.models.ledger import Block, BlockHandle, Transaction
from namesync.models.records import ActivityRecord, BatchResult, CursorRecord, NameRecord
from namesync.models.config import (
    DaemonConfig,
    ExtractorEndpoint,
    NodeConfig,
    ServerConfig,
    SyncConfig,
)

__all__ = [
    "Checkpoint", "NameOperation", "OperationKind", "SyncEvent",
    "batch_from_wire", "batch_to_wire", "event_from_wire", "event_to_wire",
    "Block", "BlockHandle", "Transaction",
    "ActivityRecord", "BatchResult", "CursorRecord", "NameRecord",
    "DaemonConfig", "ExtractorEndpoint", "NodeConfig", "ServerConfig", "SyncConfig",
]
