"""Error taxonomy shared by the extractor, the RPC layer and the sync loop."""

from __future__ import annotations

from typing import Any

# JSON-RPC fault codes (namecoind numbering where one exists)
RPC_PARSE_ERROR = -32700
RPC_METHOD_NOT_FOUND = -32601
RPC_INVALID_PARAMS = -32602
RPC_INTERNAL_ERROR = -32603
RPC_INVALID_PARAMETER = -8
RPC_CLIENT_NOT_CONNECTED = -9


class NameSyncError(Exception):
    """Base class for all namesync errors."""

    fault_code: int = RPC_INTERNAL_ERROR
    reason: str = "error"

    def to_fault(self) -> dict[str, Any]:
        return {
            "code": self.fault_code,
            "message": str(self),
            "data": {"reason": self.reason},
        }


class UnknownBlock(NameSyncError):
    """The supplied block hash does not resolve to a known block."""

    fault_code = RPC_INVALID_PARAMETER
    reason = "unknown_block"

    def __init__(self, block_hash: str, message: str | None = None) -> None:
        self.block_hash = block_hash
        super().__init__(message or f"unknown block {block_hash}")

    def to_fault(self) -> dict[str, Any]:
        fault = super().to_fault()
        fault["data"]["block_hash"] = self.block_hash
        return fault


class BlockNotCanonical(UnknownBlock):
    """The block is known but no longer on the canonical chain."""

    reason = "not_canonical"

    def __init__(self, block_hash: str, height: int | None = None) -> None:
        self.height = height
        where = f" at height {height}" if height is not None else ""
        super().__init__(block_hash, f"block {block_hash}{where} is not on the canonical chain")


class LedgerReadError(NameSyncError):
    """Reading a known block from the ledger failed."""

    fault_code = RPC_INTERNAL_ERROR
    reason = "ledger_read"


class ServiceStopping(NameSyncError):
    """A long-poll wait was interrupted because the service is shutting down."""

    fault_code = RPC_CLIENT_NOT_CONNECTED
    reason = "stopping"

    def __init__(self, message: str = "service is stopping") -> None:
        super().__init__(message)


class RPCConnectionError(NameSyncError):
    """The RPC endpoint could not be reached or returned garbage."""

    reason = "connection"


class RPCFault(NameSyncError):
    """A JSON-RPC fault that maps to no more specific error."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.fault_code = code
        self.data = data
        super().__init__(f"RPC error {code}: {message}")


class RetriesExhausted(NameSyncError):
    """The sync loop gave up after too many consecutive transient failures."""

    reason = "retries_exhausted"


def fault_to_error(fault: dict[str, Any]) -> NameSyncError:
    """Rebuild a typed exception from a JSON-RPC error object."""
    code = fault.get("code", RPC_INTERNAL_ERROR)
    message = str(fault.get("message", ""))
    data = fault.get("data")
    reason = data.get("reason") if isinstance(data, dict) else None

    if code == RPC_INVALID_PARAMETER:
        block_hash = data.get("block_hash", "") if isinstance(data, dict) else ""
        if reason == "not_canonical":
            return BlockNotCanonical(block_hash)
        return UnknownBlock(block_hash, message or None)
    if code == RPC_CLIENT_NOT_CONNECTED:
        return ServiceStopping(message or "service is stopping")
    if code == RPC_INTERNAL_ERROR and reason == "ledger_read":
        return LedgerReadError(message)
    return RPCFault(code, message, data)
