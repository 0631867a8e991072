"""Ledger data as seen through the read-only query interface."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class BlockHandle:
    """Resolved reference to a block known to the ledger."""

    block_hash: str
    height: int


@dataclass(frozen=True)
class Transaction:
    txid: str
    output_scripts: tuple[bytes, ...] = ()


@dataclass(frozen=True)
class Block:
    """A block with its transactions in block order."""

    block_hash: str
    height: int
    transactions: tuple[Transaction, ...] = field(default_factory=tuple)

    @property
    def handle(self) -> BlockHandle:
        return BlockHandle(self.block_hash, self.height)
