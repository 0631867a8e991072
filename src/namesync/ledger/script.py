"""Name-registry script decoding.

Name outputs carry a prefix in front of an ordinary address script:

    OP_NAME_NEW          OP_1 <hash> OP_2DROP <address script>
    OP_NAME_FIRSTUPDATE  OP_2 <name> <rand> <value> OP_2DROP OP_2DROP <address script>
    OP_NAME_UPDATE       OP_3 <name> <value> OP_2DROP OP_DROP <address script>

Only firstupdate and update change the name map; name_new only commits to
a hash of the name and is ignored.
"""

from __future__ import annotations

import logging
from typing import Iterator

from namesync.models.events import NameOperation, OperationKind
from namesync.models.ledger import Block

log = logging.getLogger(__name__)

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1 = 0x51
OP_2 = 0x52
OP_3 = 0x53
OP_DROP = 0x75
OP_2DROP = 0x6D

OP_NAME_NEW = OP_1
OP_NAME_FIRSTUPDATE = OP_2
OP_NAME_UPDATE = OP_3


class ScriptError(ValueError):
    """Truncated or malformed script."""


def iter_script_ops(script: bytes) -> Iterator[tuple[int, bytes | None]]:
    """Yield (opcode, pushed data) pairs; data is None for non-push opcodes."""
    i = 0
    n = len(script)
    while i < n:
        op = script[i]
        i += 1
        if op == OP_0:
            yield op, b""
            continue
        if op < OP_PUSHDATA1:
            size = op
        elif op == OP_PUSHDATA1:
            if i + 1 > n:
                raise ScriptError("truncated OP_PUSHDATA1")
            size = script[i]
            i += 1
        elif op == OP_PUSHDATA2:
            if i + 2 > n:
                raise ScriptError("truncated OP_PUSHDATA2")
            size = int.from_bytes(script[i:i + 2], "little")
            i += 2
        elif op == OP_PUSHDATA4:
            if i + 4 > n:
                raise ScriptError("truncated OP_PUSHDATA4")
            size = int.from_bytes(script[i:i + 4], "little")
            i += 4
        else:
            yield op, None
            continue
        if i + size > n:
            raise ScriptError(f"push of {size} bytes runs past end of script")
        yield op, script[i:i + size]
        i += size


def _take_push(ops: Iterator[tuple[int, bytes | None]]) -> bytes:
    try:
        _, data = next(ops)
    except StopIteration:
        raise ScriptError("script ended before expected push") from None
    if data is None:
        raise ScriptError("expected a data push")
    return data


def _expect(ops: Iterator[tuple[int, bytes | None]], *opcodes: int) -> None:
    for expected in opcodes:
        try:
            op, _ = next(ops)
        except StopIteration:
            raise ScriptError("script ended before name prefix was closed") from None
        if op != expected:
            raise ScriptError(f"expected opcode 0x{expected:02x}, got 0x{op:02x}")


def decode_name_script(script: bytes) -> NameOperation | None:
    """Decode an output script into a name operation.

    Returns None for scripts that are not firstupdate/update outputs.
    Raises ScriptError if a firstupdate/update prefix is malformed.
    """
    if not script or script[0] not in (OP_NAME_FIRSTUPDATE, OP_NAME_UPDATE):
        return None

    ops = iter_script_ops(script)
    op, _ = next(ops)

    if op == OP_NAME_FIRSTUPDATE:
        name = _take_push(ops)
        _take_push(ops)  # rand
        value = _take_push(ops)
        _expect(ops, OP_2DROP, OP_2DROP)
        return NameOperation(OperationKind.FIRSTUPDATE, name, value)

    name = _take_push(ops)
    value = _take_push(ops)
    _expect(ops, OP_2DROP, OP_DROP)
    return NameOperation(OperationKind.UPDATE, name, value)


def extract_name_operations(block: Block) -> list[NameOperation]:
    """All name operations in a block, in transaction then output order."""
    result: list[NameOperation] = []
    for tx in block.transactions:
        for vout, script in enumerate(tx.output_scripts):
            try:
                op = decode_name_script(script)
            except ScriptError as exc:
                log.warning(
                    "Strange name script at %d:%s:%d: %s", block.height, tx.txid, vout, exc,
                )
                continue
            if op is not None:
                log.debug("%s %r at height %d", op.kind.value, op.name, block.height)
                result.append(op)
    return result
