"""Name script decoding."""

from __future__ import annotations

import logging

import pytest

from namesync.ledger.script import ScriptError, decode_name_script, extract_name_operations
from namesync.models.events import NameOperation, OperationKind

from tests.factories import (
    make_block,
    make_tx,
    name_firstupdate_script,
    name_new_script,
    name_update_script,
    p2pkh_script,
)


def test_firstupdate_decodes_name_and_value():
    op = decode_name_script(name_firstupdate_script(b"d/example", b'{"ip":"1.2.3.4"}'))
    assert op == NameOperation(OperationKind.FIRSTUPDATE, b"d/example", b'{"ip":"1.2.3.4"}')


def test_update_decodes_name_and_value():
    op = decode_name_script(name_update_script(b"id/alice", b"hello"))
    assert op == NameOperation(OperationKind.UPDATE, b"id/alice", b"hello")


def test_name_new_and_plain_outputs_are_ignored():
    assert decode_name_script(name_new_script()) is None
    assert decode_name_script(p2pkh_script()) is None
    assert decode_name_script(b"") is None


def test_empty_value_is_op_0():
    op = decode_name_script(name_update_script(b"d/empty", b""))
    assert op is not None
    assert op.value == b""


@pytest.mark.parametrize("size", [75, 76, 255, 256, 1023])
def test_long_values_use_pushdata(size):
    value = bytes(range(256)) * (size // 256) + bytes(range(size % 256))
    op = decode_name_script(name_update_script(b"d/big", value))
    assert op is not None
    assert op.value == value


def test_names_need_not_be_text():
    op = decode_name_script(name_firstupdate_script(b"\xff\xfe\x00", b"\x80"))
    assert op is not None
    assert op.name == b"\xff\xfe\x00"
    assert op.value == b"\x80"


def test_truncated_script_raises():
    script = name_firstupdate_script(b"d/example", b"value")
    with pytest.raises(ScriptError):
        decode_name_script(script[:8])


def test_wrong_drop_sequence_raises():
    # firstupdate pushes followed by update's OP_2DROP OP_DROP
    script = bytearray(name_firstupdate_script(b"d/x", b"v"))
    idx = script.index(0x6D)
    script[idx + 1] = 0x75
    with pytest.raises(ScriptError):
        decode_name_script(bytes(script))


def test_extract_keeps_tx_then_output_order():
    block = make_block(
        7,
        make_tx(name_update_script(b"a", b"1"), name_update_script(b"b", b"2")),
        make_tx(p2pkh_script(), name_firstupdate_script(b"c", b"3")),
        make_tx(name_update_script(b"a", b"4")),
    )
    ops = extract_name_operations(block)
    assert [(o.name, o.value) for o in ops] == [
        (b"a", b"1"), (b"b", b"2"), (b"c", b"3"), (b"a", b"4"),
    ]


def test_extract_skips_malformed_scripts(caplog):
    bad = name_update_script(b"d/bad", b"value")[:5]
    block = make_block(3, make_tx(bad, name_update_script(b"d/good", b"ok")))

    with caplog.at_level(logging.WARNING, logger="namesync.ledger.script"):
        ops = extract_name_operations(block)

    assert [o.name for o in ops] == [b"d/good"]
    assert "Strange name script" in caplog.text
