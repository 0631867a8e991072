"""Event extraction: ordering, checkpoints, budget and failure modes."""

from __future__ import annotations

import pytest

from namesync.errors import BlockNotCanonical, LedgerReadError, UnknownBlock
from namesync.extractor import BlockEventExtractor
from namesync.models.events import Checkpoint, NameOperation, OperationKind

from tests.factories import (
    block_hash,
    make_block,
    make_chain,
    make_tx,
    name_firstupdate_script,
    name_update_script,
)
from tests.mocks import MockLedger

FU = OperationKind.FIRSTUPDATE
UP = OperationKind.UPDATE


def cp(height: int, fork: int = 0) -> Checkpoint:
    return Checkpoint(block_hash(height, fork), height)


async def test_single_firstupdate_then_empty_block():
    """H0 -> H1 (firstupdate d/example) -> H2 (nothing), sync from H0."""
    ledger = MockLedger()
    await ledger.append(*make_chain(3, {1: [make_tx(name_firstupdate_script(b"d/example", b"{}"))]}))

    events = await BlockEventExtractor(ledger).sync(block_hash(0), 10, False)

    assert events == [
        NameOperation(FU, b"d/example", b"{}"),
        cp(1),
        cp(2),
    ]


async def test_full_scan_order_and_checkpoints(extractor):
    events = await extractor.sync(block_hash(0), 100)

    assert events == [
        NameOperation(FU, b"d/example", b"{}"),
        NameOperation(UP, b"d/other", b"v1"),
        cp(1),
        NameOperation(UP, b"d/example", b'{"ip":"1.2.3.4"}'),
        NameOperation(UP, b"d/example", b'{"ip":"5.6.7.8"}'),
        cp(3),
        cp(4),
    ]


async def test_checkpoints_strictly_increase_and_stay_below_tip(extractor, ledger):
    events = await extractor.sync(block_hash(0), 100)
    heights = [e.height for e in events if isinstance(e, Checkpoint)]
    tip = await ledger.current_tip_height()

    assert heights == sorted(set(heights))
    assert heights[-1] <= tip


@pytest.mark.parametrize("count", [0, 1])
async def test_budget_stops_after_the_crossing_block(extractor, count):
    events = await extractor.sync(block_hash(0), count)

    # block 1 carries two operations; it is finished even though it overshoots
    assert events == [
        NameOperation(FU, b"d/example", b"{}"),
        NameOperation(UP, b"d/other", b"v1"),
        cp(1),
    ]


async def test_budget_is_checked_per_block_not_per_operation(extractor, ledger):
    events = await extractor.sync(block_hash(0), 2)

    ops = [e for e in events if isinstance(e, NameOperation)]
    assert len(ops) == 4
    assert events[-1] == cp(3)
    # block 4 was never read
    assert 4 not in ledger.read_calls


async def test_operation_free_span_still_yields_final_checkpoint(extractor):
    events = await extractor.sync(block_hash(3), 100)
    assert events == [cp(4)]


async def test_long_operation_free_span():
    ledger = MockLedger()
    await ledger.append(*make_chain(50))

    events = await BlockEventExtractor(ledger).sync(block_hash(0), 10)

    assert events == [cp(49)]


async def test_at_tip_without_wait_returns_nothing(extractor):
    assert await extractor.sync(block_hash(4), 100) == []


async def test_negative_count_touches_nothing(extractor, ledger):
    assert await extractor.sync(block_hash(0), -1) == []
    assert ledger.lookup_calls == []
    assert ledger.read_calls == []


async def test_negative_count_with_unknown_block_is_not_an_error(extractor):
    assert await extractor.sync("00" * 32, -1) == []


async def test_unknown_block(extractor, ledger):
    with pytest.raises(UnknownBlock) as info:
        await extractor.sync("ab" * 32, 100)

    assert info.value.block_hash == "ab" * 32
    assert ledger.read_calls == []


async def test_replay_is_deterministic(extractor):
    first = await extractor.sync(block_hash(0), 3)
    second = await extractor.sync(block_hash(0), 3)
    assert first == second


async def test_resuming_from_each_checkpoint_covers_the_chain(extractor):
    cursor = block_hash(0)
    ops = []
    while True:
        events = await extractor.sync(cursor, 0)
        if not events:
            break
        ops.extend(e for e in events if isinstance(e, NameOperation))
        cursor = events[-1].block_hash

    full = await extractor.sync(block_hash(0), 100)
    assert ops == [e for e in full if isinstance(e, NameOperation)]
    assert cursor == block_hash(4)


async def test_orphaned_start_block_is_rejected(ledger, extractor):
    # replace blocks 3-4 with a longer competing branch
    await ledger.reorg(2, make_block(3, fork=1), make_block(4, fork=1), make_block(5, fork=1))

    with pytest.raises(BlockNotCanonical) as info:
        await extractor.sync(block_hash(3), 100)
    assert isinstance(info.value, UnknownBlock)
    assert info.value.height == 3

    # the common ancestor is still a valid cursor
    events = await extractor.sync(block_hash(2), 100)
    assert events == [cp(5, fork=1)]


async def test_orphan_above_new_tip_is_rejected(ledger, extractor):
    await ledger.reorg(2, make_block(3, fork=1))

    with pytest.raises(BlockNotCanonical):
        await extractor.sync(block_hash(4), 100)


async def test_ledger_read_error_is_surfaced(ledger, extractor):
    ledger.fail_reads_at = {3}

    with pytest.raises(LedgerReadError):
        await extractor.sync(block_hash(0), 100)


async def test_name_new_outputs_produce_no_events():
    from tests.factories import name_new_script

    ledger = MockLedger()
    await ledger.append(*make_chain(3, {
        1: [make_tx(name_new_script(b"d/soon"))],
        2: [make_tx(name_update_script(b"d/x", b"1"))],
    }))

    events = await BlockEventExtractor(ledger).sync(block_hash(0), 100)

    assert events == [NameOperation(UP, b"d/x", b"1"), cp(2)]
