"""Shared fixtures for namesync tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from namesync.extractor import BlockEventExtractor
from namesync.models.config import DaemonConfig, ExtractorEndpoint, SyncConfig
from namesync.storage.sqlite import SQLiteNameStore

from tests.factories import (
    make_chain,
    make_tx,
    name_firstupdate_script,
    name_update_script,
    p2pkh_script,
)
from tests.mocks import MockLedger

RPC_PORT = 9337


def pytest_configure(config):
    """Add run info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Ledger"] = "in-memory mock chain"
    meta["Store"] = "SQLite :memory:"


def make_sync_config(**overrides) -> SyncConfig:
    """Build a SyncConfig with fast backoff for tests."""
    defaults = dict(
        start_block_hash=make_chain(1)[0].block_hash,
        batch_size=100,
        wait=True,
        initial_backoff=0.01,
        max_backoff=0.05,
        backoff_multiplier=2.0,
        max_retries=3,
    )
    defaults.update(overrides)
    return SyncConfig(**defaults)


def make_test_config(**overrides) -> DaemonConfig:
    """Build a DaemonConfig suitable for testing."""
    defaults = dict(
        log_level="debug",
        db_path=":memory:",
        sync=make_sync_config(),
        extractor=ExtractorEndpoint(
            rpc_url=f"http://127.0.0.1:{RPC_PORT}/",
            connect_timeout=5.0,
            poll_timeout=5.0,
        ),
    )
    defaults.update(overrides)
    return DaemonConfig(**defaults)


def sample_chain():
    """Genesis plus four blocks.

    h1: firstupdate d/example, then a tx with an update of d/other and a plain output
    h2: nothing
    h3: update d/example twice in one tx
    h4: nothing
    """
    return make_chain(5, {
        1: [
            make_tx(name_firstupdate_script(b"d/example", b"{}")),
            make_tx(p2pkh_script(), name_update_script(b"d/other", b"v1")),
        ],
        3: [
            make_tx(
                name_update_script(b"d/example", b'{"ip":"1.2.3.4"}'),
                name_update_script(b"d/example", b'{"ip":"5.6.7.8"}'),
            ),
        ],
    })


@pytest.fixture
def sync_config():
    return make_sync_config()


@pytest.fixture
def test_config():
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteNameStore."""
    s = SQLiteNameStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
async def ledger():
    """MockLedger holding sample_chain()."""
    led = MockLedger()
    await led.append(*sample_chain())
    return led


@pytest.fixture
def extractor(ledger):
    return BlockEventExtractor(ledger)
