"""CLI commands against a file-backed store."""

from __future__ import annotations

import asyncio

import pytest
from click.testing import CliRunner

from namesync.cli import cli
from namesync.storage.sqlite import SQLiteNameStore

from tests.factories import block_hash


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "names.db"


@pytest.fixture
def config_path(tmp_path, db_path, monkeypatch):
    monkeypatch.delenv("NAMESYNC_DB_PATH", raising=False)
    path = tmp_path / "namesync.toml"
    path.write_text(
        f'[storage]\ndb_path = "{db_path}"\n\n'
        f'[sync]\nstart_block_hash = "{block_hash(0)}"\n'
    )
    return path


def seed(db_path, cursor=True) -> None:
    async def _seed():
        store = SQLiteNameStore(str(db_path))
        await store.initialize()
        await store.upsert(b"d/example", b'{"ip":"1.2.3.4"}')
        await store.upsert(b"d/old", b"gone")
        await store.mark_expired(b"d/old")
        if cursor:
            await store.persist_cursor(block_hash(12), 12)
        await store.close()

    asyncio.run(_seed())


def invoke(config_path, *args, **kwargs):
    return CliRunner().invoke(cli, ["-c", str(config_path), *args], **kwargs)


def test_status_shows_effective_config(config_path, db_path):
    result = invoke(config_path, "status")

    assert result.exit_code == 0
    assert f"Start block:  {block_hash(0)}" in result.output
    assert str(db_path) in result.output
    assert "(not set)" in result.output


def test_cursor_before_first_sync(config_path):
    result = invoke(config_path, "cursor")

    assert result.exit_code == 0
    assert "No cursor yet" in result.output
    assert block_hash(0) in result.output


def test_cursor_after_sync(config_path, db_path):
    seed(db_path)

    result = invoke(config_path, "cursor")

    assert result.exit_code == 0
    assert block_hash(12) in result.output
    assert "Height:   12" in result.output
    assert "Names:    1" in result.output


def test_names_listing(config_path, db_path):
    seed(db_path)

    active = invoke(config_path, "names")
    everything = invoke(config_path, "names", "--expired")

    assert "d/example" in active.output
    assert "d/old" not in active.output
    assert "d/old (expired)" in everything.output


def test_single_name_lookup(config_path, db_path):
    seed(db_path)

    found = invoke(config_path, "names", "d/example")
    missing = invoke(config_path, "names", "d/nope")

    assert found.exit_code == 0
    assert found.output.strip() == '{"ip":"1.2.3.4"}'
    assert missing.exit_code == 1


def test_reset_cursor_to_block(config_path, db_path):
    seed(db_path)

    result = invoke(config_path, "reset-cursor", "--block", block_hash(5), "--height", "5", "-y")

    assert result.exit_code == 0
    shown = invoke(config_path, "cursor")
    assert block_hash(5) in shown.output


def test_reset_cursor_clear_needs_confirmation(config_path, db_path):
    seed(db_path)

    declined = invoke(config_path, "reset-cursor", input="n\n")
    assert declined.exit_code == 1
    assert block_hash(12) in invoke(config_path, "cursor").output

    accepted = invoke(config_path, "reset-cursor", input="y\n")
    assert accepted.exit_code == 0
    assert "No cursor yet" in invoke(config_path, "cursor").output


def test_reset_cursor_rejects_bad_hash(config_path):
    result = invoke(config_path, "reset-cursor", "--block", "abc", "-y")

    assert result.exit_code == 1
    assert "64 hex" in result.output


def test_reset_cursor_rejects_non_hex_hash(config_path, db_path):
    seed(db_path)

    result = invoke(config_path, "reset-cursor", "--block", "z" * 64, "-y")

    assert result.exit_code == 1
    assert "64 hex" in result.output
    assert block_hash(12) in invoke(config_path, "cursor").output
