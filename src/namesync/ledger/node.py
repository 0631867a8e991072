"""namecoind-backed ledger - the ledger query interface over JSON-RPC."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

import httpx

from namesync.errors import LedgerReadError
from namesync.ledger.notifier import TipNotifier
from namesync.models.config import NodeConfig
from namesync.models.ledger import Block, BlockHandle, Transaction

log = logging.getLogger(__name__)

RPC_INVALID_ADDRESS_OR_KEY = -5  # namecoind: block not found


class NodeRPCError(LedgerReadError):
    """namecoind answered with a JSON-RPC error."""

    def __init__(self, method: str, code: int, message: str) -> None:
        self.method = method
        self.code = code
        super().__init__(f"{method}: RPC error {code}: {message}")


def _parse_transaction(tx: dict[str, Any]) -> Transaction:
    scripts = []
    for vout in sorted(tx.get("vout", []), key=lambda v: v.get("n", 0)):
        hex_script = vout.get("scriptPubKey", {}).get("hex", "")
        scripts.append(bytes.fromhex(hex_script))
    return Transaction(txid=tx.get("txid", ""), output_scripts=tuple(scripts))


class NamecoindLedger:
    """Ledger backed by a namecoind node.

    Block reads use getblock verbosity 2 so a single call returns every
    output script. The tip is watched by polling getblockcount; changes are
    published through the notifier so long-poll waiters wake up.
    """

    def __init__(self, config: NodeConfig) -> None:
        self._cfg = config
        auth = (config.user, config.password) if config.user else None
        self._client = httpx.AsyncClient(
            base_url=config.url,
            auth=auth,
            timeout=httpx.Timeout(config.timeout, connect=10),
        )
        self._ids = itertools.count(1)
        self._notifier = TipNotifier()
        self._watcher: asyncio.Task | None = None

    @property
    def notifier(self) -> TipNotifier:
        return self._notifier

    # ── JSON-RPC ───────────────────────────────────────────

    async def _call(self, method: str, *params: Any) -> Any:
        payload = {"jsonrpc": "1.0", "id": next(self._ids), "method": method, "params": list(params)}
        try:
            resp = await self._client.post("", json=payload)
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LedgerReadError(f"{method}: {exc}") from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            raise NodeRPCError(method, error.get("code", 0), error.get("message", ""))
        if resp.status_code != 200:
            raise LedgerReadError(f"{method}: HTTP {resp.status_code}")
        return body.get("result")

    # ── Ledger protocol ────────────────────────────────────

    async def lookup_block_by_hash(self, block_hash: str) -> BlockHandle | None:
        try:
            header = await self._call("getblockheader", block_hash)
        except NodeRPCError as exc:
            if exc.code in (RPC_INVALID_ADDRESS_OR_KEY, -8):
                return None
            raise
        return BlockHandle(block_hash=header["hash"], height=int(header["height"]))

    async def read_block(self, handle: BlockHandle) -> Block:
        data = await self._call("getblock", handle.block_hash, 2)
        try:
            txs = tuple(_parse_transaction(tx) for tx in data["tx"])
            return Block(block_hash=data["hash"], height=int(data["height"]), transactions=txs)
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerReadError(f"malformed block {handle.block_hash}: {exc}") from exc

    async def current_tip_height(self) -> int:
        return int(await self._call("getblockcount"))

    async def block_at_height(self, height: int) -> BlockHandle:
        block_hash = await self._call("getblockhash", height)
        return BlockHandle(block_hash=block_hash, height=height)

    # ── Tip watcher ────────────────────────────────────────

    async def start(self) -> None:
        """Publish the current tip and start polling for changes."""
        height = await self.current_tip_height()
        await self._notifier.publish(height)
        log.info("Connected to namecoind at %s, tip height %d", self._cfg.url, height)
        self._watcher = asyncio.create_task(self._watch_tip())

    async def _watch_tip(self) -> None:
        while True:
            await asyncio.sleep(self._cfg.tip_poll_interval)
            try:
                height = await self.current_tip_height()
            except LedgerReadError as exc:
                log.warning("Tip poll failed: %s", exc)
                continue
            await self._notifier.publish(height)

    async def close(self) -> None:
        await self._notifier.close()
        if self._watcher is not None:
            self._watcher.cancel()
            try:
                await self._watcher
            except asyncio.CancelledError:
                pass
            self._watcher = None
        await self._client.aclose()
