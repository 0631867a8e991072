"""Daemon entry points - wires the sync loop or the extractor server together."""

from __future__ import annotations

import asyncio
import logging
import signal

from aiohttp import web

from namesync.extractor import BlockEventExtractor
from namesync.ledger.node import NamecoindLedger
from namesync.models.config import DaemonConfig
from namesync.rpc.client import NameSyncClient
from namesync.rpc.server import NameSyncRPCServer
from namesync.storage.sqlite import SQLiteNameStore
from namesync.sync import SyncLoop

log = logging.getLogger(__name__)


class SyncDaemon:
    """Namecoin to SQL database synchronization daemon.

    Everything it writes is committed per checkpoint, so stopping at any
    point leaves a state it can resume from.
    """

    def __init__(self, cfg: DaemonConfig) -> None:
        self._cfg = cfg
        self.store = SQLiteNameStore(cfg.db_path)
        self.client = NameSyncClient(cfg.extractor)
        self.loop = SyncLoop(self.client, self.store, cfg.sync, status_update=cfg.report_status)

    async def start(self) -> None:
        """Initialize the store and run the sync loop until stopped."""
        self._cfg.report_status("starting")
        log.info("Starting namesync daemon")
        log.info("  Extractor: %s", self._cfg.extractor.rpc_url)
        log.info("  Database:  %s", self._cfg.db_path)
        log.info("  Batch:     %d operations", self._cfg.sync.batch_size)

        await self.store.initialize()
        await self.store.log_activity("daemon_started", "Daemon started")
        try:
            await self.loop.run()
        finally:
            await self.store.log_activity(
                "daemon_stopped", "Daemon stopped", block_hash=self.loop.cursor,
                height=self.loop.height,
            )
            await self.client.close()
            await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        await self.loop.stop()


class ExtractorService:
    """Serves name_sync over JSON-RPC, backed by a namecoind node."""

    def __init__(self, cfg: DaemonConfig) -> None:
        self._cfg = cfg
        self.ledger = NamecoindLedger(cfg.node)
        self.extractor = BlockEventExtractor(self.ledger)
        self.server = NameSyncRPCServer(
            self.extractor, cfg.server.rpc_user, cfg.server.rpc_password,
        )
        self._stopped = asyncio.Event()

    async def start(self) -> None:
        self._cfg.report_status("starting")
        await self.ledger.start()

        # Cancel a request's handler when its client disconnects mid long-poll
        runner = web.AppRunner(self.server.build_app(), handler_cancellation=True)
        await runner.setup()
        site = web.TCPSite(runner, self._cfg.server.host, self._cfg.server.port)
        await site.start()
        log.info("Serving name_sync on %s:%d", self._cfg.server.host, self._cfg.server.port)
        self._cfg.report_status("serving")

        try:
            await self._stopped.wait()
        finally:
            # Fail parked long polls with ServiceStopping before tearing down
            await self.ledger.close()
            await runner.cleanup()
            self._cfg.report_status("stopped")
            log.info("Extractor service shut down")

    async def stop(self) -> None:
        log.info("Stop requested")
        self._stopped.set()


def _install_signal_handlers(stop) -> None:
    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass


async def run_daemon(cfg: DaemonConfig) -> None:
    """Entry point for running the sync daemon."""
    daemon = SyncDaemon(cfg)
    _install_signal_handlers(daemon.stop)
    await daemon.start()


async def run_server(cfg: DaemonConfig) -> None:
    """Entry point for running the name_sync server."""
    service = ExtractorService(cfg)
    _install_signal_handlers(service.stop)
    await service.start()
