"""Configuration models for the sync daemon and the extractor server."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

# Namecoin mainnet genesis block
NAMECOIN_GENESIS_HASH = "000000000062b72c5e2ceb45fbc8587e807c155b0da735e6483dfba2f0a9c770"


@dataclass
class SyncConfig:
    """Sync client loop settings."""

    start_block_hash: str = NAMECOIN_GENESIS_HASH  # first-run cursor
    batch_size: int = 1000  # approx name operations per name_sync call
    wait: bool = True  # long-poll at the tip
    initial_backoff: float = 1.0  # seconds
    max_backoff: float = 60.0  # seconds
    backoff_multiplier: float = 2.0
    max_retries: int = 20  # consecutive transient failures; 0 = unbounded


@dataclass
class ExtractorEndpoint:
    """Where the sync client finds the name_sync RPC."""

    rpc_url: str = "http://127.0.0.1:8337/"
    rpc_user: str = ""
    rpc_password: str = ""
    connect_timeout: float = 10.0
    poll_timeout: float = 300.0  # client-side long-poll deadline


@dataclass
class NodeConfig:
    """namecoind JSON-RPC connection used by the extractor server."""

    url: str = "http://127.0.0.1:8336/"
    user: str = ""
    password: str = ""
    timeout: float = 30.0
    tip_poll_interval: float = 1.0  # seconds between getblockcount polls


@dataclass
class ServerConfig:
    """name_sync RPC server settings."""

    host: str = "127.0.0.1"
    port: int = 8337
    rpc_user: str = ""
    rpc_password: str = ""


@dataclass
class DaemonConfig:
    """Complete configuration."""

    log_level: str = "info"
    db_path: str = "~/.namesync/names.db"

    sync: SyncConfig = field(default_factory=SyncConfig)
    extractor: ExtractorEndpoint = field(default_factory=ExtractorEndpoint)
    node: NodeConfig = field(default_factory=NodeConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    # Operational status hook, e.g. for a service manager
    status_update: Optional[Callable[[str], None]] = None

    def report_status(self, status: str) -> None:
        if self.status_update is not None:
            self.status_update(status)
