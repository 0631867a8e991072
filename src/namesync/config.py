"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from namesync.models.config import DaemonConfig

DEFAULT_CONFIG_PATHS = (
    "~/.namesync/namesync.toml",
    "/etc/namesync/namesync.toml",
)


def find_config(paths: tuple[str, ...] = DEFAULT_CONFIG_PATHS) -> Path | None:
    """First existing config file from the default search paths."""
    for candidate in paths:
        p = Path(candidate).expanduser()
        if p.exists():
            return p
    return None


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "NAMESYNC_",
    search: bool = True,
) -> DaemonConfig:
    """Load configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (NAMESYNC_RPC_URL, etc.)
        2. TOML config file (explicit path, else the first default path found)
        3. Defaults from DaemonConfig
    """
    raw: dict = {}
    p = Path(config_path).expanduser() if config_path is not None else None
    if p is None and search:
        p = find_config()
    if p is not None and p.exists():
        with open(p, "rb") as f:
            raw = tomllib.load(f)

    cfg = DaemonConfig()

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Sync section ───────────────────────────────────────
    sync = raw.get("sync", {})
    if v := sync.get("start_block_hash"):
        cfg.sync.start_block_hash = str(v).lower()
    if (v := sync.get("batch_size")) is not None:
        cfg.sync.batch_size = int(v)
    if (v := sync.get("wait")) is not None:
        cfg.sync.wait = bool(v)
    if (v := sync.get("initial_backoff")) is not None:
        cfg.sync.initial_backoff = float(v)
    if (v := sync.get("max_backoff")) is not None:
        cfg.sync.max_backoff = float(v)
    if (v := sync.get("backoff_multiplier")) is not None:
        cfg.sync.backoff_multiplier = float(v)
    if (v := sync.get("max_retries")) is not None:
        cfg.sync.max_retries = int(v)

    # ── Extractor endpoint section ─────────────────────────
    extractor = raw.get("extractor", {})
    if v := extractor.get("rpc_url"):
        cfg.extractor.rpc_url = str(v)
    if v := extractor.get("rpc_user"):
        cfg.extractor.rpc_user = str(v)
    if v := extractor.get("rpc_password"):
        cfg.extractor.rpc_password = str(v)
    if v := extractor.get("connect_timeout"):
        cfg.extractor.connect_timeout = float(v)
    if v := extractor.get("poll_timeout"):
        cfg.extractor.poll_timeout = float(v)

    # ── Server section ─────────────────────────────────────
    server = raw.get("server", {})
    if v := server.get("host"):
        cfg.server.host = str(v)
    if v := server.get("port"):
        cfg.server.port = int(v)
    if v := server.get("rpc_user"):
        cfg.server.rpc_user = str(v)
    if v := server.get("rpc_password"):
        cfg.server.rpc_password = str(v)

    # ── Node section ───────────────────────────────────────
    node = raw.get("node", {})
    if v := node.get("url"):
        cfg.node.url = str(v)
    if v := node.get("user"):
        cfg.node.user = str(v)
    if v := node.get("password"):
        cfg.node.password = str(v)
    if v := node.get("timeout"):
        cfg.node.timeout = float(v)
    if v := node.get("tip_poll_interval"):
        cfg.node.tip_poll_interval = float(v)

    # ── Environment variable overrides (highest priority) ──
    if v := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.extractor.rpc_url = v
    if v := os.environ.get(f"{env_prefix}RPC_USER"):
        cfg.extractor.rpc_user = v
    if v := os.environ.get(f"{env_prefix}RPC_PASSWORD"):
        cfg.extractor.rpc_password = v
    if v := os.environ.get(f"{env_prefix}NODE_URL"):
        cfg.node.url = v
    if v := os.environ.get(f"{env_prefix}NODE_USER"):
        cfg.node.user = v
    if v := os.environ.get(f"{env_prefix}NODE_PASSWORD"):
        cfg.node.password = v
    if v := os.environ.get(f"{env_prefix}START_BLOCK"):
        cfg.sync.start_block_hash = v.lower()
    if v := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = v

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg
