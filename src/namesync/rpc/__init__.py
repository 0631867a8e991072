"""name_sync JSON-RPC server and client."""

from namesync.rpc.client import NameSyncClient
from namesync.rpc.server import NAME_SYNC_METHOD, NameSyncRPCServer

__all__ = ["NAME_SYNC_METHOD", "NameSyncClient", "NameSyncRPCServer"]
