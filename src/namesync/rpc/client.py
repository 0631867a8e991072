"""httpx JSON-RPC client for name_sync - the Extractor seen from the sync loop."""

from __future__ import annotations

import itertools
import logging

import httpx

from namesync.errors import RPCConnectionError, fault_to_error
from namesync.models.config import ExtractorEndpoint
from namesync.models.events import SyncEvent, batch_from_wire
from namesync.rpc.server import NAME_SYNC_METHOD

log = logging.getLogger(__name__)


class NameSyncClient:
    """Calls name_sync on a remote extractor.

    A long-poll that outlives poll_timeout is not an error: the call
    returns an empty batch and the caller simply asks again.
    """

    def __init__(self, endpoint: ExtractorEndpoint) -> None:
        self._endpoint = endpoint
        auth = (endpoint.rpc_user, endpoint.rpc_password) if endpoint.rpc_user else None
        self._client = httpx.AsyncClient(
            base_url=endpoint.rpc_url,
            auth=auth,
            timeout=httpx.Timeout(endpoint.connect_timeout),
        )
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._client.aclose()

    async def sync(self, start_hash: str, count: int, wait: bool = False) -> list[SyncEvent]:
        payload = {
            "jsonrpc": "1.0",
            "id": next(self._ids),
            "method": NAME_SYNC_METHOD,
            "params": [start_hash, count, wait],
        }
        read_timeout = self._endpoint.poll_timeout if wait else self._endpoint.connect_timeout
        timeout = httpx.Timeout(self._endpoint.connect_timeout, read=read_timeout)

        try:
            resp = await self._client.post("", json=payload, timeout=timeout)
        except httpx.ReadTimeout:
            if wait:
                log.debug("Long poll from %s timed out, re-polling", start_hash[:16])
                return []
            raise RPCConnectionError(f"name_sync timed out after {read_timeout}s") from None
        except httpx.HTTPError as exc:
            raise RPCConnectionError(f"name_sync request failed: {exc}") from exc

        if resp.status_code == 401:
            raise RPCConnectionError("name_sync: authentication rejected")
        try:
            body = resp.json()
        except ValueError as exc:
            raise RPCConnectionError(f"name_sync: HTTP {resp.status_code}, non-JSON reply") from exc
        if not isinstance(body, dict):
            raise RPCConnectionError("name_sync: reply is not a JSON-RPC object")

        if body.get("error"):
            raise fault_to_error(body["error"])

        result = body.get("result")
        if not isinstance(result, list):
            raise RPCConnectionError("name_sync: result is not a list")
        try:
            return batch_from_wire(result)
        except ValueError as exc:
            raise RPCConnectionError(f"name_sync: {exc}") from exc
