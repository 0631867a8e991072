"""aiohttp JSON-RPC server exposing the name_sync long-poll method."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import BasicAuth, hdrs, web

from namesync.errors import (
    RPC_INVALID_PARAMETER,
    RPC_INVALID_PARAMS,
    RPC_METHOD_NOT_FOUND,
    RPC_PARSE_ERROR,
    LedgerReadError,
    NameSyncError,
    ServiceStopping,
    UnknownBlock,
)
from namesync.interfaces.extractor import Extractor
from namesync.models.events import BLOCK_HASH_RE, batch_to_wire

log = logging.getLogger(__name__)

NAME_SYNC_METHOD = "name_sync"


class InvalidRequest(Exception):
    def __init__(self, code: int, message: str) -> None:
        self.code = code
        super().__init__(message)


def _reply(request_id: Any, result: Any = None, error: dict | None = None) -> web.Response:
    return web.json_response({"result": result, "error": error, "id": request_id})


def parse_name_sync_params(params: Any) -> tuple[str, int, bool]:
    """Validate name_sync params given positionally or by name."""
    if isinstance(params, dict):
        block_hash = params.get("blockHash")
        count = params.get("count")
        wait = params.get("wait", False)
    elif isinstance(params, list) and 2 <= len(params) <= 3:
        block_hash, count = params[0], params[1]
        wait = params[2] if len(params) == 3 else False
    else:
        raise InvalidRequest(RPC_INVALID_PARAMS, "usage: name_sync blockHash count [wait]")

    if not isinstance(block_hash, str) or not BLOCK_HASH_RE.fullmatch(block_hash):
        raise InvalidRequest(RPC_INVALID_PARAMETER, f"invalid block hash: {block_hash!r}")
    if not isinstance(count, int) or isinstance(count, bool):
        raise InvalidRequest(RPC_INVALID_PARAMS, "count must be an integer")
    if not isinstance(wait, bool):
        raise InvalidRequest(RPC_INVALID_PARAMS, "wait must be a boolean")
    return block_hash.lower(), count, wait


class NameSyncRPCServer:
    """Serves name_sync over HTTP JSON-RPC.

    Each request is handled in its own task; a long-poll only parks that
    task. Extraction errors are returned as JSON-RPC faults verbatim.
    """

    def __init__(
        self,
        extractor: Extractor,
        rpc_user: str = "",
        rpc_password: str = "",
    ) -> None:
        self._extractor = extractor
        self._credentials = (rpc_user, rpc_password) if rpc_user else None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/", self.handle)
        return app

    def _authorized(self, request: web.Request) -> bool:
        if self._credentials is None:
            return True
        header = request.headers.get(hdrs.AUTHORIZATION)
        if not header:
            return False
        try:
            supplied = BasicAuth.decode(header)
        except ValueError:
            return False
        return (supplied.login, supplied.password) == self._credentials

    async def handle(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=401, headers={hdrs.WWW_AUTHENTICATE: 'Basic realm="jsonrpc"'})

        try:
            body = await request.json()
        except ValueError:
            return _reply(None, error={"code": RPC_PARSE_ERROR, "message": "parse error"})
        if not isinstance(body, dict):
            return _reply(None, error={"code": RPC_PARSE_ERROR, "message": "request must be an object"})

        request_id = body.get("id")
        method = body.get("method")
        if method != NAME_SYNC_METHOD:
            return _reply(request_id, error={
                "code": RPC_METHOD_NOT_FOUND, "message": f"method not found: {method}",
            })

        try:
            block_hash, count, wait = parse_name_sync_params(body.get("params", []))
        except InvalidRequest as exc:
            return _reply(request_id, error={"code": exc.code, "message": str(exc)})

        try:
            events = await self._extractor.sync(block_hash, count, wait)
        except UnknownBlock as exc:
            log.info("name_sync rejected: %s", exc)
            return _reply(request_id, error=exc.to_fault())
        except ServiceStopping as exc:
            return _reply(request_id, error=exc.to_fault())
        except LedgerReadError as exc:
            log.error("name_sync failed reading ledger: %s", exc)
            return _reply(request_id, error=exc.to_fault())
        except NameSyncError as exc:
            log.error("name_sync failed: %s", exc)
            return _reply(request_id, error=exc.to_fault())

        return _reply(request_id, result=batch_to_wire(events))
