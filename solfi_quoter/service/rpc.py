from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from aiohttp import web

from solfi_quoter.common import log_event
from solfi_quoter.pricing import PriceBoard, SellSimulationError

JSONRPC_VERSION = "2.0"
PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

RpcMethod = Callable[[], Awaitable[dict[str, Any]]]


class RpcMethodError(RuntimeError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def rpc_result(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id}


def rpc_error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "error": {"code": code, "message": message}, "id": request_id}


class PriceRpcService:
    """JSON-RPC 2.0 endpoint over a closed set of methods; anything else is method-not-found."""

    def __init__(self, *, logger: logging.Logger, price_board: PriceBoard) -> None:
        self._logger = logger
        self._price_board = price_board
        self._methods: dict[str, RpcMethod] = {
            "get_prices": self.get_prices,
        }

    async def get_prices(self) -> dict[str, Any]:
        # Each replay builds its own sandbox, so quoting never blocks the loop.
        try:
            prices = await asyncio.to_thread(self._price_board.get_prices)
        except SellSimulationError as error:
            raise RpcMethodError(INTERNAL_ERROR, str(error)) from error
        return prices.to_dict()

    async def dispatch(self, payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict) or not isinstance(payload.get("method"), str):
            return rpc_error(None, PARSE_ERROR, "Parse error")

        request_id = payload.get("id")
        method_name = payload["method"]
        method = self._methods.get(method_name)
        if method is None:
            return rpc_error(request_id, METHOD_NOT_FOUND, "Method not found")

        try:
            return rpc_result(request_id, await method())
        except RpcMethodError as error:
            log_event(
                self._logger,
                level="error",
                event="rpc_method_failed",
                message="RPC method failed",
                method=method_name,
                error=error.message,
            )
            return rpc_error(request_id, error.code, error.message)
        except Exception as error:
            log_event(
                self._logger,
                level="exception",
                event="rpc_method_crashed",
                message="RPC method raised unexpectedly",
                method=method_name,
                error=str(error),
            )
            return rpc_error(request_id, INTERNAL_ERROR, str(error))

    async def handle(self, request: web.Request) -> web.Response:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return web.json_response(rpc_error(None, PARSE_ERROR, "Parse error"))
        return web.json_response(await self.dispatch(payload))

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/", self.handle)
        return app
