"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `HttpJsonRpc`: an async `send(method, params)` client with sane
  timeouts/connection limits, plus the `get_block` / `get_past_logs`
  calls historical fetching needs

It returns raw JSON-RPC results; conversion to `RawLog` happens downstream.
HTTP has no push channel, so live subscriptions need `Web3LogsProvider`.
"""

from __future__ import annotations

import itertools
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from evtrack.core.errors import TransportError


class HttpJsonRpc:
    """Minimal async JSON-RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    client : httpx.AsyncClient, optional
        Pre-built client (custom transport, tests).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 64,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._ids = itertools.count(1)
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
        )

    async def send(self, method: str, params: Sequence[Any]) -> Any:
        """Issue one JSON-RPC call and return its `result`."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(params)}
        r = await self.client.post(self.url, json=payload)
        r.raise_for_status()
        data = r.json()
        if "error" in data:
            e = data["error"]
            if isinstance(e, dict):
                raise TransportError(f"RPC error: {e.get('code')} {e.get('message')}", code=e.get("code"))
            raise TransportError(f"RPC error: {e}")
        return data.get("result")

    async def get_block(self, block_identifier: str | int = "latest", full_transactions: bool = False) -> dict[str, Any]:
        """Return the block object; `number` is converted to int."""
        ident = hex(block_identifier) if isinstance(block_identifier, int) else block_identifier
        block = await self.send("eth_getBlockByNumber", [ident, full_transactions])
        if block is None:
            raise TransportError(f"block {block_identifier} not found")
        return {**block, "number": int(block["number"], 16)}

    async def get_past_logs(self, filter: Mapping[str, Any]) -> list[dict[str, Any]]:
        return await self.send("eth_getLogs", [dict(filter)]) or []

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> HttpJsonRpc:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
