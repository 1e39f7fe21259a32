"""`ILogsProvider` over a persistent web3 websocket connection.

Subscriptions go through `w3.eth.subscribe("logs", ...)`; one dispatcher
task reads `w3.socket.process_subscriptions()` and routes each notification
to its handler by subscription id.

eth_subscribe has no notion of a start block. When the filter carries
`fromBlock`, the adapter subscribes first and then replays eth_getLogs from
that block to "latest" through the same handler, so nothing between the
start block and the subscription is missed (duplicates are possible).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from web3 import AsyncWeb3, WebSocketProvider

from evtrack.core.errors import TransportError
from evtrack.core.interfaces import OnEvent
from evtrack.core.models import SubscriptionHandle
from evtrack.utils import maybe_await

logger = logging.getLogger(__name__)


class Web3LogsProvider:
    def __init__(self, w3: AsyncWeb3) -> None:
        self.w3 = w3
        self._handlers: dict[str, OnEvent] = {}
        self._dispatcher: asyncio.Task[None] | None = None

    @classmethod
    @contextlib.asynccontextmanager
    async def connect(cls, url: str) -> AsyncIterator[Web3LogsProvider]:
        """Open a websocket connection and yield a provider bound to it."""
        async with AsyncWeb3(WebSocketProvider(url)) as w3:
            provider = cls(w3)
            try:
                yield provider
            finally:
                await provider.aclose()

    async def get_block(self, block_identifier: str | int = "latest", full_transactions: bool = False) -> Mapping[str, Any]:
        return await self.w3.eth.get_block(block_identifier, full_transactions)

    async def get_past_logs(self, filter: Mapping[str, Any]) -> list[Any]:
        return list(await self.w3.eth.get_logs(dict(filter)))

    async def send(self, method: str, params: list[Any]) -> Any:
        response = await self.w3.provider.make_request(method, list(params))
        if response.get("error"):
            e = response["error"]
            code = e.get("code") if isinstance(e, dict) else None
            message = e.get("message") if isinstance(e, dict) else e
            raise TransportError(f"RPC error: {code} {message}", code=code)
        return response.get("result")

    async def subscribe(self, channel: str, filter: Mapping[str, Any], on_event: OnEvent) -> SubscriptionHandle:
        params = {k: v for k, v in filter.items() if k != "fromBlock"}
        subscription_id = str(await self.w3.eth.subscribe(channel, params))
        self._handlers[subscription_id] = on_event
        self._ensure_dispatcher()

        from_block = filter.get("fromBlock")
        if from_block is not None:
            await self._replay(on_event, params, from_block)

        return SubscriptionHandle(subscription_id=subscription_id, filter=dict(filter), channel=channel)

    async def _replay(self, on_event: OnEvent, params: Mapping[str, Any], from_block: int | str) -> None:
        query = {**params, "fromBlock": hex(from_block) if isinstance(from_block, int) else from_block, "toBlock": "latest"}
        try:
            logs = await self.get_past_logs(query)
        except Exception as e:
            await self._deliver(on_event, e, None)
            return
        for log in logs:
            await self._deliver(on_event, None, log)

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.create_task(self._dispatch(), name="evtrack-subscriptions")

    async def _dispatch(self) -> None:
        try:
            async for payload in self.w3.socket.process_subscriptions():
                handler = self._handlers.get(str(payload.get("subscription")))
                if handler is None:
                    continue
                await self._deliver(handler, None, payload.get("result"))
        except Exception as e:
            logger.error("Subscription stream closed: %s", e)
            for handler in list(self._handlers.values()):
                await self._deliver(handler, e, None)
            raise

    async def _deliver(self, handler: OnEvent, error: BaseException | None, log: Any) -> None:
        try:
            await maybe_await(handler(error, log))
        except Exception:
            logger.exception("Log handler failed")

    async def run_forever(self) -> None:
        """Block until the subscription stream ends."""
        if self._dispatcher is not None:
            await self._dispatcher

    async def aclose(self) -> None:
        if self._dispatcher is not None and not self._dispatcher.done():
            self._dispatcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._dispatcher
        self._handlers.clear()
