from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from evtrack.core.models import ParsedEvent, RawLog, SubscriptionHandle

OnEvent = Callable[[BaseException | None, Any], Awaitable[None] | None]


# ---------------------------------------------------------------------------
# ILogsProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogsProvider(Protocol):
    """
    Node access needed by the tracker.

    Domain expectations:
    - Returns raw JSON-RPC shaped objects (dicts / AttributeDicts); the
      domain converts them with `RawLog.from_rpc`.
    - Hides the underlying transport (websocket, IPC, in-memory fake).
    """

    async def get_block(self, block_identifier: str | int, full_transactions: bool) -> Mapping[str, Any]:
        """
        Return the block object, at least carrying `number`.
        """
        ...

    async def get_past_logs(self, filter: Mapping[str, Any]) -> Sequence[Mapping[str, Any]]:
        """
        Return all logs matching an eth_getLogs filter.

        Raises on transport failure; callers decide whether to retry.
        """
        ...

    async def subscribe(self, channel: str, filter: Mapping[str, Any], on_event: OnEvent) -> SubscriptionHandle:
        """
        Open a push subscription and call `on_event(error, log)` for every
        notification until the process exits.
        """
        ...


# ---------------------------------------------------------------------------
# IJsonRpcSender
# ---------------------------------------------------------------------------

@runtime_checkable
class IJsonRpcSender(Protocol):
    """
    Generic JSON-RPC `send`, used as the adapter-style eth_getLogs path.
    """

    async def send(self, method: str, params: Sequence[Any]) -> Any:
        ...


# ---------------------------------------------------------------------------
# IEventDecoder
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventDecoder(Protocol):
    """
    Interface decoder built from an ABI.

    Implementations:
    - `ContractInterface` (eth_abi based)
    - Test doubles returning canned `ParsedEvent`s
    """

    def parse_log(self, raw_log: RawLog) -> ParsedEvent | None:
        """
        Decode a raw log. Raises `LogDecodeError` when the log does not
        belong to this interface.
        """
        ...

    def encode_filter_topics(self, event_name: str, values: Sequence[Any]) -> list[Any]:
        ...
