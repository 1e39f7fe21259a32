"""Core data models.

This module defines:
- `RawLog`: a log as delivered by the node, minimally typed.
- `ParsedEvent`: decoder output for one raw log.
- `NormalizedLogRecord`: the canonical record handed to applications.
- `EventDescriptor`: a user request to track one contract event.
- `SubscriptionHandle`: what a provider returns for a live subscription.

Design notes
------------
- Byte values coming from web3 (`HexBytes`) are rendered as 0x-hex at the
  `RawLog` boundary so the rest of the pipeline only sees strings.
- Block/tx/log indexes are kept as delivered (int or hex string) in `RawLog`
  and coerced to `int` by the normalizer.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from eth_utils import to_hex

BlockRef = int | str

LogsCallback = Callable[[Any], Awaitable[None] | None]
LogsParser = Callable[[list["NormalizedLogRecord"]], Any]
Hook = Callable[..., Awaitable[None] | None]


def _hex(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return to_hex(bytes(value))
    return value


# === RPC record ===


@dataclass(slots=True, frozen=True)
class RawLog:
    """Raw log as fetched from the node."""

    address: str
    topics: tuple[str, ...]
    data: str  # "0x..."
    block_number: BlockRef
    transaction_index: BlockRef
    log_index: BlockRef
    transaction_hash: str
    removed: bool = False

    @classmethod
    def from_rpc(cls, payload: Mapping[str, Any]) -> RawLog:
        """Build from a JSON-RPC log object or a web3 `AttributeDict`."""
        return cls(
            address=str(payload["address"]),
            topics=tuple(_hex(t) for t in payload.get("topics") or ()),
            data=_hex(payload.get("data")) or "0x",
            block_number=payload["blockNumber"],
            transaction_index=payload["transactionIndex"],
            log_index=payload["logIndex"],
            transaction_hash=_hex(payload.get("transactionHash")) or "",
            removed=bool(payload.get("removed", False)),
        )


@dataclass(slots=True)
class ParsedEvent:
    """Decoded event: declared name/signature plus ordered argument values."""

    name: str
    signature: str
    topic: str | None
    values: dict[str, Any]
    types: dict[str, str] = field(default_factory=dict)


# === Canonical output ===


@dataclass(slots=True, frozen=True)
class NormalizedLogRecord:
    """Canonical record for one decoded log.

    `values` maps every declared parameter name to its string rendering;
    0x-prefixed values are lowercased.
    """

    address: str
    topics: tuple[str, ...]
    data: str
    block_number: int
    transaction_index: int
    log_index: int
    transaction_hash: str
    removed: bool
    name: str
    signature: str
    topic: str | None
    values: dict[str, str]

    @property
    def dedup_key(self) -> tuple[str, int]:
        """Identity of the log across the backfill/live overlap."""
        return (self.transaction_hash, self.log_index)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape with camelCase keys."""
        return {
            "address": self.address,
            "topics": list(self.topics),
            "data": self.data,
            "blockNumber": self.block_number,
            "transactionIndex": self.transaction_index,
            "logIndex": self.log_index,
            "transactionHash": self.transaction_hash,
            "removed": self.removed,
            "name": self.name,
            "signature": self.signature,
            "topic": self.topic,
            "values": dict(self.values),
        }


# === Tracking request ===


@dataclass(frozen=True, kw_only=True)
class EventDescriptor:
    """One event to track on one contract.

    `from_block` wins over `back_fill_block_count`; with neither set no
    historical backfill happens and only the live subscription runs.
    """

    name: str
    contract: str | None
    abi: Any
    callback: LogsCallback
    params: Mapping[str, Any] | None = None
    from_block: int | None = None
    back_fill_block_count: int | None = None
    parser: LogsParser | None = None
    on_fetching_historical_events: Hook | None = None
    on_fetched_historical_events: Hook | None = None


@dataclass(slots=True, frozen=True)
class SubscriptionHandle:
    """Opaque handle for an open log subscription."""

    subscription_id: str
    filter: Mapping[str, Any]
    channel: str = "logs"

