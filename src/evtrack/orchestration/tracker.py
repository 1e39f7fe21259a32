"""Event tracker: backfill then live subscription, per tracked event.

States per event: Registered -> BackfillInFlight (only when a start block
resolves) -> Live. There is no stop or cancel transition.

Live tracking starts at `head - head_lag` and the backfill range ends at the
same block, so the boundary block can be delivered twice. Consumers that
need exactly-once deduplicate on `NormalizedLogRecord.dedup_key`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from evtrack.core.config import TrackerConfig
from evtrack.core.interfaces import IJsonRpcSender, ILogsProvider
from evtrack.core.models import EventDescriptor, SubscriptionHandle
from evtrack.decoding.cache import InterfaceCache
from evtrack.decoding.topics import derive_topics
from evtrack.decoding.utils import to_int
from evtrack.fetching.history import fetch_logs
from evtrack.fetching.live import subscribe
from evtrack.utils import maybe_await

logger = logging.getLogger(__name__)


def resolve_start_block(descriptor: EventDescriptor, block_number: int) -> int | None:
    """Explicit `from_block` wins, else `block_number - back_fill_block_count`.

    A back-fill window reaching past genesis is clamped to block 0.
    """
    if descriptor.from_block is not None:
        return int(descriptor.from_block)
    if descriptor.back_fill_block_count is not None:
        return max(0, block_number - int(descriptor.back_fill_block_count))
    return None


class EventTracker:
    """Tracks contract events for one provider.

    Parameters
    ----------
    provider : ILogsProvider
        Node access for the head block, historical logs and subscriptions.
    config : TrackerConfig
        Head lag, retry policy and cache conflict policy.
    cache : InterfaceCache, optional
        Shared decoder cache; one is created from the config when omitted.
    sender : IJsonRpcSender, optional
        When given, historical eth_getLogs goes through `sender.send`.
    """

    def __init__(
        self,
        provider: ILogsProvider,
        *,
        config: TrackerConfig | None = None,
        cache: InterfaceCache | None = None,
        sender: IJsonRpcSender | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or TrackerConfig()
        self.cache = cache if cache is not None else InterfaceCache(self.config.cache_conflict_policy)
        self.sender = sender
        self._tracked: list[EventDescriptor] = []
        self._backfills: set[asyncio.Task[None]] = set()

    @property
    def tracked_events(self) -> tuple[EventDescriptor, ...]:
        """Snapshot of the descriptors tracked so far, in registration order."""
        return tuple(self._tracked)

    async def track_event(self, descriptor: EventDescriptor) -> bool:
        """Start tracking `descriptor` from one block behind the current head."""
        head = await self.provider.get_block("latest", self.config.include_full_transactions)
        latest_block_number = to_int(head["number"]) - self.config.head_lag
        await self.subscribe_to_event(descriptor, latest_block_number)
        self._tracked.append(descriptor)
        logger.info("Tracking %s on %s from block %d", descriptor.name, descriptor.contract, latest_block_number)
        return True

    def get_event_topics(self, descriptor: EventDescriptor) -> list[Any]:
        return derive_topics(descriptor.name, descriptor.params, descriptor.abi)

    async def subscribe_to_event(self, descriptor: EventDescriptor, block_number: int) -> SubscriptionHandle:
        """Schedule the optional backfill, then open the live subscription."""
        topics = self.get_event_topics(descriptor)

        start_block = resolve_start_block(descriptor, block_number)
        if start_block is not None:
            task = asyncio.create_task(
                self._fetch_historical_logs(descriptor, topics, start_block, block_number),
                name=f"backfill-{descriptor.name}-{start_block}-{block_number}",
            )
            self._backfills.add(task)
            task.add_done_callback(self._on_backfill_done)

        return await subscribe(
            descriptor.contract,
            descriptor.abi,
            topics,
            block_number,
            descriptor.callback,
            descriptor.parser,
            provider=self.provider,
        )

    async def _fetch_historical_logs(
        self,
        descriptor: EventDescriptor,
        topics: list[Any],
        from_block: int,
        to_block: int,
    ) -> None:
        if descriptor.on_fetching_historical_events is not None:
            await maybe_await(descriptor.on_fetching_historical_events())

        events = await fetch_logs(
            descriptor.contract,
            descriptor.abi,
            topics,
            from_block,
            to_block,
            descriptor.parser,
            provider=self.provider,
            cache=self.cache,
            retry=self.config.retry,
            sender=self.sender,
        )

        if descriptor.on_fetched_historical_events is not None:
            await maybe_await(descriptor.on_fetched_historical_events(events))
        await maybe_await(descriptor.callback(events))

    def _on_backfill_done(self, task: asyncio.Task[None]) -> None:
        self._backfills.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Backfill %s failed", task.get_name(), exc_info=exc)

    async def wait_backfills(self) -> None:
        """Wait for every backfill scheduled so far."""
        while self._backfills:
            await asyncio.gather(*list(self._backfills), return_exceptions=True)
