"""Historical log retrieval over a block range.

A failing eth_getLogs call is treated as "logs not ready yet" (the node has
not indexed the most recent blocks) and the identical query is re-issued
according to a `RetryPolicy`. The default policy retries every second with
no upper bound; pass a bounded policy to get `LogsNotReadyError` instead.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from evtrack.abi.models import AbiSpec
from evtrack.core.config import RetryPolicy
from evtrack.core.errors import LogsNotReadyError
from evtrack.core.interfaces import IJsonRpcSender, ILogsProvider
from evtrack.core.models import LogsParser, RawLog
from evtrack.decoding.cache import InterfaceCache
from evtrack.decoding.normalizer import normalize_many
from evtrack.utils import maybe_await

logger = logging.getLogger(__name__)


def to_hex_block(block: int | None) -> str:
    """Minimal 0x-hex block number, or "latest" when no block is given."""
    if block is None:
        return "latest"
    block = int(block)
    if block < 0:
        raise ValueError(f"block number must be >= 0, got {block}")
    return hex(block)


def build_logs_query(
    address: str | None,
    topics: Any,
    from_block: int | None,
    to_block: int | None,
) -> dict[str, Any]:
    """eth_getLogs filter object; `address` is omitted when not set."""
    query: dict[str, Any] = {}
    if address:
        query["address"] = address
    query["topics"] = list(topics) if isinstance(topics, (list, tuple)) else [topics]
    query["fromBlock"] = to_hex_block(from_block)
    query["toBlock"] = to_hex_block(to_block)
    return query


async def _get_logs(
    query: Mapping[str, Any],
    provider: ILogsProvider | None,
    sender: IJsonRpcSender | None,
) -> Sequence[Mapping[str, Any]]:
    if sender is not None:
        return await sender.send("eth_getLogs", [query])
    return await provider.get_past_logs(query)


async def fetch_logs(
    contract_address: str | None,
    abi: AbiSpec,
    topics: Any,
    from_block: int | None,
    to_block: int | None,
    parser: LogsParser | None = None,
    *,
    provider: ILogsProvider | None = None,
    cache: InterfaceCache | None = None,
    retry: RetryPolicy | None = None,
    sender: IJsonRpcSender | None = None,
) -> Any:
    """Fetch, retry until available, and normalize logs for one filter.

    Parameters
    ----------
    contract_address : str | None
        Emitter address; None queries every contract.
    abi : AbiSpec
        Interface description used to decode the logs.
    topics : Any
        Topic filter (usually from `derive_topics`); a bare topic is wrapped.
    from_block, to_block : int | None
        Inclusive range; None means "latest".
    parser : callable, optional
        Applied to the normalized list; its result is returned instead.
    provider : ILogsProvider
        Used for `get_past_logs` unless `sender` is given.
    cache : InterfaceCache, optional
        Decoder cache; a private one is created when omitted.
    retry : RetryPolicy, optional
        Defaults to the unbounded fixed 1 s policy.
    sender : IJsonRpcSender, optional
        Adapter-style path: `send("eth_getLogs", [query])`.
    """
    if provider is None and sender is None:
        raise ValueError("fetch_logs needs a provider or a sender")
    retry = retry or RetryPolicy()
    cache = cache if cache is not None else InterfaceCache()
    query = build_logs_query(contract_address, topics, from_block, to_block)

    attempt = 0
    while True:
        try:
            raw_logs = await _get_logs(query, provider, sender)
            break
        except Exception as e:
            attempt += 1
            if retry.exhausted(attempt):
                logger.error("Giving up on logs for block %s after %d attempts: %s", to_block, attempt, e)
                raise LogsNotReadyError(f"logs for {query} not available after {attempt} attempts") from e
            delay = retry.delay_for(attempt)
            logger.warning(
                "logs not ready for block %s, retrying in %.1fs (attempt %d): %s %s",
                to_block,
                delay,
                attempt,
                e,
                query,
            )
            await asyncio.sleep(delay)

    records = normalize_many((RawLog.from_rpc(log) for log in raw_logs or ()), cache, abi)
    logger.debug("Fetched %d logs, kept %d, blocks %s-%s", len(raw_logs or ()), len(records), from_block, to_block)
    if parser is not None:
        return await maybe_await(parser(records))
    return records
