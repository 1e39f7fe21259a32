"""Live log subscriptions.

Each pushed log is normalized and handed to the callback as a one-element
list (or `parser([record])`). Pushed logs that do not decode are skipped
without calling back. Channel errors are logged and the subscription stays
open.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from evtrack.abi.interface import ContractInterface
from evtrack.abi.models import AbiSpec
from evtrack.core.interfaces import ILogsProvider
from evtrack.core.models import LogsCallback, LogsParser, RawLog, SubscriptionHandle
from evtrack.decoding.normalizer import normalize
from evtrack.utils import maybe_await

logger = logging.getLogger(__name__)

LOGS_CHANNEL = "logs"


def build_subscription_filter(
    address: str | None,
    topics: Any,
    from_block: int | None,
) -> dict[str, Any]:
    """Filter for a log subscription; unset/empty keys are omitted."""
    candidates = {"address": address, "topics": topics, "fromBlock": from_block}
    return {k: v for k, v in candidates.items() if v is not None and v != "" and v != []}


async def subscribe(
    contract_address: str | None,
    abi: AbiSpec,
    topics: Any,
    from_block: int | None,
    callback: LogsCallback,
    parser: LogsParser | None = None,
    *,
    provider: ILogsProvider,
) -> SubscriptionHandle:
    """Open a "logs" subscription and route normalized records to `callback`."""
    log_filter = build_subscription_filter(contract_address, topics, from_block)
    interface = ContractInterface(abi)

    async def on_event(error: BaseException | None, log: Mapping[str, Any] | None) -> None:
        if error is not None:
            logger.error("Log subscription error for %s: %s", log_filter.get("address"), error)
            return
        if log is None:
            return

        record = normalize(RawLog.from_rpc(log), interface)
        if record is None:
            logger.debug("Pushed log did not decode, skipping callback")
            return

        payload: Any = [record]
        if parser is not None:
            payload = await maybe_await(parser(payload))
        await maybe_await(callback(payload))

    handle = await provider.subscribe(LOGS_CHANNEL, log_filter, on_event)
    logger.info("Subscribed to logs %s", log_filter)
    return handle
