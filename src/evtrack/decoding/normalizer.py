"""Raw log -> `NormalizedLogRecord`.

Logs the interface cannot decode (e.g. an ERC-721 Transfer showing up under
the ERC-20 Transfer topic) normalize to None and are dropped from batches.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from evtrack.abi.models import AbiSpec
from evtrack.core.errors import LogDecodeError
from evtrack.core.interfaces import IEventDecoder
from evtrack.core.models import NormalizedLogRecord, RawLog
from evtrack.decoding.cache import InterfaceCache
from evtrack.decoding.utils import render_value, strip_positional, to_int

logger = logging.getLogger(__name__)


def normalize(raw_log: RawLog, decoder: IEventDecoder) -> NormalizedLogRecord | None:
    """Decode and normalize one log, or return None if it is not decodable."""
    try:
        parsed = decoder.parse_log(raw_log)
    except LogDecodeError as e:
        logger.debug("Dropping log %s:%s: %s", raw_log.transaction_hash, raw_log.log_index, e)
        return None
    if parsed is None:
        return None

    values = {k: render_value(v) for k, v in strip_positional(parsed.values).items()}

    return NormalizedLogRecord(
        address=raw_log.address.lower(),
        topics=raw_log.topics,
        data=raw_log.data,
        block_number=to_int(raw_log.block_number),
        transaction_index=to_int(raw_log.transaction_index),
        log_index=to_int(raw_log.log_index),
        transaction_hash=raw_log.transaction_hash,
        removed=raw_log.removed,
        name=parsed.name,
        signature=parsed.signature,
        topic=parsed.topic,
        values=values,
    )


def normalize_many(
    raw_logs: Iterable[RawLog],
    cache: InterfaceCache,
    abi: AbiSpec,
) -> list[NormalizedLogRecord]:
    """Normalize a batch; the decoder is cached under the first log's address."""
    logs = list(raw_logs)
    if not logs:
        return []

    decoder = cache.get_or_create(logs[0].address, abi)
    out: list[NormalizedLogRecord] = []
    for log in logs:
        record = normalize(log, decoder)
        if record is not None:
            out.append(record)

    dropped = len(logs) - len(out)
    if dropped:
        logger.debug("Dropped %d/%d undecodable logs", dropped, len(logs))
    return out
