"""Contract interface: decode raw logs and encode topic filters.

This is a thin adapter over `eth_abi` (value codec) and `eth_utils`
(keccak, hex helpers) exposing the decoder surface the tracker needs:

- `events`: signature -> AbiEvent
- `parse_log(raw_log)` -> ParsedEvent, raising LogDecodeError on mismatch
- `encode_filter_topics(name, values)` -> topic filter list
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import decode_hex, keccak, to_hex

from evtrack.abi.models import (
    AbiEvent,
    AbiSpec,
    canonical_type,
    get_event_signature,
    get_event_topic0,
    get_events_from_abi,
    load_abi,
)
from evtrack.core.errors import FilterEncodingError, LogDecodeError, UnknownEventError
from evtrack.core.models import ParsedEvent, RawLog


def is_hashed_topic_type(abi_type: str) -> bool:
    """Indexed values of these types are stored as keccak hashes in topics."""
    return abi_type in ("string", "bytes") or abi_type.endswith("]") or abi_type.startswith("(")


def _coerce(abi_type: str, value: Any) -> Any:
    """Accept the loose inputs a CLI or config file produces (strings)."""
    if abi_type == "address" and isinstance(value, str):
        return value.lower()
    if abi_type.startswith(("uint", "int")) and isinstance(value, str):
        return int(value, 0)
    if abi_type == "bool" and isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    if abi_type.startswith("bytes") and isinstance(value, str):
        return decode_hex(value)
    return value


def encode_topic(abi_type: str, value: Any) -> str:
    """Encode one indexed value as a 32-byte topic (0x-hex)."""
    try:
        if abi_type == "string":
            return to_hex(keccak(text=value))
        if abi_type == "bytes":
            return to_hex(keccak(_coerce(abi_type, value)))
        return to_hex(encode([abi_type], [_coerce(abi_type, value)]))
    except (EncodingError, TypeError, ValueError) as e:
        raise FilterEncodingError(f"cannot encode {value!r} as {abi_type}: {e}") from e


class ContractInterface:
    """Decoder for the events declared by one ABI.

    Lookup tables are built once here; nothing is recomputed per call.
    Overloaded event names resolve to their first declaration when looked up
    by base name; use the full signature to pick another overload.
    """

    def __init__(self, abi: AbiSpec) -> None:
        self.abi = load_abi(abi)
        declared = get_events_from_abi(self.abi)

        self.events: dict[str, AbiEvent] = {}
        self.events_by_name: dict[str, AbiEvent] = {}
        self.events_by_topic: dict[str, AbiEvent] = {}
        self._topics: dict[str, str] = {}

        for event in declared:
            signature = get_event_signature(event)
            topic0 = get_event_topic0(event)
            self.events[signature] = event
            self.events_by_name.setdefault(event.name, event)
            self._topics[signature] = topic0
            if not event.anonymous:
                self.events_by_topic.setdefault(topic0, event)

    @property
    def event_names(self) -> list[str]:
        return sorted({event.name for event in self.events.values()})

    def get_event(self, name: str) -> AbiEvent:
        """Find an event by base name or full signature."""
        event = self.events.get(name) if "(" in name else self.events_by_name.get(name)
        if event is None:
            raise UnknownEventError(name, self.event_names)
        return event

    def topic_of(self, event: AbiEvent) -> str:
        return self._topics[get_event_signature(event)]

    # ---------- decoding ----------

    def parse_log(self, raw_log: RawLog) -> ParsedEvent:
        topics = [t.lower() for t in raw_log.topics]
        if not topics:
            raise LogDecodeError("log has no topics")

        event = self.events_by_topic.get(topics[0])
        if event is None:
            raise LogDecodeError(f"no event matches topic {topics[0]}")

        indexed = [i for i in event.inputs if i.indexed]
        if len(topics) - 1 != len(indexed):
            raise LogDecodeError(
                f"{event.name} expects {len(indexed)} indexed topics, log has {len(topics) - 1}"
            )

        try:
            indexed_vals: list[Any] = []
            for abi_input, topic in zip(indexed, topics[1:]):
                abi_type = canonical_type(abi_input)
                if is_hashed_topic_type(abi_type):
                    indexed_vals.append(topic)
                else:
                    indexed_vals.append(decode([abi_type], decode_hex(topic))[0])

            data_types = [canonical_type(i) for i in event.inputs if not i.indexed]
            data_vals = list(decode(data_types, decode_hex(raw_log.data or "0x")))
        except (DecodingError, ValueError) as e:
            raise LogDecodeError(f"cannot decode {event.name}: {e}") from e

        values: dict[str, Any] = {}
        types: dict[str, str] = {}
        for abi_input in event.inputs:
            value = indexed_vals.pop(0) if abi_input.indexed else data_vals.pop(0)
            # unnamed inputs are positional only
            if not abi_input.name:
                continue
            values[abi_input.name] = value
            types[abi_input.name] = canonical_type(abi_input)

        return ParsedEvent(
            name=event.name,
            signature=get_event_signature(event),
            topic=self.topic_of(event),
            values=values,
            types=types,
        )

    # ---------- filter encoding ----------

    def encode_filter_topics(self, event_name: str, values: Sequence[Any]) -> list[Any]:
        """Topic filter for `event_name` from values positional over ALL inputs.

        `None` leaves a position unfiltered, a list/tuple is an OR-set.
        Trailing `None`s are dropped.
        """
        event = self.get_event(event_name)
        if len(values) > len(event.inputs):
            raise FilterEncodingError(
                f"{event.name} takes {len(event.inputs)} values, got {len(values)}"
            )

        topics: list[Any] = [] if event.anonymous else [self.topic_of(event)]
        for abi_input, value in zip(event.inputs, values):
            if not abi_input.indexed:
                if value is not None:
                    raise FilterEncodingError(
                        f"cannot filter non-indexed parameter {abi_input.name!r}; must be None"
                    )
                continue
            abi_type = canonical_type(abi_input)
            if value is None:
                topics.append(None)
            elif abi_type.endswith("]") or abi_type.startswith("("):
                raise FilterEncodingError("filtering with tuples or arrays is not supported")
            elif isinstance(value, (list, tuple)):
                topics.append([encode_topic(abi_type, v) for v in value])
            else:
                topics.append(encode_topic(abi_type, value))

        while topics and topics[-1] is None:
            topics.pop()
        return topics
