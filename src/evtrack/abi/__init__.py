"""ABI loading, event models and the `ContractInterface` decoder."""

from evtrack.abi.interface import ContractInterface, encode_topic
from evtrack.abi.models import (
    AbiEvent,
    AbiInput,
    abi_fingerprint,
    get_event_signature,
    get_event_topic0,
    get_events_from_abi,
    load_abi,
)

__all__ = [
    "ContractInterface",
    "encode_topic",
    "AbiEvent",
    "AbiInput",
    "abi_fingerprint",
    "get_event_signature",
    "get_event_topic0",
    "get_events_from_abi",
    "load_abi",
]
