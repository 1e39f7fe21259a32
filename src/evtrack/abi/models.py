"""Pydantic models for ABI event entries and ABI loading helpers."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from eth_utils import keccak
from eth_utils.abi import event_signature_to_log_topic
from pydantic import BaseModel, ValidationError

from evtrack.core.errors import AbiError


class AbiInput(BaseModel):
    indexed: bool = False
    internalType: str | None = None
    name: str = ""
    type: str
    components: Sequence[AbiInput] | None = None


class AbiEvent(BaseModel):
    anonymous: bool = False
    inputs: Sequence[AbiInput] = ()
    name: str
    type: Literal["event"]


def canonical_type(abi_input: AbiInput) -> str:
    """ABI type as it appears in a signature; tuples are expanded."""
    if abi_input.type.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in abi_input.components or ())
        return f"({inner}){abi_input.type[len('tuple'):]}"
    return abi_input.type


def get_event_signature(event: AbiEvent) -> str:
    return f"{event.name}({','.join(canonical_type(event_input) for event_input in event.inputs)})"


def get_event_topic0(event: AbiEvent) -> str:
    return "0x" + event_signature_to_log_topic(get_event_signature(event)).hex()


AbiJson = list[dict[str, Any]]
AbiSpec = Iterable[dict[str, Any]] | Path | str | dict[str, Any]


def load_abi(abi: AbiSpec) -> AbiJson:
    """Return the ABI as a list of entries.

    Accepts a list of entries, a JSON string, a path to a JSON file, or a
    compiler artifact dict carrying an ``"abi"`` key.
    """
    try:
        if isinstance(abi, Path):
            abi = json.loads(abi.read_text())
        elif isinstance(abi, str):
            abi = json.loads(abi)
    except (OSError, ValueError) as e:
        raise AbiError(f"cannot load ABI: {e}") from e

    if isinstance(abi, dict):
        if "abi" not in abi:
            raise AbiError("ABI dict must carry an 'abi' key")
        abi = abi["abi"]

    entries = list(abi)
    if not all(isinstance(entry, dict) for entry in entries):
        raise AbiError("ABI entries must be JSON objects")
    return entries


def get_events_from_abi(abi: AbiSpec) -> list[AbiEvent]:
    """Validate every event entry of the ABI, in declaration order."""
    try:
        return [AbiEvent.model_validate(entry) for entry in load_abi(abi) if entry.get("type") == "event"]
    except ValidationError as e:
        raise AbiError(f"malformed ABI event entry: {e}") from e


def abi_fingerprint(abi: AbiSpec) -> str:
    """Stable fingerprint of an ABI (key order insensitive)."""
    canonical = json.dumps(load_abi(abi), sort_keys=True, separators=(",", ":"))
    return keccak(text=canonical).hex()[:16]
