"""Event name + parameter filter -> eth_getLogs topic filter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from evtrack.abi.interface import ContractInterface
from evtrack.abi.models import AbiSpec


def derive_topics(
    event_name: str,
    params: Mapping[str, Any] | None,
    abi: AbiSpec | ContractInterface,
) -> list[Any]:
    """Build the ordered topic filter for `event_name`.

    Every declared input gets a positional slot: its value from `params`, or
    None when missing or None (no filter on that input). Raises
    UnknownEventError listing the declared names when `event_name` is absent.
    """
    interface = abi if isinstance(abi, ContractInterface) else ContractInterface(abi)
    event = interface.get_event(event_name)

    params = params or {}
    positional = [params.get(abi_input.name) for abi_input in event.inputs]
    return interface.encode_filter_topics(event_name, positional)
