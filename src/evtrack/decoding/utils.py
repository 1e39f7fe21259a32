"""Value rendering helpers: decoded ABI values -> canonical strings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from eth_utils import to_hex

HEX_PREFIX = "0x"


def _render(value: Any) -> str:
    match value:
        case bool():
            return "true" if value else "false"
        case int():
            return str(value)
        case bytes() | bytearray():
            return to_hex(bytes(value))
        case list() | tuple():
            return ",".join(_render(v) for v in value)
        case None:
            return ""
        case str():
            return value
        case _:
            return str(value)


def render_value(value: Any) -> str:
    """Render one decoded value.

    - bool           -> "true" / "false"
    - int            -> decimal
    - bytes          -> 0x-hex
    - list / tuple   -> comma-joined rendering of the items
    - None           -> ""
    - str and others -> str(value)

    A result starting with 0x is lowercased (addresses, hashes); items inside
    a joined list keep their case.
    """
    out = _render(value)
    return out.lower() if out.startswith(HEX_PREFIX) else out


def strip_positional(values: Mapping[str, Any]) -> dict[str, Any]:
    """Drop `length` and the "0".."length-1" duplicates some decoders emit."""
    try:
        n = int(values.get("length") or 0)
    except (TypeError, ValueError):
        n = 0
    positional = {str(i) for i in range(n)}
    return {k: v for k, v in values.items() if k != "length" and k not in positional}


def to_int(value: int | str) -> int:
    """Coerce a block/tx/log index delivered as int, 0x-hex or decimal string."""
    if isinstance(value, int):
        return value
    s = str(value).strip()
    return int(s, 16) if s.lower().startswith(HEX_PREFIX) else int(s)
