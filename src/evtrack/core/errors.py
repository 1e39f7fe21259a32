"""Exception hierarchy.

Configuration-level problems (bad ABI, unknown event, unencodable filter)
are raised to the caller. Decode mismatches never leave the normalizer.
Transport failures during historical fetch are retried and only surface as
`LogsNotReadyError` when a bounded retry policy runs out.
"""

from __future__ import annotations

from collections.abc import Iterable


class EvtrackError(Exception):
    """Base class for every error raised by evtrack."""


class AbiError(EvtrackError):
    """The interface description is malformed or cannot serve the request."""


class UnknownEventError(AbiError):
    """An event name was requested that the ABI does not declare."""

    def __init__(self, event_name: str, available: Iterable[str]) -> None:
        self.event_name = event_name
        self.available = sorted(set(available))
        super().__init__(f"{event_name} not an abi event, possible events are {', '.join(self.available)}")


class FilterEncodingError(AbiError):
    """Parameter values cannot be turned into a topic filter."""


class AbiConflictError(EvtrackError):
    """A different ABI was supplied for an address whose decoder is cached."""


class LogDecodeError(EvtrackError):
    """A raw log does not match any event of the interface."""


class TransportError(EvtrackError):
    """The node answered with a JSON-RPC error payload."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        self.code = code
        super().__init__(message)


class LogsNotReadyError(TransportError):
    """eth_getLogs kept failing until the retry policy gave up."""
