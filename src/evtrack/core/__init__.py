"""Core data models, configuration, interfaces and errors.

This package provides:
- Data models (RawLog, ParsedEvent, NormalizedLogRecord, EventDescriptor)
- Configuration classes (RetryPolicy, TrackerConfig, CliConfig)
- Collaborator protocols (ILogsProvider, IJsonRpcSender, IEventDecoder)
- The evtrack exception hierarchy
"""

from evtrack.core.config import CliConfig, RetryPolicy, TrackerConfig
from evtrack.core.errors import (
    AbiConflictError,
    AbiError,
    EvtrackError,
    FilterEncodingError,
    LogDecodeError,
    LogsNotReadyError,
    TransportError,
    UnknownEventError,
)
from evtrack.core.models import EventDescriptor, NormalizedLogRecord, ParsedEvent, RawLog, SubscriptionHandle

__all__ = [
    "CliConfig",
    "RetryPolicy",
    "TrackerConfig",
    "AbiConflictError",
    "AbiError",
    "EvtrackError",
    "FilterEncodingError",
    "LogDecodeError",
    "LogsNotReadyError",
    "TransportError",
    "UnknownEventError",
    "EventDescriptor",
    "NormalizedLogRecord",
    "ParsedEvent",
    "RawLog",
    "SubscriptionHandle",
]
