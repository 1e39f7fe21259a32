from __future__ import annotations

from .abi.interface import ContractInterface
from .core.config import RetryPolicy, TrackerConfig
from .core.errors import EvtrackError, UnknownEventError
from .core.models import EventDescriptor, NormalizedLogRecord, RawLog
from .decoding.cache import InterfaceCache
from .decoding.normalizer import normalize
from .decoding.topics import derive_topics
from .fetching.history import fetch_logs
from .fetching.live import subscribe
from .orchestration.tracker import EventTracker

__all__ = [
    "ContractInterface",
    "RetryPolicy",
    "TrackerConfig",
    "EvtrackError",
    "UnknownEventError",
    "EventDescriptor",
    "NormalizedLogRecord",
    "RawLog",
    "InterfaceCache",
    "normalize",
    "derive_topics",
    "fetch_logs",
    "subscribe",
    "EventTracker",
]
