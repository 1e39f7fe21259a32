"""Log decoding and normalization.

This package provides:
- `InterfaceCache`: per-address decoder cache
- `normalize` / `normalize_many`: raw log -> NormalizedLogRecord
- `derive_topics`: event name + params -> topic filter
- Value rendering helpers
"""

from evtrack.decoding.cache import InterfaceCache
from evtrack.decoding.normalizer import normalize, normalize_many
from evtrack.decoding.topics import derive_topics
from evtrack.decoding.utils import render_value, strip_positional, to_int

__all__ = [
    "InterfaceCache",
    "normalize",
    "normalize_many",
    "derive_topics",
    "render_value",
    "strip_positional",
    "to_int",
]
