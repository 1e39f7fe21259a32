"""Orchestration: per-event backfill + live subscription.

This package provides:
- `EventTracker` (track_event, subscribe_to_event, tracked_events)
- `resolve_start_block` helper
"""

from evtrack.orchestration.tracker import EventTracker, resolve_start_block

__all__ = [
    "EventTracker",
    "resolve_start_block",
]
