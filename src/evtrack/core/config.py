from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal

CacheConflictPolicy = Literal["keep", "replace", "reject"]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry schedule for historical eth_getLogs calls.

    The defaults retry forever at a fixed one second interval, which suits
    nodes whose most recent blocks are not queryable yet. Set `max_attempts`
    to bound the loop, and `backoff` > 1 to grow the delay geometrically
    (capped by `max_interval_s`).
    """

    interval_s: float = 1.0
    max_attempts: int | None = None  # None = never give up
    backoff: float = 1.0
    max_interval_s: float | None = None

    def __post_init__(self) -> None:
        if self.interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff < 1:
            raise ValueError("backoff must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the `attempt`-th failure (1-based)."""
        cap = math.inf if self.max_interval_s is None else self.max_interval_s
        if self.interval_s == 0:
            return 0.0
        try:
            delay = self.interval_s * self.backoff ** (attempt - 1)
        except OverflowError:
            return cap
        return min(delay, cap)

    def exhausted(self, attempt: int) -> bool:
        """True once `attempt` failures used up the budget."""
        return self.max_attempts is not None and attempt >= self.max_attempts


@dataclass(frozen=True)
class TrackerConfig:
    """Configuration for the event tracker."""

    # Live tracking starts this many blocks behind the reported head.
    head_lag: int = 1
    include_full_transactions: bool = False
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    cache_conflict_policy: CacheConflictPolicy = "keep"


@dataclass(frozen=True)
class CliConfig:
    """Configuration assembled by the `evtrack` CLI."""

    rpc_url: str
    contract: str
    abi_path: str
    event: str
    params: dict[str, str] = field(default_factory=dict)
    from_block: int | None = None
    to_block: int | None = None
    back_fill_block_count: int | None = None
    logs_rpc_url: str | None = None
    max_attempts: int | None = None
    log_level: str = "INFO"
