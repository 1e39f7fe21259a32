"""Per-address cache of constructed `ContractInterface` decoders.

Entries are created lazily and live as long as the cache object; there is no
eviction. The cache is passed explicitly to whoever needs it.

Conflict policy, when a different ABI is supplied for a cached address:
- "keep":    return the cached decoder, log a warning
- "replace": build a decoder for the new ABI and cache it
- "reject":  raise AbiConflictError
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from evtrack.abi.interface import ContractInterface
from evtrack.abi.models import AbiSpec, abi_fingerprint, load_abi
from evtrack.core.config import CacheConflictPolicy
from evtrack.core.errors import AbiConflictError
from evtrack.core.interfaces import IEventDecoder

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    decoder: IEventDecoder
    fingerprint: str


class InterfaceCache:
    def __init__(
        self,
        policy: CacheConflictPolicy = "keep",
        factory: Callable[[AbiSpec], IEventDecoder] = ContractInterface,
    ) -> None:
        if policy not in ("keep", "replace", "reject"):
            raise ValueError(f"unknown cache conflict policy: {policy}")
        self.policy = policy
        self._factory = factory
        self._entries: dict[str, _Entry] = {}
        # Serializes first-time construction across threads/worker tasks
        self._lock = threading.Lock()

    def get_or_create(self, address: str, abi: AbiSpec) -> IEventDecoder:
        """Return the decoder cached for `address`, building it on first use."""
        key = address.lower()
        abi = load_abi(abi)
        fingerprint = abi_fingerprint(abi)

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry(self._factory(abi), fingerprint)
                self._entries[key] = entry
                return entry.decoder

            if entry.fingerprint == fingerprint:
                return entry.decoder

            if self.policy == "reject":
                raise AbiConflictError(f"{key} already has a decoder for a different ABI")
            if self.policy == "replace":
                logger.info("Replacing cached decoder for %s", key)
                entry = _Entry(self._factory(abi), fingerprint)
                self._entries[key] = entry
                return entry.decoder

            logger.warning("Different ABI passed for %s; keeping the cached decoder", key)
            return entry.decoder

    def __contains__(self, address: str) -> bool:
        return address.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
