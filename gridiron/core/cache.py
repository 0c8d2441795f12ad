# gridiron/core/cache.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass(frozen=True)
class CacheEntry:
    key: str
    ts: float
    value: Any


class TTLCache:
    """
    Small in-process key -> (timestamp, value) store with a fixed time-to-live.

    Entries are never deleted, only considered stale once older than `ttl`.
    Writes replace the whole entry (last writer wins), so no locking is needed
    under the event loop.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def is_fresh(self, entry: Optional[CacheEntry]) -> bool:
        if entry is None:
            return False
        return (self._clock() - entry.ts) < self.ttl

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if not self.is_fresh(entry):
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(key=key, ts=self._clock(), value=value)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.is_fresh(self._entries.get(key))


def override_suffix(**overrides: Optional[str]) -> str:
    """Cache-key suffix for caller overrides; empty when none were given."""
    parts = [f"{k}={v}" for k, v in sorted(overrides.items()) if v]
    return "|" + "|".join(parts) if parts else ""
