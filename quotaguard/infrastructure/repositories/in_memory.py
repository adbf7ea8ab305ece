"""In-memory repositories.

Notes:
- Per-process only: several workers each enforce their own independent limits.
- Each operation completes without yielding to the event loop, so a
  check-and-increment is atomic with respect to other coroutines.
- Intended for tests and single-process deployments; use the Redis
  repositories whenever more than one process shares a quota.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Sequence

from quotaguard.domain.rate_limiting.repositories import CounterRepository, PlanCacheRepository
from quotaguard.domain.rate_limiting.sliding_window import apply_hit, longest_duration
from quotaguard.domain.rate_limiting.value_objects import Tier


class InMemoryCounterRepository(CounterRepository):
    """Counter records kept in a dict, with the same layout as the Redis hashes.

    Expiry follows the timestamps handed to `check_and_increment`, so a record
    idle for its longest tier duration is dropped on the next access.
    """

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, int]] = {}
        self._expires_at: Dict[str, int] = {}

    def _live_record(self, key: str, now: int) -> Dict[str, int]:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and expires_at <= now:
            self._records.pop(key, None)
            del self._expires_at[key]
        return self._records.setdefault(key, {})

    async def check_and_increment(
        self,
        key: str,
        tiers: Sequence[Tier],
        now: int,
        weight: int = 1,
    ) -> bool:
        record = self._live_record(key, now)
        denied = apply_hit(record, tiers, now, weight)

        if not record:
            self._records.pop(key, None)
            self._expires_at.pop(key, None)
        elif not denied:
            longest = longest_duration(tiers)
            if longest > 0:
                self._expires_at[key] = now + longest
        return denied

    def snapshot(self, key: str) -> Dict[str, int]:
        """Return a copy of the counter record stored under `key`."""
        return dict(self._records.get(key, {}))

    def expires_at(self, key: str) -> Optional[int]:
        return self._expires_at.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._records


class InMemoryPlanCacheRepository(PlanCacheRepository):
    """Cached plan assignments with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: Dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be >= 1")
        self._entries[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
