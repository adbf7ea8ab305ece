"""
Rate Limiting Domain Repositories

Repository interfaces for the state the guard keeps in the shared store.

Repositories:
- CounterRepository: Atomic check-and-increment of counter records
- PlanCacheRepository: Plain get/set/delete of cached plan assignments

Implementations live in `quotaguard.infrastructure.repositories` and must
raise `quotaguard.core.exceptions.StoreError` when the store fails.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from .value_objects import Tier


class CounterRepository(ABC):
    """
    Repository interface for the sliding-window counter records.

    One call is one atomic unit of work: no other operation on the same key
    may interleave with it.
    """

    @abstractmethod
    async def check_and_increment(
        self,
        key: str,
        tiers: Sequence[Tier],
        now: int,
        weight: int = 1,
    ) -> bool:
        """
        Check `weight` units against all tiers and record them if allowed.

        Args:
            key: Store key of the counter record
            tiers: Tiers to enforce, in configured order
            now: Current time in whole seconds
            weight: Cost of the current request

        Returns:
            True if the request is denied, False if it was recorded

        Raises:
            StoreError: When the store fails to run the check
        """
        pass


class PlanCacheRepository(ABC):
    """Repository interface for cached token-to-plan assignments."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None on a miss."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store `value` under `key`, expiring after `ttl_seconds`."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass
