"""Repository implementations for the infrastructure layer."""

from .in_memory import InMemoryCounterRepository, InMemoryPlanCacheRepository
from .redis import RedisCounterRepository, RedisPlanCacheRepository

__all__ = [
    "InMemoryCounterRepository",
    "InMemoryPlanCacheRepository",
    "RedisCounterRepository",
    "RedisPlanCacheRepository",
]
