"""Rate Limiting Domain Module

This module contains the domain model of the quota guard:

- Value Objects: Tiers, plans and the immutable quota configuration
- Sliding Window: The bucketed check-and-increment algorithm
- Entities: The decision returned for each request
- Domain Services: Plan resolution and the public entry point
- Repositories: Contracts for the counter store and the plan cache
"""

from .entities import PlanSource, QuotaDecision, QuotaPath
from .repositories import CounterRepository, PlanCacheRepository
from .services import PlanProvider, QuotaGuard, QuotaResolver
from .value_objects import (
    FREE_PLAN,
    NO_PLAN_SENTINEL,
    Plan,
    PlanCatalog,
    QuotaConfig,
    RateLimitKeys,
    Tier,
)

__all__ = [
    "FREE_PLAN",
    "NO_PLAN_SENTINEL",
    "Tier",
    "Plan",
    "PlanCatalog",
    "QuotaConfig",
    "RateLimitKeys",
    "QuotaDecision",
    "QuotaPath",
    "PlanSource",
    "CounterRepository",
    "PlanCacheRepository",
    "PlanProvider",
    "QuotaResolver",
    "QuotaGuard",
]
