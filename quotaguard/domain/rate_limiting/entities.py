"""Rate Limiting Domain Entities

Result objects produced by the quota guard.

Entities:
- QuotaDecision: Outcome of one check, with the path that produced it

Plan resolution has a handful of terminal outcomes (guest rejected outright,
guest counter, token counter, or an error raised to the caller). A decision
records which of them was taken so callers and logs can tell them apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .value_objects import FREE_PLAN


class QuotaPath(Enum):
    """Which branch of the guard produced a decision."""
    REJECTED = "rejected"
    GUEST = "guest"
    TOKEN = "token"


class PlanSource(Enum):
    """Where the plan of a token-path decision came from."""
    CACHE = "cache"
    PROVIDER = "provider"
    NONE = "none"


@dataclass(frozen=True)
class QuotaDecision:
    """Entity representing the outcome of a quota check.

    Attributes:
        denied: True when the request must be refused
        path: The branch that produced the decision
        counter_key: Store key of the counter record that was checked,
            None when no counter was consulted
        plan: Name of the plan whose tiers were applied
        plan_source: How a token's plan was resolved
    """
    denied: bool
    path: QuotaPath
    counter_key: Optional[str] = None
    plan: Optional[str] = None
    plan_source: PlanSource = PlanSource.NONE

    @property
    def allowed(self) -> bool:
        return not self.denied

    @classmethod
    def rejected(cls) -> QuotaDecision:
        """Guest request with no free plan configured"""
        return cls(denied=True, path=QuotaPath.REJECTED)

    @classmethod
    def guest(cls, denied: bool, counter_key: str) -> QuotaDecision:
        return cls(denied=denied, path=QuotaPath.GUEST, counter_key=counter_key, plan=FREE_PLAN)

    @classmethod
    def token(cls, denied: bool, counter_key: str, plan: str, plan_source: PlanSource) -> QuotaDecision:
        return cls(
            denied=denied,
            path=QuotaPath.TOKEN,
            counter_key=counter_key,
            plan=plan,
            plan_source=plan_source,
        )
