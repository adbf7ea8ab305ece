"""
Rate Limiting Value Objects

Immutable value objects representing the quota configuration of the guard.

Value Objects:
- Tier: One quota rule (duration, threshold, optional bucket precision)
- Plan: A named, ordered list of tiers
- PlanCatalog: The configured plans, keyed by name
- RateLimitKeys: Builds the store keys used for counters and plan caching

Design Principles:
- Immutability: configuration never changes for the lifetime of a guard
- Validation: tier and plan rules are enforced at construction time
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from quotaguard.core.exceptions import ConfigurationError

# Reserved plan name for IP-based guest quotas. Without it guests are rejected.
FREE_PLAN = "free"

# Cached marker meaning "this token has no plan, treat it as a guest".
NO_PLAN_SENTINEL = "none"


@dataclass(frozen=True, slots=True)
class Tier:
    """
    A single quota rule: at most `threshold` units per `duration` seconds.

    The window is split into buckets of `precision` seconds so that only the
    expired slice of the window is evicted. `precision` defaults to `duration`
    (one bucket, a fixed window) and is clamped so it never exceeds it.

    Business Rules:
    - duration and precision are whole seconds >= 1
    - threshold may be zero or negative; such a tier denies every hit
    """
    duration: int
    threshold: int
    precision: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.duration, bool) or not isinstance(self.duration, int):
            raise ConfigurationError(f"Tier duration must be an integer, got {self.duration!r}")
        if self.duration < 1:
            raise ConfigurationError(f"Tier duration must be >= 1 second, got {self.duration}")
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, int):
            raise ConfigurationError(f"Tier threshold must be an integer, got {self.threshold!r}")
        if self.precision is not None:
            if isinstance(self.precision, bool) or not isinstance(self.precision, int):
                raise ConfigurationError(f"Tier precision must be an integer, got {self.precision!r}")
            if self.precision < 1:
                raise ConfigurationError(f"Tier precision must be >= 1 second, got {self.precision}")

    @property
    def effective_precision(self) -> int:
        """Bucket width in seconds, never wider than the window itself"""
        return min(self.precision or self.duration, self.duration)

    @property
    def blocks(self) -> int:
        """Number of buckets covering one window"""
        return math.ceil(self.duration / self.effective_precision)

    @property
    def count_field(self) -> str:
        """Hash field holding the aggregate count for this tier"""
        return f"{self.duration}:{self.effective_precision}:"

    @property
    def timestamp_field(self) -> str:
        """Hash field holding the last-trim block id for this tier"""
        return f"{self.count_field}o"

    def bucket_field(self, block_id: int) -> str:
        return f"{self.count_field}{block_id}"

    def block_id(self, now: int) -> int:
        return now // self.effective_precision

    def trim_before(self, now: int) -> int:
        """Oldest block id still inside the window at `now`"""
        return self.block_id(now) - self.blocks + 1

    def as_payload(self) -> list[int]:
        """Serialize into the `[duration, threshold, precision?]` store form."""
        if self.precision is None:
            return [self.duration, self.threshold]
        return [self.duration, self.threshold, self.precision]

    @classmethod
    def parse(cls, value: Any) -> Tier:
        """
        Build a tier from its configuration form.

        Accepts an existing Tier, a `[duration, threshold]` or
        `[duration, threshold, precision]` sequence, or a mapping with
        `duration`, `threshold` and optional `precision` keys.
        """
        if isinstance(value, Tier):
            return value
        if isinstance(value, Mapping):
            try:
                return cls(
                    duration=value["duration"],
                    threshold=value["threshold"],
                    precision=value.get("precision"),
                )
            except KeyError as e:
                raise ConfigurationError(f"Tier mapping is missing {e.args[0]!r}: {value!r}") from e
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            if len(value) not in (2, 3):
                raise ConfigurationError(
                    f"Tier must be [duration, threshold] or [duration, threshold, precision], got {value!r}"
                )
            precision = value[2] if len(value) == 3 else None
            return cls(duration=value[0], threshold=value[1], precision=precision)
        raise ConfigurationError(f"Unsupported tier definition: {value!r}")

    def __str__(self) -> str:
        if self.precision is None:
            return f"{self.threshold}/{self.duration}s"
        return f"{self.threshold}/{self.duration}s@{self.effective_precision}s"


@dataclass(frozen=True, slots=True)
class Plan:
    """A named, ordered set of tiers. Order is kept as configured."""
    name: str
    tiers: tuple[Tier, ...]

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Plan name must be a non-empty string")
        if not self.tiers:
            # An empty plan would allow everything and leave counter records
            # without an expiry.
            raise ConfigurationError(f"Plan {self.name!r} must define at least one tier")

    @property
    def longest_duration(self) -> int:
        return max(tier.duration for tier in self.tiers)

    @classmethod
    def from_config(cls, name: str, definition: Any) -> Plan:
        """Build a plan from `{"limits": [[duration, threshold, precision?], ...]}`."""
        if isinstance(definition, Mapping):
            limits = definition.get("limits")
        else:
            limits = definition
        if limits is None or isinstance(limits, (str, bytes)) or not isinstance(limits, Iterable):
            raise ConfigurationError(f"Plan {name!r} must define a 'limits' list")
        return cls(name=name, tiers=tuple(Tier.parse(limit) for limit in limits))

    def __str__(self) -> str:
        return f"{self.name}[{', '.join(str(tier) for tier in self.tiers)}]"


@dataclass(frozen=True)
class PlanCatalog:
    """
    Immutable mapping of plan name to Plan.

    The reserved `free` plan holds the IP-based guest quota; when it is absent
    every guest request is rejected without touching the store.
    """
    plans: Mapping[str, Plan] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "plans", MappingProxyType(dict(self.plans)))

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> PlanCatalog:
        """Build the catalog from `{name: {"limits": [...]}}`."""
        if config is None:
            return cls()
        if not isinstance(config, Mapping):
            raise ConfigurationError(f"Plans must be a mapping of name to plan, got {type(config).__name__}")
        return cls({name: Plan.from_config(name, definition) for name, definition in config.items()})

    @property
    def allows_guests(self) -> bool:
        return FREE_PLAN in self.plans

    @property
    def free_plan(self) -> Optional[Plan]:
        return self.plans.get(FREE_PLAN)

    def get(self, name: str) -> Optional[Plan]:
        return self.plans.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.plans

    def __iter__(self) -> Iterator[str]:
        return iter(self.plans)

    def __len__(self) -> int:
        return len(self.plans)


@dataclass(frozen=True, slots=True)
class RateLimitKeys:
    """
    Builds the store keys for a deployment namespace.

    Token keys are namespaced. Guest (IP) keys are not, unless
    `namespace_guest_keys` is enabled: two deployments sharing one store then
    share their IP counters, which is the historical behaviour.
    """
    namespace: str = ""
    namespace_guest_keys: bool = False

    def plan_key(self, token: str) -> str:
        """Key holding the cached plan assignment of a token"""
        return f"{self.namespace}:rl:{token}"

    def token_hit_key(self, token: str) -> str:
        """Key holding the counter record of a token"""
        return f"{self.namespace}:rl:hit:{token}"

    def guest_hit_key(self, ip_address: str) -> str:
        """Key holding the counter record of a guest IP address"""
        if self.namespace_guest_keys:
            return f"{self.namespace}:rl:hit:ip:{ip_address}"
        return f"rl:hit:{ip_address}"


@dataclass(frozen=True, slots=True)
class QuotaConfig:
    """The immutable configuration value handed to the guard at construction."""
    catalog: PlanCatalog
    namespace: str = ""
    cache_ttl: int = 3600
    namespace_guest_keys: bool = False

    @property
    def caching_enabled(self) -> bool:
        return self.cache_ttl > 0

    @property
    def keys(self) -> RateLimitKeys:
        return RateLimitKeys(self.namespace, self.namespace_guest_keys)
