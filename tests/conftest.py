import pytest

from quotaguard.domain.rate_limiting import PlanCatalog, QuotaConfig, QuotaGuard
from quotaguard.infrastructure.repositories import (
    InMemoryCounterRepository,
    InMemoryPlanCacheRepository,
)


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Fixture providing a controllable clock starting on a whole second."""
    return FakeClock()


@pytest.fixture
def counters():
    return InMemoryCounterRepository()


@pytest.fixture
def plan_cache(clock):
    return InMemoryPlanCacheRepository(clock=clock)


@pytest.fixture
def make_config():
    """Factory building a QuotaConfig from the plain plan configuration shape."""

    def _make(plans, namespace="test", cache_ttl=3600, namespace_guest_keys=False):
        return QuotaConfig(
            catalog=PlanCatalog.from_config(plans),
            namespace=namespace,
            cache_ttl=cache_ttl,
            namespace_guest_keys=namespace_guest_keys,
        )

    return _make


@pytest.fixture
def make_guard(counters, plan_cache, clock, make_config):
    """Factory building an in-memory QuotaGuard sharing the test clock."""

    def _make(plans, plan_provider=None, **config_kwargs):
        return QuotaGuard(
            counters,
            plan_cache,
            make_config(plans, **config_kwargs),
            plan_provider=plan_provider,
            clock=clock,
        )

    return _make
