"""
Rate Limiting Domain Services

Domain services deciding whether a request identity may proceed.

Services:
- QuotaResolver: Maps a token or IP address to a tier set and runs the counter
- QuotaGuard: The public entry point choosing the token path, the guest path,
  or an immediate deny

Resolution is staged (cached plan, provider plan, counter check) and every
stage returns early with a `QuotaDecision`. Store and provider failures are
raised to the caller; an unknown plan name falls back to the guest path.
"""

from __future__ import annotations

import inspect
import time
from hashlib import sha256
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from quotaguard.core.exceptions import PlanLookupError, StoreError

from .entities import PlanSource, QuotaDecision
from .repositories import CounterRepository, PlanCacheRepository
from .value_objects import NO_PLAN_SENTINEL, Plan, QuotaConfig

logger = structlog.get_logger(__name__)

# Resolves a token to a plan name, or None when the token has no plan.
PlanProvider = Callable[[str], Union[Awaitable[Optional[str]], Optional[str]]]


def _token_hash(token: str) -> str:
    """Short digest so tokens never reach the logs in clear."""
    return sha256(token.encode()).hexdigest()[:12]


class QuotaResolver:
    """
    Resolves the tiers that apply to a request and enforces them.

    Holds no mutable state between calls: the configuration is immutable and
    every piece of persisted state lives behind the repositories.
    """

    def __init__(
        self,
        counters: CounterRepository,
        plan_cache: PlanCacheRepository,
        config: QuotaConfig,
        plan_provider: Optional[PlanProvider] = None,
        clock: Callable[[], float] = time.time,
        log: Optional[Any] = None,
    ):
        self.counters = counters
        self.plan_cache = plan_cache
        self.config = config
        self.keys = config.keys
        self.plan_provider = plan_provider
        self._clock = clock
        self._logger = log or logger

    def _now(self) -> int:
        return int(self._clock())

    async def _run_counter(self, key: str, plan: Plan, weight: int) -> bool:
        return await self.counters.check_and_increment(key, plan.tiers, self._now(), weight)

    async def resolve_guest(self, ip_address: str, weight: int = 1) -> QuotaDecision:
        """
        Apply the `free` plan to an IP address.

        Without a free plan the request is denied and the store is not touched.
        """
        free_plan = self.config.catalog.free_plan
        if free_plan is None:
            self._logger.debug("guest_rejected_no_free_plan", ip=ip_address)
            return QuotaDecision.rejected()

        key = self.keys.guest_hit_key(ip_address)
        denied = await self._run_counter(key, free_plan, weight)
        self._logger.debug("guest_checked", ip=ip_address, denied=denied)
        return QuotaDecision.guest(denied, key)

    async def resolve_token(self, token: str, ip_address: str, weight: int = 1) -> QuotaDecision:
        """
        Apply the plan assigned to `token`, falling back to the guest path.

        Raises:
            StoreError: When reading the plan cache or running the counter fails
            PlanLookupError: When the plan provider fails
        """
        plan_key = self.keys.plan_key(token)
        token_hash = _token_hash(token)

        try:
            cached = await self.plan_cache.get(plan_key)
        except StoreError as e:
            self._logger.error("plan_cache_read_failed", token_hash=token_hash, error=str(e))
            raise

        if cached:
            return await self._resolve_cached(token, cached, ip_address, weight)
        return await self._resolve_from_provider(token, ip_address, weight)

    async def _resolve_cached(self, token: str, cached: str, ip_address: str, weight: int) -> QuotaDecision:
        token_hash = _token_hash(token)
        self._logger.debug("plan_cache_hit", token_hash=token_hash, plan=cached)

        if cached == NO_PLAN_SENTINEL:
            return await self.resolve_guest(ip_address, weight)

        plan = self.config.catalog.get(cached)
        if plan is None:
            # The plan was removed or renamed since it was cached.
            self._logger.warning("cached_plan_unknown", token_hash=token_hash, plan=cached)
            await self.plan_cache.delete(self.keys.plan_key(token))
            return await self.resolve_guest(ip_address, weight)

        key = self.keys.token_hit_key(token)
        denied = await self._run_counter(key, plan, weight)
        return QuotaDecision.token(denied, key, plan.name, PlanSource.CACHE)

    async def _resolve_from_provider(self, token: str, ip_address: str, weight: int) -> QuotaDecision:
        token_hash = _token_hash(token)

        if self.plan_provider is None:
            self._logger.warning("no_plan_provider_configured", token_hash=token_hash)
            return await self.resolve_guest(ip_address, weight)

        self._logger.debug("plan_provider_lookup", token_hash=token_hash)
        plan_name = await self._lookup_provider_plan(token)

        if self.config.caching_enabled:
            await self._cache_plan(token, plan_name)

        if not plan_name:
            return await self.resolve_guest(ip_address, weight)

        plan = self.config.catalog.get(plan_name)
        if plan is None:
            self._logger.error("provider_plan_unknown", token_hash=token_hash, plan=plan_name)
            return await self.resolve_guest(ip_address, weight)

        self._logger.debug("provider_plan_resolved", token_hash=token_hash, plan=str(plan))
        key = self.keys.token_hit_key(token)
        denied = await self._run_counter(key, plan, weight)
        return QuotaDecision.token(denied, key, plan.name, PlanSource.PROVIDER)

    async def _lookup_provider_plan(self, token: str) -> Optional[str]:
        try:
            result = self.plan_provider(token)
            if inspect.isawaitable(result):
                result = await result
        except PlanLookupError:
            self._logger.error("plan_lookup_failed", token_hash=_token_hash(token))
            raise
        except Exception as e:
            self._logger.error("plan_lookup_failed", token_hash=_token_hash(token), error=str(e))
            raise PlanLookupError(f"Error trying to get plan for token: {e}") from e
        return result or None

    async def _cache_plan(self, token: str, plan_name: Optional[str]) -> None:
        """Best-effort write of the resolved plan; failures are only logged."""
        try:
            await self.plan_cache.set(
                self.keys.plan_key(token),
                plan_name or NO_PLAN_SENTINEL,
                self.config.cache_ttl,
            )
        except StoreError as e:
            self._logger.error("plan_cache_write_failed", token_hash=_token_hash(token), error=str(e))


class QuotaGuard:
    """
    Main entry point answering "allow or deny" for a request identity.

    - No token and no free plan: denied, no store access
    - Token present: the token's plan, falling back to the guest quota
    - Otherwise: the guest quota of the IP address
    """

    def __init__(
        self,
        counters: CounterRepository,
        plan_cache: PlanCacheRepository,
        config: QuotaConfig,
        plan_provider: Optional[PlanProvider] = None,
        clock: Callable[[], float] = time.time,
        log: Optional[Any] = None,
    ):
        self.config = config
        self.resolver = QuotaResolver(
            counters,
            plan_cache,
            config,
            plan_provider=plan_provider,
            clock=clock,
            log=log,
        )
        (log or logger).debug(
            "quota_guard_instantiated",
            namespace=config.namespace,
            plans=sorted(config.catalog),
            cache_ttl=config.cache_ttl,
        )

    @classmethod
    def from_redis(
        cls,
        redis_client,
        config: QuotaConfig,
        plan_provider: Optional[PlanProvider] = None,
        **kwargs,
    ) -> QuotaGuard:
        """Wire the guard to a shared Redis store."""
        from quotaguard.infrastructure.repositories import (
            RedisCounterRepository,
            RedisPlanCacheRepository,
        )

        return cls(
            RedisCounterRepository(redis_client),
            RedisPlanCacheRepository(redis_client),
            config,
            plan_provider=plan_provider,
            **kwargs,
        )

    async def evaluate(self, token: Optional[str], ip_address: str, weight: int = 1) -> QuotaDecision:
        """
        Decide on one request and return the full decision.

        Raises:
            ValueError: If weight is lower than 1
            StoreError: When the shared store fails
            PlanLookupError: When the plan provider fails
        """
        if weight < 1:
            raise ValueError("weight must be >= 1")

        if not token:
            if not self.config.catalog.allows_guests:
                return QuotaDecision.rejected()
            return await self.resolver.resolve_guest(ip_address, weight)
        return await self.resolver.resolve_token(token, ip_address, weight)

    async def check(self, token: Optional[str], ip_address: str, weight: int = 1) -> bool:
        """Return True when the request is denied."""
        decision = await self.evaluate(token, ip_address, weight)
        return decision.denied
