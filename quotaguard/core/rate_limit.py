from __future__ import annotations

"""Quota enforcement dependency for FastAPI routes.

The dependency identifies the caller by its API token header (falling back to
the client IP), asks the process-wide `QuotaGuard` for a decision and raises
`RateLimitExceededError` when the request is denied.

Store and plan-lookup failures are not caught here: the request fails closed
and `quotaguard.core.handlers` turns them into a 503.
"""

from typing import Optional

from fastapi import Depends, Request
from structlog import get_logger

from quotaguard.core.config.settings import settings
from quotaguard.core.exceptions import RateLimitExceededError
from quotaguard.domain.rate_limiting import PlanProvider, QuotaDecision, QuotaGuard
from quotaguard.infrastructure.redis import create_redis_client

logger = get_logger(__name__)

_guard: Optional[QuotaGuard] = None
_plan_provider: Optional[PlanProvider] = None


def configure_plan_provider(provider: Optional[PlanProvider]) -> None:
    """Install the token-to-plan lookup used by the shared guard.

    The guard is rebuilt on next use so the new provider takes effect.
    """
    global _guard, _plan_provider
    _plan_provider = provider
    _guard = None


def get_quota_guard() -> QuotaGuard:
    """Return the process-wide guard, wired to the shared Redis store."""
    global _guard
    if _guard is None:
        _guard = QuotaGuard.from_redis(
            create_redis_client(),
            settings.quota_config(),
            plan_provider=_plan_provider,
        )
    return _guard


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def enforce_quota(
    request: Request,
    guard: QuotaGuard = Depends(get_quota_guard),
) -> Optional[QuotaDecision]:
    """FastAPI dependency consuming one unit of the caller's quota.

    Returns:
        The decision, or None when rate limiting is disabled.

    Raises:
        RateLimitExceededError: When the caller's quota is exhausted.
    """
    if not settings.RATE_LIMIT_ENABLED:
        return None

    token = request.headers.get(settings.RATE_LIMIT_TOKEN_HEADER) or None
    ip_address = _client_ip(request)

    decision = await guard.evaluate(token, ip_address)
    if decision.denied:
        logger.warning(
            "rate_limit_exceeded",
            path=decision.path.value,
            plan=decision.plan,
            ip=ip_address,
            endpoint=request.url.path,
        )
        raise RateLimitExceededError()
    return decision
