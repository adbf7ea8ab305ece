from __future__ import annotations

"""Centralized, structured exception hierarchy for quotaguard.

Each exception carries a machine-readable `code` for programmatic handling and
a human-readable `message` for logging and API responses.

Only two failure families ever reach a caller of the quota guard:

- `StoreError`: the shared counter store (Redis) failed a command or script.
- `PlanLookupError`: the external plan provider failed to resolve a token.

Stale plan names and clock regressions are recovered locally and never raised.
"""

from typing import Final

__all__: Final = [
    "QuotaGuardError",
    "ConfigurationError",
    "StoreError",
    "PlanLookupError",
    "RateLimitExceededError",
]


class QuotaGuardError(Exception):
    """Base exception class for all custom errors in quotaguard.

    Attributes:
        message (str): A human-readable error message, suitable for logging.
        code (str): A unique, machine-readable error code.
    """

    message: str
    code: str = "generic_error"

    def __init__(self, message: str, code: str = "generic_error"):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (raised at load time, never during a check)
# ---------------------------------------------------------------------------


class ConfigurationError(QuotaGuardError, ValueError):
    """Raised when plan or tier configuration is invalid."""

    def __init__(self, message: str, code: str = "configuration_error"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Collaborator failures (typically map to 503 Service Unavailable)
# ---------------------------------------------------------------------------


class StoreError(QuotaGuardError):
    """Raised when a get/set/delete/expire or the counter script fails.

    No fallback and no retry is attempted; callers needing resilience must
    retry at their own boundary.
    """

    def __init__(self, message: str, code: str = "store_error"):
        super().__init__(message, code)


class PlanLookupError(QuotaGuardError):
    """Raised when the external plan provider fails to resolve a token."""

    def __init__(self, message: str, code: str = "plan_lookup_error"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Operational errors (map to 429 Too Many Requests)
# ---------------------------------------------------------------------------


class RateLimitExceededError(QuotaGuardError):
    """Raised by the HTTP layer when a request is denied by its quota."""

    def __init__(self, message: str = "Rate limit exceeded. Try again later.", code: str = "rate_limit_exceeded"):
        super().__init__(message, code)
