"""
Quota guard settings.
"""
from typing import Any, Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import logging

from quotaguard.domain.rate_limiting.value_objects import PlanCatalog

logger = logging.getLogger(__name__)


class RateLimitSettings(BaseSettings):
    """
    Defines the plans and caching behaviour of the quota guard.

    RATE_LIMIT_PLANS is read from the environment as JSON, for example::

        RATE_LIMIT_PLANS='{"free": {"limits": [[1, 5], [86400, 20000, 3600]]}}'

    Each limit is ``[duration, threshold]`` or ``[duration, threshold, precision]``
    in seconds. Without a ``free`` plan, requests lacking a usable token are denied.
    """
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_NAMESPACE: str = ""
    RATE_LIMIT_CACHE_INVALIDATE_TTL: int = Field(
        default=3600,
        description="Seconds a token's plan stays cached; 0 or less disables caching",
    )
    RATE_LIMIT_PLANS: Dict[str, Any] = Field(default_factory=dict)
    RATE_LIMIT_NAMESPACE_GUEST_KEYS: bool = Field(
        default=False,
        description="Prefix guest (IP) counter keys with the namespace",
    )
    RATE_LIMIT_TOKEN_HEADER: str = "X-API-Key"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("RATE_LIMIT_PLANS")
    @classmethod
    def validate_plans(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validates the plan definitions by building a catalog from them.

        Raises:
            ValueError: If a plan or tier definition is invalid.
        """
        catalog = PlanCatalog.from_config(value)
        if not catalog.allows_guests:
            logger.warning("No 'free' plan configured: guest requests will be denied.")
        return value
