"""
Redis store settings.
"""
from pydantic import Field, field_validator, ValidationInfo, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
import logging

logger = logging.getLogger(__name__)


class RedisSettings(BaseSettings):
    """
    Defines settings for the shared Redis store holding counters and cached plans.

    Security Note:
        - REDIS_PASSWORD should be set outside development, and REDIS_SSL enabled
          when the store is reached over an untrusted network.
    Performance Note:
        - REDIS_SOCKET_TIMEOUT is the only cancellation mechanism for a check;
          when it fires the check fails with a StoreError.
    """
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = Field(ge=1, le=65535, default=6379)
    REDIS_DB: int = Field(ge=0, default=0)
    REDIS_PASSWORD: SecretStr = SecretStr("")
    REDIS_SSL: bool = False
    REDIS_SOCKET_TIMEOUT: float | None = Field(default=None, gt=0)
    REDIS_URL: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("REDIS_URL", mode="before")
    @classmethod
    def assemble_redis_url(cls, v: str | None, info: ValidationInfo) -> str:
        """
        Assembles the Redis connection URL if not provided explicitly.

        Args:
            v: Explicitly provided URL or None.
            info: Validation context with other field values.

        Returns:
            Assembled or provided Redis URL.
        """
        if v:
            return v

        values = info.data
        protocol = "rediss" if values.get("REDIS_SSL") else "redis"
        redis_password = values.get("REDIS_PASSWORD")
        secret = redis_password.get_secret_value() if redis_password else ""
        password = f":{secret}@" if secret else ""

        url = f"{protocol}://{password}{values.get('REDIS_HOST')}:{values.get('REDIS_PORT')}/{values.get('REDIS_DB', 0)}"
        logger.debug("Assembled REDIS_URL (password masked for security).")
        return url
