"""Main settings and configuration management.

This module composes the settings from the different modules (app, redis,
rate limiting) into a single, accessible `Settings` class.

It loads settings from environment variables and .env files, validates them,
and provides a single `settings` object for use throughout the package.

Environment Support:
- Development: Uses .env
- Test: Uses .env.test
- Staging: Uses .env.staging
- Production: Uses .env.production
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from quotaguard.domain.rate_limiting.value_objects import PlanCatalog, QuotaConfig

from .app import AppSettings
from .rate_limiting import RateLimitSettings
from .redis import RedisSettings

logger = logging.getLogger(__name__)


class Settings(AppSettings, RedisSettings, RateLimitSettings):
    """The main settings class that aggregates all configurations.

    Usage:
        - Access settings via the singleton instance `settings`.
        - Hand `settings.quota_config()` to a `QuotaGuard`; the guard never
          reads settings again, so configuration is fixed for its lifetime.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    def quota_config(self) -> QuotaConfig:
        """Build the immutable quota configuration value."""
        return QuotaConfig(
            catalog=PlanCatalog.from_config(self.RATE_LIMIT_PLANS),
            namespace=self.RATE_LIMIT_NAMESPACE,
            cache_ttl=self.RATE_LIMIT_CACHE_INVALIDATE_TTL,
            namespace_guest_keys=self.RATE_LIMIT_NAMESPACE_GUEST_KEYS,
        )


def create_settings() -> Settings:
    """Create settings instance with environment-specific configuration.

    Returns:
        Settings: Configured settings instance
    """
    env = os.getenv("APP_ENV", "development")

    env_files = {
        "development": ".env",
        "test": ".env.test",
        "staging": ".env.staging",
        "production": ".env.production"
    }

    env_file = env_files.get(env, ".env")

    if env != "development" and Path(env_file).exists():
        logger.info(f"Loading environment configuration from {env_file}")
        settings_instance = Settings(_env_file=env_file)
    elif Path(".env").exists():
        logger.info(f"Loading environment configuration from .env (environment: {env})")
        settings_instance = Settings()
    else:
        logger.debug(f"No .env file found, using environment variables only (environment: {env})")
        settings_instance = Settings()

    return settings_instance


# Singleton instance of the settings used across the package.
settings = create_settings()
