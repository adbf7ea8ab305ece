"""
Application-specific settings.
"""
from pydantic import Field
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Defines process-wide settings like project name, environment and logging.

    Performance Note:
        - Keep LOG_LEVEL at INFO or above in production: every quota check
          emits debug events.
    """
    PROJECT_NAME: str = "quotaguard"
    VERSION: str = "0.1.0"
    APP_ENV: str = Field(
        default="development",
        pattern="^(development|test|staging|production)$",
    )

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
