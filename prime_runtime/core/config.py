"""
Core configuration module for the Prime API runtime.

This module handles all configuration settings using Pydantic Settings
with support for environment variables and a local .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables with the
    PRIME_ prefix (e.g., PRIME_CLIENT_ID=abc).
    """

    # Application
    DEBUG: bool = Field(default=False, description="Enable debug log formatting")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=False, description="Emit JSON log records")

    # Prime API endpoints
    API_URL: str = Field(
        default="https://www.primeeco.tech/api.prime/v2",
        description="Base URL of the Prime REST API"
    )
    OAUTH_URL: str = Field(
        default="https://www.primeeco.tech/api.prime/v2/oauth/token",
        description="OAuth2 token endpoint"
    )
    REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0, description="HTTP request timeout in seconds")

    # OAuth2 password grant credentials
    CLIENT_ID: Optional[str] = Field(default=None, description="OAuth2 client ID")
    CLIENT_SECRET: Optional[str] = Field(default=None, description="OAuth2 client secret")
    USERNAME: Optional[str] = Field(default=None, description="Prime username")
    PASSWORD: Optional[str] = Field(default=None, description="Prime password")
    TOKEN_REFRESH_BUFFER_SECONDS: int = Field(
        default=300,
        description="Refresh the access token this many seconds before it expires"
    )

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = Field(default=60, description="Requests allowed per rolling minute")
    RATE_LIMIT_PER_DAY: int = Field(default=5000, description="Requests allowed per day")
    MAX_CONCURRENT_REQUESTS: int = Field(default=5, description="Maximum requests in flight")
    RATE_LIMIT_TIMEZONE: str = Field(default="UTC", description="Timezone whose midnight resets the daily quota")
    MINUTE_LOW_WATER_MARK: int = Field(default=5, description="Per-minute allowance considered near exhaustion")
    DAY_LOW_WATER_MARK: int = Field(default=100, description="Daily allowance considered near exhaustion")
    STRICT_SLOT_RELEASE: bool = Field(
        default=False,
        description="Raise instead of warning when a concurrency slot is released twice"
    )

    model_config = {
        "env_prefix": "PRIME_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    def missing_credentials(self) -> List[str]:
        """Return the environment variable names of unset OAuth credentials."""
        required = {
            "PRIME_CLIENT_ID": self.CLIENT_ID,
            "PRIME_CLIENT_SECRET": self.CLIENT_SECRET,
            "PRIME_USERNAME": self.USERNAME,
            "PRIME_PASSWORD": self.PASSWORD,
        }
        return [name for name, value in required.items() if not value]

    def require_credentials(self) -> None:
        """Raise ConfigurationError if any OAuth credential is missing."""
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                details={"missing": missing}
            )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings with caching.

    The @lru_cache decorator ensures that this function returns the same
    Settings instance for the lifetime of the application.
    """
    return Settings()
