"""
Configuration for the watchlist service.

All settings come from environment variables (a local .env file is loaded
at startup). Every value has a default suitable for local development.
"""

import os
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

PRODUCTION = "production"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings.
    
    Attributes:
        environment: Deployment environment (development, production)
        enable_auth: Require a registered API key to identify requesters
        rate_limit_read: Read requests allowed per window
        rate_limit_write: Write requests allowed per window, per action
        rate_limit_window_seconds: Length of one rate-limit window
        rate_limit_cleanup_seconds: Interval between expired-window purges
        coingecko_api_key: CoinGecko Pro API key (optional)
        coingecko_base_url: Override for the CoinGecko API base URL
        coingecko_timeout_seconds: HTTP timeout for market-data calls
        log_level: Root logging level
    """
    environment: str = "development"
    enable_auth: bool = False
    rate_limit_read: int = 300
    rate_limit_write: int = 60
    rate_limit_window_seconds: int = 60
    rate_limit_cleanup_seconds: int = 60
    coingecko_api_key: Optional[str] = None
    coingecko_base_url: Optional[str] = None
    coingecko_timeout_seconds: float = 10.0
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION

    @property
    def expose_error_details(self) -> bool:
        """Attach internal error messages to responses outside production."""
        return not self.is_production

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            environment=os.getenv("COINWATCH_ENV", "development").lower(),
            enable_auth=_env_bool("ENABLE_AUTH", "false"),
            rate_limit_read=int(os.getenv("RATE_LIMIT_READ", "300")),
            rate_limit_write=int(os.getenv("RATE_LIMIT_WRITE", "60")),
            rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60")),
            rate_limit_cleanup_seconds=int(os.getenv("RATE_LIMIT_CLEANUP_SECONDS", "60")),
            coingecko_api_key=os.getenv("COINGECKO_PRO_API_KEY") or None,
            coingecko_base_url=os.getenv("COINGECKO_BASE_URL") or None,
            coingecko_timeout_seconds=float(os.getenv("COINGECKO_TIMEOUT_SECONDS", "10")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings.from_env()


def configure_logging(settings: Settings):
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.debug(f"Logging configured at {settings.log_level}")
