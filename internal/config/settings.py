"""
Configurator service settings.

Configuration loaded from environment variables and `.env`.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from internal.domain.catalog import MarketType


class Settings(BaseSettings):
    """Configurator service configuration."""

    # Upstream catalog API
    catalog_api_url: str = "https://dev.api.inspireforge.ru/api"
    catalog_api_token: Optional[str] = None
    catalog_api_timeout_seconds: float = 10.0

    # Circuit breaker
    circuit_failure_threshold: int = 5
    circuit_recovery_timeout_seconds: float = 30.0

    # Redis cache, empty URL disables caching
    redis_url: str = ""
    catalog_cache_ttl_seconds: int = 300

    # Coefficient names per market type
    primary_market_coefficient_name: str = "Первичный рынок"
    secondary_market_coefficient_name: str = "Вторичный рынок"

    # Sessions
    session_ttl_seconds: int = 3600

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "*"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def market_coefficient_names(self) -> dict[MarketType, str]:
        """
        Get the coefficient name used for each market type.

        Returns:
            Mapping of market type to coefficient name.
        """
        return {
            MarketType.PRIMARY: self.primary_market_coefficient_name,
            MarketType.SECONDARY: self.secondary_market_coefficient_name,
        }

    def get_cors_origins(self) -> List[str]:
        """Parse comma-separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance.
    """
    return Settings()
