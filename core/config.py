"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Provides type-safe access to configuration values
- Converts comma-separated strings to lists (endpoint variants, CORS origins)
- Handles optional settings with sensible defaults

Usage:
    from core.config import settings

    print(settings.injective_api_url)
    print(settings.markets_endpoints_list)  # Returns a list of path variants
"""

from typing import Dict, List, Optional
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        injective_api_url: Base URL for the Injective exchange REST API
        injective_api_timeout: Per-attempt HTTP timeout in seconds
        injective_api_cache_ttl: TTL for cached upstream responses in seconds
        injective_api_rate_limit_per_minute: Outbound budget per logical endpoint
        enable_api_metrics: Record call outcomes for the /metrics endpoint
        api_metrics_max_entries: Maximum retained call outcomes
        cache_ttl: TTL for computed market summaries in seconds
        cache_max_entries: Optional cap on cache entries (0 = unbounded)
        markets_endpoints: Comma-separated path variants for the market listing
        orderbook_endpoints: Comma-separated path variants for order books
        trades_endpoints: Comma-separated path variants for trades
        app_host: Host address for FastAPI server
        app_port: Port number for FastAPI server
        environment: Current environment (development, production)
        log_level: Logging level
        cors_origins: Comma-separated list of allowed CORS origins
    """

    # ============================================
    # Injective API Configuration
    # ============================================

    injective_api_url: str = Field(
        default="https://api.injective.exchange",
        description="Injective exchange REST API base URL"
    )

    injective_api_timeout: float = Field(
        default=10.0,
        description="Timeout for a single upstream request attempt (seconds)"
    )

    injective_api_cache_ttl: float = Field(
        default=5.0,
        description="Cache TTL for upstream responses (seconds)"
    )

    injective_api_rate_limit_per_minute: int = Field(
        default=60,
        description="Maximum outbound requests per minute, per logical endpoint"
    )

    enable_api_metrics: bool = Field(
        default=True,
        description="Track upstream call outcomes"
    )

    api_metrics_max_entries: int = Field(
        default=10_000,
        description="Number of call outcomes retained for telemetry"
    )

    # ============================================
    # Endpoint Variants
    # ============================================

    markets_endpoints: str = Field(
        default="/api/exchange/v1/markets,/markets,/api/v1/markets",
        description="Comma-separated path variants for the market listing, tried in order"
    )

    orderbook_endpoints: str = Field(
        default="/api/exchange/v1/orderbooks,/orderbook,/api/v1/orderbook",
        description="Comma-separated path variants for order books, tried in order"
    )

    trades_endpoints: str = Field(
        default="/api/exchange/v1/trades,/trades,/api/v1/trades",
        description="Comma-separated path variants for trades, tried in order"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI server port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # ============================================
    # Caching Configuration
    # ============================================

    cache_ttl: float = Field(
        default=10.0,
        description="Cache TTL for computed market summaries (seconds)"
    )

    cache_max_entries: int = Field(
        default=0,
        description="Maximum entries per cache (0 = unbounded, expiry-only)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    # ============================================
    # Derived Properties
    # ============================================

    @staticmethod
    def _split_paths(value: str) -> List[str]:
        return [p.strip() for p in value.split(",") if p.strip()]

    @property
    def markets_endpoints_list(self) -> List[str]:
        """
        Convert the comma-separated market path variants to a list.

        Example:
            >>> settings.markets_endpoints_list
            ['/api/exchange/v1/markets', '/markets', '/api/v1/markets']
        """
        return self._split_paths(self.markets_endpoints)

    @property
    def orderbook_endpoints_list(self) -> List[str]:
        return self._split_paths(self.orderbook_endpoints)

    @property
    def trades_endpoints_list(self) -> List[str]:
        return self._split_paths(self.trades_endpoints)

    @property
    def endpoint_variants(self) -> Dict[str, List[str]]:
        """
        Path variants keyed by logical resource, as consumed by InjectiveAPIClient.
        """
        return {
            "markets": self.markets_endpoints_list,
            "orderbook": self.orderbook_endpoints_list,
            "trades": self.trades_endpoints_list,
        }

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['http://localhost:3000', 'http://localhost:5173']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def cache_bound(self) -> Optional[int]:
        """Cache entry cap, or None when caches are expiry-only."""
        return self.cache_max_entries if self.cache_max_entries > 0 else None


# ============================================
# Global Settings Instance
# ============================================

# Loaded once at import; runtime objects are built from it in core.context
settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Optional[Settings] = None) -> None:
    """
    Validate critical configuration settings on application startup.

    Args:
        config: Settings to validate (defaults to the global settings)

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Imported here to avoid a circular import (logging.py imports config.py)
    from core.logging import logger

    config = config or settings

    parsed = urlparse(config.injective_api_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(
            f"Invalid INJECTIVE_API_URL: '{config.injective_api_url}'. "
            f"Must be an absolute http(s) URL"
        )

    if config.injective_api_timeout <= 0:
        raise ValueError(f"INJECTIVE_API_TIMEOUT must be positive, got {config.injective_api_timeout}")

    if config.injective_api_cache_ttl <= 0 or config.cache_ttl <= 0:
        raise ValueError("Cache TTLs must be positive")

    if config.injective_api_rate_limit_per_minute < 1:
        raise ValueError(
            f"INJECTIVE_API_RATE_LIMIT_PER_MINUTE must be at least 1, "
            f"got {config.injective_api_rate_limit_per_minute}"
        )

    if config.api_metrics_max_entries < 1:
        raise ValueError("API_METRICS_MAX_ENTRIES must be at least 1")

    if config.cache_max_entries < 0:
        raise ValueError("CACHE_MAX_ENTRIES cannot be negative")

    for resource, variants in config.endpoint_variants.items():
        if not variants:
            raise ValueError(f"At least one endpoint variant is required for '{resource}'")
        for path in variants:
            if not path.startswith("/"):
                raise ValueError(f"Endpoint variant '{path}' for '{resource}' must start with '/'")

    if not (1 <= config.app_port <= 65535):
        raise ValueError(f"Invalid port number: {config.app_port}. Must be between 1 and 65535")

    if config.log_level.upper() not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Injective API: {config.injective_api_url} (timeout={config.injective_api_timeout}s)")
    logger.info(f"Rate limit: {config.injective_api_rate_limit_per_minute} req/min per endpoint")
    logger.info(f"Server: {config.app_host}:{config.app_port}")
    logger.info(f"Log level: {config.log_level.upper()}")
