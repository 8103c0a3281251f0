"""
PulseFeed Configuration System
==============================

Typed settings for the poller, duplicate gate, news store and API.
Values come from ``PULSEFEED_*`` environment variables (nested sections use
``__``, e.g. ``PULSEFEED_REDIS__URL``), then ``.env``, then field defaults.
"""

import os
from pathlib import Path
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Accepted log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class PollingSettings(BaseModel):
    """Feed polling configuration."""
    interval_seconds: int = Field(default=60, ge=10, le=3600, description="Seconds between poll cycles")
    max_items_per_source: int = Field(default=5, ge=1, le=50, description="Most recent entries taken from each feed")
    source_delay_ms: int = Field(default=500, ge=0, le=10000, description="Pause between consecutive feeds of one vertical")
    ticker_max_items: int = Field(default=10, ge=1, le=50, description="Entries taken from each ticker feed")


class LimitsSettings(BaseModel):
    """Timeouts for upstream calls."""
    request_timeout: int = Field(default=30, ge=1, le=300, description="Feed request timeout in seconds")
    max_connections: int = Field(default=20, ge=1, le=200, description="Connection pool size for feed fetching")


class DedupSettings(BaseModel):
    """Duplicate gate configuration."""
    cache_capacity: int = Field(default=1000, ge=10, le=100000, description="In-memory LRU capacity")
    ttl_seconds: int = Field(default=86400, ge=60, description="Lifetime of durable dedup records")
    key_prefix: str = Field(default="news:", description="Durable key prefix")


class RedisSettings(BaseModel):
    """Durable key-value store connection."""
    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    password: Optional[str] = Field(default=None, description="Redis password (enables TLS)")
    db: int = Field(default=0, ge=0, description="Redis database index")
    socket_timeout: float = Field(default=5.0, gt=0, description="Socket timeout in seconds")

    @property
    def url(self) -> str:
        """Connection URL; password-protected instances are reached over TLS."""
        if self.password:
            return f"rediss://default:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class DatabaseSettings(BaseModel):
    """News store location and pool size."""
    path: str = Field(default="data/pulsefeed.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class RetrievalSettings(BaseModel):
    """Article retrieval configuration."""
    default_limit: int = Field(default=20, ge=1, le=200, description="Items returned when no limit is given")
    max_limit: int = Field(default=100, ge=1, le=500, description="Upper bound on requested limit")
    overfetch_factor: int = Field(default=3, ge=1, le=10, description="Rows fetched per returned item before shuffling")
    anonymous_delay_minutes: int = Field(default=15, ge=0, le=1440, description="Delay applied when no user is identified")


class TierSettings(BaseModel):
    """Entitlement lookup configuration."""
    entitlement_url: Optional[str] = Field(default=None, description="Base URL of the entitlement service")
    entitlement_api_key: Optional[str] = Field(default=None, description="Bearer token for the entitlement service")
    premium_user_ids: List[str] = Field(default_factory=list, description="Users always treated as premium")
    pro_user_ids: List[str] = Field(default_factory=list, description="Users always treated as pro")
    free_delay_ms: int = Field(default=15 * 60 * 1000, ge=0, description="Delivery delay for the free tier")
    lookup_timeout: float = Field(default=5.0, gt=0, description="Entitlement request timeout in seconds")


class EnrichmentSettings(BaseModel):
    """Background analysis sweep configuration."""
    enabled: bool = Field(default=True, description="Run the enrichment sweep")
    sweep_interval_seconds: int = Field(default=30, ge=5, le=3600, description="Seconds between sweeps")
    batch_size: int = Field(default=10, ge=1, le=100, description="Items analysed per sweep")
    call_delay_ms: int = Field(default=200, ge=0, le=10000, description="Pause between analysis calls")
    call_timeout: float = Field(default=30.0, gt=0, description="Timeout for one analysis call in seconds")
    process_backlog: bool = Field(default=False, description="Also analyse items nobody requested")


class AISettings(BaseModel):
    """Analysis provider configuration."""
    groq_api_key: Optional[str] = Field(default=None, description="Groq API key")
    groq_model: str = Field(default="llama-3.1-8b-instant", description="Groq model")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="AI temperature setting")
    max_tokens: int = Field(default=600, ge=50, le=4000, description="Maximum tokens per response")
    daily_request_limit: int = Field(default=14000, ge=1, description="Requests allowed per UTC day")
    max_content_length: int = Field(default=1000, ge=200, le=20000, description="Article characters included in the analysis prompt")


class LoggingSettings(BaseModel):
    """Log level, destinations and rotation."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/pulsefeed.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class APISettings(BaseModel):
    """HTTP server configuration."""
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3001, ge=1, le=65535, description="Bind port")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    @field_validator("cors_origins")
    @classmethod
    def validate_origins(cls, v):
        """Drop blank origins."""
        return [origin.strip() for origin in v if origin and origin.strip()]


class PulseFeedSettings(BaseSettings):
    """Root settings object, one section per subsystem."""

    polling: PollingSettings = Field(default_factory=PollingSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    dedup: DedupSettings = Field(default_factory=DedupSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    tiers: TierSettings = Field(default_factory=TierSettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    ai: AISettings = Field(default_factory=AISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: APISettings = Field(default_factory=APISettings)

    app_name: str = Field(default="PulseFeed", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "PULSEFEED_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Check cross-field constraints and create data directories."""
        errors = []

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if self.retrieval.default_limit > self.retrieval.max_limit:
            errors.append("retrieval.default_limit exceeds retrieval.max_limit")

        overlap = set(self.tiers.premium_user_ids) & set(self.tiers.pro_user_ids)
        if overlap:
            errors.append(f"Users listed as both premium and pro: {sorted(overlap)}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def ai_enabled(self) -> bool:
        """Check if an analysis provider is configured."""
        return bool(self.ai.groq_api_key)

    def is_production_mode(self) -> bool:
        """True when ENV=production and debug is off."""
        return not self.debug and os.getenv("ENV", "development").lower() == "production"

    def get_effective_log_level(self) -> str:
        """Debug mode forces DEBUG regardless of the configured level."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> PulseFeedSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = PulseFeedSettings()
    except ValueError as e:
        raise ConfigurationError(f"Invalid settings: {e}", error_code=ErrorCode.CONFIG_INVALID) from e

    settings.validate_configuration()
    return settings


_settings: Optional[PulseFeedSettings] = None


def get_settings(reload: bool = False) -> PulseFeedSettings:
    """Return the cached settings, loading them on first use.

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
