"""
Configuration Management Module

Configures the orchestration client via environment variables or .env file.
Embedding applications may also construct Settings directly.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Client Configuration Class

    All configuration items can be overridden by environment variables, with names matching fields (uppercase).
    """

    # Application Config
    APP_NAME: str = "AI Request Orchestrator"
    DEBUG: bool = False

    # Provider Config
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com"
    # Sent as the anthropic-version header
    ANTHROPIC_VERSION: str = "2023-06-01"
    # Request timeout (seconds), enforced by the transport only
    HTTP_TIMEOUT: int = 120
    USER_AGENT: str = "SEO-Automation/1.0.0"

    # Default Generation Parameters
    DEFAULT_MODEL: str = "claude-3-sonnet"
    DEFAULT_TEMPERATURE: float = 0.7
    DEFAULT_MAX_TOKENS: int = 1024

    # Rate Limit Config
    RATE_LIMIT_REQUESTS_PER_MINUTE: int = 50
    RATE_LIMIT_REQUESTS_PER_HOUR: int = 1000
    RATE_LIMIT_TOKENS_PER_MINUTE: int = 40000
    # Advisory only: feeds the cost-per-hour monitoring alert
    RATE_LIMIT_COST_PER_HOUR: float = 10.0
    # Background pruning interval for rate limit windows (seconds)
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: int = 30

    # Cost Limits (USD)
    COST_LIMIT_DAILY: float = 50.0
    COST_LIMIT_MONTHLY: float = 1000.0
    COST_LIMIT_PER_REQUEST: float = 1.0

    # Quality Thresholds (0-1)
    QUALITY_THRESHOLD_MINIMUM: float = 0.5
    QUALITY_THRESHOLD_WARNING: float = 0.7
    QUALITY_THRESHOLD_EXCELLENT: float = 0.9

    # Retry Config
    # Total transport attempts per request (1 disables retries)
    RETRY_MAX_ATTEMPTS: int = 3
    # Initial retry interval (ms)
    RETRY_DELAY_MS: int = 1000
    RETRY_BACKOFF_MULTIPLIER: float = 2.0
    RETRY_MAX_BACKOFF_SECONDS: float = 30.0

    # Feature Flags
    FEATURE_BATCH_PROCESSING: bool = False
    FEATURE_CACHING: bool = True
    FEATURE_ANALYTICS: bool = True
    FEATURE_QUALITY_MONITORING: bool = True

    # Cache Config
    CACHE_TTL_SECONDS: int = 3600
    CACHE_PURGE_INTERVAL_SECONDS: int = 300

    # Batch Config
    # Upper bound for the slice size; the effective size is min(rpm // 2, this)
    BATCH_MAX_SLICE_SIZE: int = 5
    # Delay between slices (seconds)
    BATCH_PACING_SECONDS: float = 1.0

    # Monitoring Config
    MONITORING_MAX_SAMPLES: int = 1000
    # Number of most recent samples aggregated by the metrics job
    MONITORING_WINDOW_SIZE: int = 60
    METRICS_INTERVAL_SECONDS: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get client configuration (Singleton)

    Uses lru_cache to ensure configuration is loaded only once.

    Returns:
        Settings: Configuration instance
    """
    return Settings()
