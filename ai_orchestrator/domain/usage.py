"""
Usage Domain Model

Defines the usage-tracking record reported per completed request and the
per-shop summary computed by the in-memory repository, plus batch-level
aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from ai_orchestrator.common.time import ensure_utc, utc_now
from ai_orchestrator.domain.request import RequestType
from ai_orchestrator.domain.response import TokenUsage


class UsageRecord(BaseModel):
    """Usage Record"""

    # Shop ID
    shop_id: str = Field("", description="Shop ID")
    # Request Type
    request_type: RequestType = Field(..., description="Request Type")
    # Model that served the request
    model: str = Field(..., description="Model")
    # Token Usage
    tokens_used: TokenUsage = Field(default_factory=TokenUsage, description="Token Usage")
    # Cost (USD)
    cost: float = Field(0.0, description="Cost ($)")
    # Latency (ms)
    latency_ms: int = Field(0, description="Latency")
    success: bool = Field(True, description="Success Status")
    timestamp: datetime = Field(default_factory=utc_now, description="Record Time")

    @field_validator("timestamp", mode="after")
    @classmethod
    def _timestamp_utc(cls, v: datetime) -> datetime:
        dt = ensure_utc(v)
        assert dt is not None
        return dt


class UsageSummary(BaseModel):
    """Aggregated usage for one shop"""

    shop_id: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    cost_by_model: dict[str, float] = Field(default_factory=dict)
    cost_by_type: dict[str, float] = Field(default_factory=dict)
    average_latency_ms: float = 0.0
    cost_per_successful_request: float = 0.0
    tokens_per_request: float = 0.0


class BatchSummary(BaseModel):
    """Aggregates over one batch result"""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_cost: float = 0.0
    total_tokens: int = 0
    average_latency_ms: float = 0.0
    success_rate: float = 0.0
    # Failure count per error code
    errors_by_code: dict[str, int] = Field(default_factory=dict)
