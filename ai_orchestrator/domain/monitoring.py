"""
Monitoring Domain Model

Defines monitoring samples, alerts, aggregates and cache statistics
exposed through the monitoring read API.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ai_orchestrator.common.time import utc_now


class AlertType(str, Enum):
    PERFORMANCE = "performance"
    COST = "cost"
    QUALITY = "quality"
    RATE_LIMIT = "rate_limit"
    ERROR = "error"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class MonitoringAlert(BaseModel):
    """Threshold violation attached to a monitoring sample"""

    type: AlertType
    severity: AlertSeverity
    message: str
    threshold: float
    actual_value: float
    timestamp: datetime = Field(default_factory=utc_now)


class ResourceUsage(BaseModel):
    """Process resource usage snapshot"""

    memory_mb: float = 0.0
    cpu_percent: float = 0.0


class MonitoringSample(BaseModel):
    """One record per completed request"""

    timestamp: datetime = Field(default_factory=utc_now)
    shop_id: str = ""
    request_id: Optional[str] = None
    # Response time (ms)
    response_time_ms: float = 0.0
    # Queue time (ms)
    queue_time_ms: float = 0.0
    tokens_per_second: float = 0.0
    # Mean of the quality scores (0.8 when quality monitoring is off)
    average_quality: float = 0.0
    success: bool = True
    error_code: Optional[str] = None
    resource_usage: ResourceUsage = Field(default_factory=ResourceUsage)
    cost: float = 0.0
    cost_per_hour: float = 0.0
    cost_per_token: float = 0.0
    alerts: list[MonitoringAlert] = Field(default_factory=list)

    @property
    def error_rate(self) -> float:
        return 0.0 if self.success else 1.0


class MetricsSnapshot(BaseModel):
    """Rolling aggregate over the most recent samples"""

    timestamp: datetime = Field(default_factory=utc_now)
    request_count: int = 0
    avg_response_time_ms: float = 0.0
    avg_cost_per_hour: float = 0.0
    avg_quality: float = 0.0
    error_rate: float = 0.0
    total_cost: float = 0.0


class CacheStats(BaseModel):
    """Response cache statistics"""

    size: int = 0
    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
