"""
Domain model module initialization
"""

from ai_orchestrator.domain.request import (
    AIRequest,
    GenerationParameters,
    OutputFormat,
    RequestContext,
    RequestStatus,
    RequestType,
    ResourceType,
    SubmittedRequest,
)
from ai_orchestrator.domain.response import (
    AIResponse,
    ErrorInfo,
    ErrorType,
    QualityMetrics,
    ResultKind,
    ResultPayload,
    TokenUsage,
)
from ai_orchestrator.domain.monitoring import (
    AlertSeverity,
    AlertType,
    CacheStats,
    MetricsSnapshot,
    MonitoringAlert,
    MonitoringSample,
    ResourceUsage,
)
from ai_orchestrator.domain.usage import BatchSummary, UsageRecord, UsageSummary

__all__ = [
    "AIRequest",
    "GenerationParameters",
    "OutputFormat",
    "RequestContext",
    "RequestStatus",
    "RequestType",
    "ResourceType",
    "SubmittedRequest",
    "AIResponse",
    "ErrorInfo",
    "ErrorType",
    "QualityMetrics",
    "ResultKind",
    "ResultPayload",
    "TokenUsage",
    "AlertSeverity",
    "AlertType",
    "CacheStats",
    "MetricsSnapshot",
    "MonitoringAlert",
    "MonitoringSample",
    "ResourceUsage",
    "BatchSummary",
    "UsageRecord",
    "UsageSummary",
]
