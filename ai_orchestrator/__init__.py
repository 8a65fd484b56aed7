"""
AI Request Orchestrator

Client-side orchestration of calls to a remote language-model API: rate
limiting, response caching, batching, streaming, cost and quality scoring.
"""

from ai_orchestrator.client import AIClient
from ai_orchestrator.common.errors import (
    ApiError,
    FeatureDisabledError,
    InvalidRequestError,
    OrchestratorError,
    RateLimitError,
    RequestTimeoutError,
    ServiceError,
)
from ai_orchestrator.config import Settings, get_settings
from ai_orchestrator.domain import (
    AIRequest,
    AIResponse,
    GenerationParameters,
    OutputFormat,
    RequestContext,
    RequestType,
    ResourceType,
)
from ai_orchestrator.logging_config import setup_logging

__version__ = "0.1.0"

__all__ = [
    "AIClient",
    "ApiError",
    "FeatureDisabledError",
    "InvalidRequestError",
    "OrchestratorError",
    "RateLimitError",
    "RequestTimeoutError",
    "ServiceError",
    "Settings",
    "get_settings",
    "setup_logging",
    "AIRequest",
    "AIResponse",
    "GenerationParameters",
    "OutputFormat",
    "RequestContext",
    "RequestType",
    "ResourceType",
]
