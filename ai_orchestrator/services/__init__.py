"""
Service Layer Module Initialization
"""

from ai_orchestrator.services.rate_limiter import SlidingWindowRateLimiter, RateLimitDecision, WindowLimit
from ai_orchestrator.services.response_cache import ResponseCache, fingerprint
from ai_orchestrator.services.monitoring import MonitoringSink
from ai_orchestrator.services.orchestrator import RequestOrchestrator
from ai_orchestrator.services.batch import BatchDispatcher, summarize_batch
from ai_orchestrator.services.streaming import StreamingConsumer

__all__ = [
    "SlidingWindowRateLimiter",
    "RateLimitDecision",
    "WindowLimit",
    "ResponseCache",
    "fingerprint",
    "MonitoringSink",
    "RequestOrchestrator",
    "BatchDispatcher",
    "summarize_batch",
    "StreamingConsumer",
]
