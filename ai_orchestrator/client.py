"""
AI Client Module

Facade owning every orchestration component for one client instance.
"""

import logging
import time
from typing import Any, AsyncGenerator, Callable, Optional

from ai_orchestrator.config import Settings, get_settings
from ai_orchestrator.domain.monitoring import CacheStats, MetricsSnapshot, MonitoringSample
from ai_orchestrator.domain.request import AIRequest
from ai_orchestrator.domain.response import AIResponse
from ai_orchestrator.providers.anthropic_client import AnthropicClient
from ai_orchestrator.providers.base import ProviderTransport
from ai_orchestrator.repositories.usage_repo import LoggingUsageRepository, UsageRepository
from ai_orchestrator.scheduler import MaintenanceScheduler
from ai_orchestrator.services.batch import BatchDispatcher
from ai_orchestrator.services.monitoring import MonitoringSink
from ai_orchestrator.services.orchestrator import RequestOrchestrator
from ai_orchestrator.services.rate_limiter import SlidingWindowRateLimiter, windows_from_settings
from ai_orchestrator.services.response_cache import ResponseCache
from ai_orchestrator.services.streaming import StreamingConsumer

logger = logging.getLogger(__name__)


class AIClient:
    """
    AI Request Orchestration Client

    Example:
        async with AIClient(settings) as client:
            response = await client.make_request(request)
            async for partial in client.stream_request(request):
                ...
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[ProviderTransport] = None,
        usage_repo: Optional[UsageRepository] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize client

        Args:
            settings: Client configuration (defaults to get_settings())
            transport: Provider transport (defaults to AnthropicClient)
            usage_repo: Usage-tracking sink (defaults to LoggingUsageRepository)
            clock: Wall clock for rate limit windows and cache expiry
        """
        self._settings = settings or get_settings()
        self._owns_transport = transport is None
        self.transport = transport or AnthropicClient(self._settings)
        self.usage_repo = usage_repo or LoggingUsageRepository()

        self.rate_limiter = SlidingWindowRateLimiter.from_settings(self._settings, clock=clock)
        self.cache = ResponseCache(ttl_seconds=self._settings.CACHE_TTL_SECONDS, clock=clock)
        self.monitoring = MonitoringSink.from_settings(self._settings)

        self.orchestrator = RequestOrchestrator(
            settings=self._settings,
            transport=self.transport,
            rate_limiter=self.rate_limiter,
            cache=self.cache,
            monitoring=self.monitoring,
            usage_repo=self.usage_repo,
        )
        self.batch = BatchDispatcher(self.orchestrator)
        self.streaming = StreamingConsumer(self.orchestrator)
        self.scheduler = MaintenanceScheduler(
            self._settings, self.rate_limiter, self.cache, self.monitoring
        )

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def make_request(self, request: AIRequest) -> AIResponse:
        return await self.orchestrator.execute(request)

    async def make_batch_request(self, requests: list[AIRequest]) -> list[AIResponse]:
        return await self.batch.run_batch(requests)

    def stream_request(self, request: AIRequest) -> AsyncGenerator[AIResponse, None]:
        return self.streaming.stream(request)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Response cache cleared")

    def get_monitoring_data(self) -> list[MonitoringSample]:
        return self.monitoring.samples()

    def get_metrics_snapshot(self) -> Optional[MetricsSnapshot]:
        return self.monitoring.aggregate()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_config(self) -> Settings:
        return self._settings.model_copy(deep=True)

    def update_config(self, **changes: Any) -> Settings:
        """
        Apply configuration changes to every component

        Raises:
            pydantic.ValidationError: A changed value does not validate
        """
        settings = Settings.model_validate({**self._settings.model_dump(), **changes})
        self._settings = settings

        if self._owns_transport:
            # Calls already in flight keep their own httpx client
            self.transport = AnthropicClient(settings)
            self.orchestrator.transport = self.transport
        self.rate_limiter.configure(windows_from_settings(settings))
        self.monitoring.apply_settings(settings)
        self.orchestrator.apply_settings(settings)
        self.scheduler.restart(settings)

        logger.info("Client configuration updated: %s", ", ".join(sorted(changes)))
        return self.get_config()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start background maintenance (requires a running event loop)"""
        self.scheduler.start()

    async def shutdown(self) -> None:
        self.scheduler.shutdown()
        await self.transport.close()

    async def __aenter__(self) -> "AIClient":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
