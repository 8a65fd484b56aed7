"""
Test Configuration Module
"""

from typing import Any, AsyncGenerator, Optional, Union

import pytest

from ai_orchestrator.config import Settings
from ai_orchestrator.providers.base import ProviderResponse, ProviderTransport
from ai_orchestrator.repositories.usage_repo import InMemoryUsageRepository
from ai_orchestrator.services.monitoring import MonitoringSink
from ai_orchestrator.services.orchestrator import RequestOrchestrator
from ai_orchestrator.services.rate_limiter import SlidingWindowRateLimiter
from ai_orchestrator.services.response_cache import ResponseCache


class FakeClock:
    """Manually advanced wall clock"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Scripted = Union[ProviderResponse, BaseException]


class FakeTransport(ProviderTransport):
    """
    Scripted provider transport

    Unary calls consume `responses` in order (exceptions are raised);
    streaming calls replay `chunks` with `stream_response` attached.
    """

    def __init__(
        self,
        responses: Optional[list[Scripted]] = None,
        chunks: Optional[list[bytes]] = None,
        stream_response: Optional[ProviderResponse] = None,
    ):
        self.responses = list(responses or [])
        self.chunks = list(chunks or [])
        self.stream_response = stream_response or ProviderResponse(status_code=200)
        self.bodies: list[dict[str, Any]] = []
        self.stream_opened = 0
        self.stream_closed = 0
        self.closed = False

    async def forward(self, body: dict[str, Any]) -> ProviderResponse:
        self.bodies.append(body)
        if not self.responses:
            raise AssertionError("No scripted provider response left")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def stream(
        self, body: dict[str, Any]
    ) -> AsyncGenerator[tuple[bytes, ProviderResponse], None]:
        self.bodies.append(body)
        self.stream_opened += 1
        try:
            for chunk in self.chunks:
                yield chunk, self.stream_response
        finally:
            self.stream_closed += 1

    async def close(self) -> None:
        self.closed = True


def message_response(
    text: str = "Hello world",
    input_tokens: int = 10,
    output_tokens: int = 5,
    model: str = "claude-3-sonnet",
) -> ProviderResponse:
    return ProviderResponse(
        status_code=200,
        body={
            "id": "msg_test",
            "type": "message",
            "model": model,
            "content": [{"type": "text", "text": text}],
            "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
        },
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ANTHROPIC_API_KEY="sk-test",
        FEATURE_BATCH_PROCESSING=True,
        BATCH_PACING_SECONDS=0,
        RETRY_DELAY_MS=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def usage_repo() -> InMemoryUsageRepository:
    return InMemoryUsageRepository()


@pytest.fixture
def make_message():
    return message_response


@pytest.fixture
def orchestrator(settings, transport, usage_repo, clock) -> RequestOrchestrator:
    async def no_sleep(_seconds: float) -> None:
        return None

    return RequestOrchestrator(
        settings=settings,
        transport=transport,
        rate_limiter=SlidingWindowRateLimiter.from_settings(settings, clock=clock),
        cache=ResponseCache(ttl_seconds=settings.CACHE_TTL_SECONDS, clock=clock),
        monitoring=MonitoringSink.from_settings(settings),
        usage_repo=usage_repo,
        sleep=no_sleep,
    )
