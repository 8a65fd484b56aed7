"""
Request Orchestrator Module

Drives one request through validation, rate-limit admission, cache lookup,
provider call (with retry), parsing, cost/quality derivation, caching, usage
tracking and monitoring.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from ai_orchestrator.common.costs import calculate_cost
from ai_orchestrator.common.errors import (
    InvalidRequestError,
    OrchestratorError,
    RateLimitError,
    ServiceError,
    error_from_provider_response,
    normalize_error,
)
from ai_orchestrator.common.quality import assess_quality, calculate_confidence
from ai_orchestrator.common.timer import Timer
from ai_orchestrator.config import Settings
from ai_orchestrator.domain.request import AIRequest, GenerationParameters, SubmittedRequest
from ai_orchestrator.domain.response import (
    AIResponse,
    ErrorType,
    ResultPayload,
    TokenUsage,
)
from ai_orchestrator.domain.usage import UsageRecord
from ai_orchestrator.providers.base import ProviderResponse, ProviderTransport
from ai_orchestrator.repositories.usage_repo import UsageRepository
from ai_orchestrator.services.monitoring import MonitoringSink
from ai_orchestrator.services.prompts import build_system_message, result_kind_for
from ai_orchestrator.services.rate_limiter import SlidingWindowRateLimiter
from ai_orchestrator.services.response_cache import ResponseCache, fingerprint

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 200_000
MAX_OUTPUT_TOKENS = 4096

_RETRYABLE_KINDS = (ErrorType.TIMEOUT, ErrorType.SYSTEM_ERROR)


class RequestOrchestrator:
    """
    Request Orchestrator

    Stages, in fixed order: validate -> rate check -> cache check ->
    (hit: done) | (miss: dispatch -> parse -> cache -> track -> done).
    Any failure is normalized into the error taxonomy before it is raised.
    Cache, usage tracking and monitoring are best-effort.
    """

    def __init__(
        self,
        settings: Settings,
        transport: ProviderTransport,
        rate_limiter: SlidingWindowRateLimiter,
        cache: ResponseCache,
        monitoring: MonitoringSink,
        usage_repo: UsageRepository,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings
        self.transport = transport
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.monitoring = monitoring
        self.usage_repo = usage_repo
        self._sleep = sleep
        # Requests served from cache (not tracked in usage/monitoring)
        self.cache_hits = 0

    def apply_settings(self, settings: Settings) -> None:
        self.settings = settings
        self.cache.ttl_seconds = settings.CACHE_TTL_SECONDS

    # ------------------------------------------------------------------
    # Effective parameters
    # ------------------------------------------------------------------

    def resolve_model(self, request: AIRequest) -> str:
        return request.parameters.model or self.settings.DEFAULT_MODEL

    def resolve_temperature(self, request: AIRequest) -> float:
        temperature = request.parameters.temperature
        return self.settings.DEFAULT_TEMPERATURE if temperature is None else temperature

    def resolve_max_tokens(self, request: AIRequest) -> int:
        max_tokens = request.parameters.max_tokens
        return self.settings.DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens

    def resolve_parameters(self, request: AIRequest) -> GenerationParameters:
        """Parameters with unset model/temperature/max_tokens filled from the current defaults"""
        return request.parameters.model_copy(
            update={
                "model": self.resolve_model(request),
                "temperature": self.resolve_temperature(request),
                "max_tokens": self.resolve_max_tokens(request),
            }
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def validate(self, request: AIRequest) -> None:
        """
        Validate a request

        Raises:
            InvalidRequestError: Empty or too long prompt, max tokens, temperature or top p out of range
        """
        if not request.prompt or not request.prompt.strip():
            raise InvalidRequestError("Prompt is required and cannot be empty")

        if len(request.prompt) > MAX_PROMPT_CHARS:
            raise InvalidRequestError(
                f"Prompt is too long (max {MAX_PROMPT_CHARS:,} characters)",
                details={"length": len(request.prompt)},
            )

        max_tokens = self.resolve_max_tokens(request)
        if max_tokens > MAX_OUTPUT_TOKENS:
            raise InvalidRequestError(
                f"Max tokens cannot exceed {MAX_OUTPUT_TOKENS}",
                details={"max_tokens": max_tokens},
            )
        if max_tokens < 1:
            raise InvalidRequestError(
                "Max tokens must be positive",
                details={"max_tokens": max_tokens},
            )

        temperature = self.resolve_temperature(request)
        # NaN fails this check
        if not 0 <= temperature <= 1:
            raise InvalidRequestError(
                "Temperature must be between 0 and 1",
                details={"temperature": temperature},
            )

        top_p = request.parameters.top_p
        if top_p is not None and not 0 <= top_p <= 1:
            raise InvalidRequestError(
                "Top p must be between 0 and 1",
                details={"top_p": top_p},
            )

    def admit(self) -> int:
        """
        Rate-limit admission

        Returns:
            int: Requests remaining in the per-minute window

        Raises:
            RateLimitError: A configured window is exhausted
        """
        decision = self.rate_limiter.admit()
        if not decision.allowed:
            raise RateLimitError(
                message=f"Rate limit exceeded: {decision.window}",
                window=decision.window or "",
                retry_after=decision.retry_after,
            )
        return decision.remaining

    def build_provider_body(self, request: AIRequest) -> dict[str, Any]:
        params = request.parameters
        body: dict[str, Any] = {
            "model": self.resolve_model(request),
            "max_tokens": self.resolve_max_tokens(request),
            "temperature": self.resolve_temperature(request),
            "messages": [
                {
                    "role": "user",
                    "content": request.prompt,
                }
            ],
            "system": build_system_message(request),
            "metadata": {
                "user_id": request.user_id or "anonymous",
                "request_type": request.type.value,
                "resource_type": request.resource_type.value if request.resource_type else None,
                "resource_id": request.resource_id,
            },
        }
        if params.top_p is not None:
            body["top_p"] = params.top_p
        if params.top_k is not None:
            body["top_k"] = params.top_k
        return body

    def backoff_delay(self, attempt: int) -> float:
        """Delay (seconds) before the attempt following `attempt`"""
        base = self.settings.RETRY_DELAY_MS / 1000
        delay = base * (self.settings.RETRY_BACKOFF_MULTIPLIER ** (attempt - 1))
        return min(delay, self.settings.RETRY_MAX_BACKOFF_SECONDS)

    async def call_provider(
        self, body: dict[str, Any], submission: SubmittedRequest
    ) -> ProviderResponse:
        """
        Invoke the transport, retrying timeouts and system errors

        Raises:
            OrchestratorError: Final failure after the retry policy is exhausted
        """
        max_attempts = max(1, self.settings.RETRY_MAX_ATTEMPTS)
        attempt = 0

        while True:
            attempt += 1
            submission.attempts = attempt

            try:
                response = await self.transport.forward(body)
            except Exception as exc:
                error = normalize_error(exc)
                cause: Optional[BaseException] = exc
                status_code = None
            else:
                if response.is_success:
                    return response
                error = error_from_provider_response(response)
                cause = None
                status_code = response.status_code

            logger.warning(
                "Provider request failed: request_id=%s, status_code=%s, error=%s, attempt=%s/%s",
                submission.id,
                status_code,
                error.message,
                attempt,
                max_attempts,
            )

            if error.error_type not in _RETRYABLE_KINDS or attempt >= max_attempts:
                if cause is not None and cause is not error:
                    raise error from cause
                raise error

            delay = self.backoff_delay(attempt)
            logger.warning(
                "Retrying provider request: request_id=%s, delay=%.2fs",
                submission.id,
                delay,
            )
            await self._sleep(delay)

    def decode_content(self, content: str, request: AIRequest) -> Any:
        """Decode JSON output when requested; fall back to raw text"""
        if not request.parameters.wants_json:
            return content
        try:
            return json.loads(content)
        except (json.JSONDecodeError, TypeError):
            logger.debug("JSON output requested but not decodable, keeping raw text")
            return content

    def parse_provider_response(
        self,
        provider_response: ProviderResponse,
        request: AIRequest,
        submission: SubmittedRequest,
        timer: Timer,
        queue_time_ms: Optional[int] = None,
    ) -> AIResponse:
        body = provider_response.body
        if not isinstance(body, dict) or not isinstance(body.get("content"), list):
            raise ServiceError(
                "Unexpected provider response shape",
                code="INVALID_PROVIDER_RESPONSE",
            )

        blocks = body["content"]
        first = blocks[0] if blocks else None
        content = first.get("text") if isinstance(first, dict) else None
        if not isinstance(content, str):
            content = ""

        usage = body.get("usage") if isinstance(body.get("usage"), dict) else {}
        tokens_used = TokenUsage.of(usage.get("input_tokens"), usage.get("output_tokens"))
        model = str(body.get("model") or self.resolve_model(request))

        quality = None
        if self.settings.FEATURE_QUALITY_MONITORING:
            quality = assess_quality(content, request)

        return AIResponse(
            success=True,
            data=ResultPayload(
                kind=result_kind_for(request.type),
                value=self.decode_content(content, request),
                confidence=calculate_confidence(
                    content,
                    tokens_used.input,
                    self.resolve_temperature(request),
                ),
                quality=quality,
            ),
            request_id=submission.id,
            model=model,
            tokens_used=tokens_used,
            latency_ms=timer.elapsed_ms,
            queue_time_ms=queue_time_ms,
            cost=calculate_cost(tokens_used, model),
            rate_limit_remaining=self.rate_limiter.remaining(),
        )

    # ------------------------------------------------------------------
    # Best-effort side effects
    # ------------------------------------------------------------------

    def _cache_lookup(self, key: str) -> Optional[AIResponse]:
        try:
            return self.cache.lookup(key)
        except Exception:
            logger.warning("Cache lookup failed: key=%s", key, exc_info=True)
            return None

    async def complete(
        self,
        response: AIResponse,
        request: AIRequest,
        cache_key: Optional[str] = None,
    ) -> None:
        """Record tokens, store in cache, track usage and append a monitoring sample"""
        self.rate_limiter.record_tokens(response.tokens_used.total)

        if cache_key is not None and self.settings.FEATURE_CACHING:
            try:
                self.cache.store(cache_key, response, self.settings.CACHE_TTL_SECONDS)
            except Exception:
                logger.warning("Cache store failed: key=%s", cache_key, exc_info=True)

        if self.settings.FEATURE_ANALYTICS:
            try:
                await self.usage_repo.record(
                    UsageRecord(
                        shop_id=request.shop_id,
                        request_type=request.type,
                        model=response.model,
                        tokens_used=response.tokens_used,
                        cost=response.cost,
                        latency_ms=response.latency_ms,
                        success=response.success,
                    )
                )
            except Exception:
                logger.warning("Usage tracking failed: request_id=%s", response.request_id, exc_info=True)

        try:
            self.monitoring.record_response(response, request.shop_id)
        except Exception:
            logger.warning("Monitoring update failed: request_id=%s", response.request_id, exc_info=True)

    def fail(
        self,
        exc: BaseException,
        request: AIRequest,
        submission: SubmittedRequest,
        processing_time_ms: int,
    ) -> OrchestratorError:
        """Normalize, log and record a failure; returns the error to raise"""
        error = normalize_error(exc)
        submission.mark_failed()

        logger.error(
            "AI request failed: request_id=%s, code=%s, type=%s, retryable=%s, message=%s, "
            "request_type=%s, shop_id=%s, resource_type=%s, processing_time=%sms",
            submission.id,
            error.code,
            error.error_type.value,
            error.retryable,
            error.message,
            request.type.value,
            request.shop_id,
            request.resource_type.value if request.resource_type else None,
            processing_time_ms,
        )

        try:
            failed = AIResponse.failure(
                error.to_error_info(),
                model=self.resolve_model(request),
                request_id=submission.id,
            ).model_copy(update={"latency_ms": processing_time_ms})
            self.monitoring.record_response(failed, request.shop_id)
        except Exception:
            logger.warning("Monitoring update failed: request_id=%s", submission.id, exc_info=True)

        return error

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def execute(
        self,
        request: AIRequest,
        *,
        queue_time_ms: Optional[int] = None,
    ) -> AIResponse:
        """
        Execute one request

        Args:
            request: Request to execute
            queue_time_ms: Time the request waited before dispatch (batch mode)

        Returns:
            AIResponse: Successful response (possibly served from cache)

        Raises:
            OrchestratorError: Normalized failure
        """
        submission = SubmittedRequest(request=request)
        timer = Timer().start()

        try:
            self.validate(request)
            self.admit()

            cache_key = None
            if self.settings.FEATURE_CACHING:
                cache_key = fingerprint(request, self.resolve_parameters(request))
                cached = self._cache_lookup(cache_key)
                if cached is not None:
                    self.cache_hits += 1
                    submission.mark_completed()
                    logger.debug("Cache hit: request_id=%s, key=%s", submission.id, cache_key)
                    return cached.model_copy(update={"request_id": submission.id, "cached": True})
                logger.debug("Cache miss: request_id=%s, key=%s", submission.id, cache_key)

            submission.mark_processing()
            body = self.build_provider_body(request)
            provider_response = await self.call_provider(body, submission)
            response = self.parse_provider_response(
                provider_response, request, submission, timer, queue_time_ms
            )
        except Exception as exc:
            error = self.fail(exc, request, submission, timer.elapsed_ms)
            if error is exc:
                raise
            raise error from exc

        submission.mark_completed()
        await self.complete(response, request, cache_key)
        return response
