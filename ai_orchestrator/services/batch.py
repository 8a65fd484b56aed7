"""
Batch Dispatcher Module

Runs a list of requests in rate-budget-sized slices, preserving input order
and isolating per-request failures.
"""

import asyncio
import logging
import time
from collections import Counter
from typing import Any, Awaitable, Callable

from ai_orchestrator.common.errors import FeatureDisabledError, normalize_error
from ai_orchestrator.domain.request import AIRequest
from ai_orchestrator.domain.response import AIResponse, ErrorInfo, ErrorType
from ai_orchestrator.domain.usage import BatchSummary
from ai_orchestrator.services.orchestrator import RequestOrchestrator

logger = logging.getLogger(__name__)

BATCH_FAILURE_CODE = "BATCH_REQUEST_FAILED"
BATCH_FAILURE_RETRY_AFTER = 60


def batch_failure_placeholder(exc: BaseException, model: str) -> AIResponse:
    """Failed response occupying the output slot of a request that raised"""
    error = normalize_error(exc)
    return AIResponse.failure(
        ErrorInfo(
            code=BATCH_FAILURE_CODE,
            message=error.message,
            type=ErrorType.SYSTEM_ERROR,
            retryable=True,
            retry_after=BATCH_FAILURE_RETRY_AFTER,
            details={
                "original_code": error.code,
                "original_type": error.error_type.value,
                "original_retryable": error.retryable,
            },
        ),
        model=model,
    )


def summarize_batch(responses: list[AIResponse]) -> BatchSummary:
    total = len(responses)
    if total == 0:
        return BatchSummary()

    successful = [r for r in responses if r.success]
    errors = Counter(r.error.code for r in responses if r.error is not None)
    return BatchSummary(
        total_requests=total,
        successful_requests=len(successful),
        failed_requests=total - len(successful),
        total_cost=sum(r.cost for r in responses),
        total_tokens=sum(r.tokens_used.total for r in responses),
        average_latency_ms=sum(r.latency_ms for r in successful) / len(successful) if successful else 0.0,
        success_rate=len(successful) / total,
        errors_by_code=dict(errors),
    )


class BatchDispatcher:
    """
    Batch Dispatcher

    Slice size is min(requests-per-minute // 2, BATCH_MAX_SLICE_SIZE), never
    below one. Requests in a slice run concurrently; slices are separated by
    a fixed pacing delay (none after the last slice).
    """

    def __init__(
        self,
        orchestrator: RequestOrchestrator,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self._sleep = sleep

    @property
    def settings(self):
        return self.orchestrator.settings

    @property
    def slice_size(self) -> int:
        per_minute = self.settings.RATE_LIMIT_REQUESTS_PER_MINUTE // 2
        return max(1, min(per_minute, self.settings.BATCH_MAX_SLICE_SIZE))

    async def run_batch(self, requests: list[AIRequest]) -> list[AIResponse]:
        """
        Execute a batch

        Args:
            requests: Requests to execute

        Returns:
            list[AIResponse]: One response per request, in input order

        Raises:
            FeatureDisabledError: Batch processing is not enabled
        """
        if not self.settings.FEATURE_BATCH_PROCESSING:
            raise FeatureDisabledError("Batch processing")

        size = self.slice_size
        pacing = self.settings.BATCH_PACING_SECONDS
        started = time.perf_counter()
        results: list[AIResponse] = []

        logger.info("Batch started: requests=%s, slice_size=%s", len(requests), size)

        for offset in range(0, len(requests), size):
            if offset > 0 and pacing > 0:
                await self._sleep(pacing)

            chunk = requests[offset:offset + size]
            queue_time_ms = int((time.perf_counter() - started) * 1000)
            outcomes = await asyncio.gather(
                *(self.orchestrator.execute(r, queue_time_ms=queue_time_ms) for r in chunk),
                return_exceptions=True,
            )

            for request, outcome in zip(chunk, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(
                        "Batch request failed: type=%s, shop_id=%s, error=%s",
                        request.type.value,
                        request.shop_id,
                        outcome,
                    )
                    results.append(
                        batch_failure_placeholder(outcome, self.orchestrator.resolve_model(request))
                    )
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    results.append(outcome)

        summary = summarize_batch(results)
        logger.info(
            "Batch completed: requests=%s, succeeded=%s, failed=%s, cost=$%.6f",
            summary.total_requests,
            summary.successful_requests,
            summary.failed_requests,
            summary.total_cost,
        )
        return results
