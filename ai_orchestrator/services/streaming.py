"""
Streaming Consumer Module

Consumes a streamed provider call and re-emits the accumulated text as
partial responses, ending with one final response.
"""

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncGenerator

from ai_orchestrator.common.costs import calculate_cost
from ai_orchestrator.common.errors import error_from_provider_response, error_from_stream_frame
from ai_orchestrator.common.quality import assess_quality
from ai_orchestrator.common.stream_usage import StreamAccumulator
from ai_orchestrator.common.timer import Timer
from ai_orchestrator.domain.request import AIRequest, SubmittedRequest
from ai_orchestrator.domain.response import AIResponse, ResultPayload
from ai_orchestrator.services.orchestrator import RequestOrchestrator
from ai_orchestrator.services.prompts import result_kind_for

logger = logging.getLogger(__name__)

# Fixed confidence for in-progress and final streaming emissions
PARTIAL_CONFIDENCE = 0.8
FINAL_CONFIDENCE = 0.9


class StreamingConsumer:
    """
    Streaming Consumer

    Produces a lazy, non-restartable sequence of partial responses followed by
    exactly one final response. The transport stream is closed on every exit
    path, including consumer closure.
    """

    def __init__(self, orchestrator: RequestOrchestrator):
        self.orchestrator = orchestrator

    def _partial(
        self,
        text: str,
        accumulator: StreamAccumulator,
        request: AIRequest,
        submission: SubmittedRequest,
        timer: Timer,
    ) -> AIResponse:
        model = accumulator.model or self.orchestrator.resolve_model(request)
        usage = accumulator.usage
        return AIResponse(
            success=True,
            data=ResultPayload(
                kind=result_kind_for(request.type),
                value=text,
                confidence=PARTIAL_CONFIDENCE,
            ),
            request_id=submission.id,
            model=model,
            tokens_used=usage,
            latency_ms=timer.elapsed_ms,
            cost=calculate_cost(usage, model),
            partial=True,
        )

    def _final(
        self,
        accumulator: StreamAccumulator,
        request: AIRequest,
        submission: SubmittedRequest,
        timer: Timer,
    ) -> AIResponse:
        orchestrator = self.orchestrator
        model = accumulator.model or orchestrator.resolve_model(request)
        usage = accumulator.usage
        content = accumulator.text

        quality = None
        if orchestrator.settings.FEATURE_QUALITY_MONITORING:
            quality = assess_quality(content, request)

        return AIResponse(
            success=True,
            data=ResultPayload(
                kind=result_kind_for(request.type),
                value=orchestrator.decode_content(content, request),
                confidence=FINAL_CONFIDENCE,
                quality=quality,
            ),
            request_id=submission.id,
            model=model,
            tokens_used=usage,
            latency_ms=timer.stop().elapsed_ms,
            cost=calculate_cost(usage, model),
            rate_limit_remaining=orchestrator.rate_limiter.remaining(),
        )

    async def stream(self, request: AIRequest) -> AsyncGenerator[AIResponse, None]:
        """
        Stream one request

        Args:
            request: Request to stream

        Yields:
            AIResponse: Partial responses (partial=True), then the final response

        Raises:
            OrchestratorError: Validation, admission or terminal transport failure
        """
        orchestrator = self.orchestrator
        submission = SubmittedRequest(request=request)
        timer = Timer().start()
        accumulator = StreamAccumulator()
        # Text up to the delta being emitted; one chunk may carry several deltas
        emitted = ""

        try:
            orchestrator.validate(request)
            orchestrator.admit()

            body = orchestrator.build_provider_body(request)
            body["stream"] = True
            submission.mark_processing()
            submission.attempts = 1

            async with aclosing(orchestrator.transport.stream(body)) as chunks:
                async for chunk, provider_response in chunks:
                    if not provider_response.is_success:
                        raise error_from_provider_response(provider_response)

                    if chunk:
                        timer.mark_first_byte()
                    for delta in accumulator.feed(chunk):
                        emitted += delta
                        yield self._partial(emitted, accumulator, request, submission, timer)

                    if accumulator.error is not None:
                        raise error_from_stream_frame(accumulator.error)
                    if accumulator.finished:
                        break

            for delta in accumulator.close():
                emitted += delta
                yield self._partial(emitted, accumulator, request, submission, timer)
            if accumulator.error is not None:
                raise error_from_stream_frame(accumulator.error)

            response = self._final(accumulator, request, submission, timer)
        except (GeneratorExit, asyncio.CancelledError):
            submission.mark_cancelled()
            logger.info(
                "Stream closed by consumer: request_id=%s, received_chars=%s",
                submission.id,
                len(accumulator.text),
            )
            raise
        except Exception as exc:
            error = orchestrator.fail(exc, request, submission, timer.elapsed_ms)
            if error is exc:
                raise
            raise error from exc

        if accumulator.skipped_frames:
            logger.warning(
                "Stream completed with skipped frames: request_id=%s, skipped=%s",
                submission.id,
                accumulator.skipped_frames,
            )

        submission.mark_completed()
        await orchestrator.complete(response, request)
        yield response
