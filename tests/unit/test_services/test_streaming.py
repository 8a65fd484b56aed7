"""
Streaming Consumer Unit Tests
"""

import json

import pytest

from ai_orchestrator.common.errors import InvalidRequestError, RateLimitError, ServiceError
from ai_orchestrator.domain.request import AIRequest, GenerationParameters, OutputFormat, RequestType
from ai_orchestrator.providers.base import ProviderResponse
from ai_orchestrator.services.rate_limiter import WindowLimit
from ai_orchestrator.services.streaming import StreamingConsumer


def _frame(payload: dict) -> bytes:
    return f"data: {json.dumps(payload)}\n\n".encode()


def _delta(text: str) -> bytes:
    return _frame({"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}})


def _request(prompt: str = "Describe this product", **params) -> AIRequest:
    return AIRequest(
        type=RequestType.CONTENT_OPTIMIZATION,
        prompt=prompt,
        shop_id="shop-1",
        parameters=GenerationParameters(**params),
    )


async def _collect(gen) -> list:
    return [item async for item in gen]


@pytest.mark.asyncio
async def test_stream_accumulates_partials_and_final(orchestrator, transport, usage_repo):
    transport.chunks = [
        _delta("Hel"),
        _delta("lo "),
        _frame({"type": "message_delta", "usage": {"input_tokens": 10, "output_tokens": 2}}),
        _frame({"type": "message_stop"}),
    ]

    emissions = await _collect(StreamingConsumer(orchestrator).stream(_request()))

    partials, final = emissions[:-1], emissions[-1]
    assert [p.text for p in partials] == ["Hel", "Hello "]
    lengths = [len(e.text) for e in emissions]
    assert lengths == sorted(lengths)
    assert all(p.partial and p.confidence == 0.8 for p in partials)

    assert final.partial is False
    assert final.text == "Hello "
    assert final.confidence == 0.9
    assert (final.tokens_used.input, final.tokens_used.output, final.tokens_used.total) == (10, 2, 12)
    assert final.cost == pytest.approx(10 / 1000 * 0.003 + 2 / 1000 * 0.015)
    assert final.rate_limit_remaining == orchestrator.settings.RATE_LIMIT_REQUESTS_PER_MINUTE - 1
    assert final.request_id == partials[0].request_id

    assert transport.bodies[0]["stream"] is True
    assert transport.stream_closed == 1
    assert len(usage_repo.list_records()) == 1
    assert orchestrator.rate_limiter.count("tokens_per_minute") == 12
    # Streaming results are not cached
    assert len(orchestrator.cache) == 0


@pytest.mark.asyncio
async def test_deltas_sharing_one_chunk_emit_distinct_partials(orchestrator, transport):
    transport.chunks = [
        _delta("a") + _delta("b") + _delta("c"),
        _frame({"type": "message_stop"}),
    ]

    emissions = await _collect(StreamingConsumer(orchestrator).stream(_request()))

    assert [p.text for p in emissions[:-1]] == ["a", "ab", "abc"]
    assert emissions[-1].text == "abc"


@pytest.mark.asyncio
async def test_usage_is_carried_into_later_partials(orchestrator, transport):
    transport.chunks = [
        _frame({"type": "message_start", "message": {"model": "claude-3-haiku-20240307", "usage": {"input_tokens": 42, "output_tokens": 1}}}),
        _delta("Hi"),
        _frame({"type": "message_stop"}),
    ]

    emissions = await _collect(StreamingConsumer(orchestrator).stream(_request()))

    assert emissions[0].tokens_used.input == 42
    assert emissions[0].model == "claude-3-haiku-20240307"
    assert emissions[-1].model == "claude-3-haiku-20240307"


@pytest.mark.asyncio
async def test_malformed_chunks_do_not_abort_stream(orchestrator, transport):
    transport.chunks = [_delta("A"), b"data: {broken\n\n", _delta("B"), b"data: [DONE]\n\n"]

    emissions = await _collect(StreamingConsumer(orchestrator).stream(_request()))

    assert emissions[-1].text == "AB"


@pytest.mark.asyncio
async def test_stream_without_end_sentinel_still_finalizes(orchestrator, transport):
    transport.chunks = [_delta("partial answer")]

    emissions = await _collect(StreamingConsumer(orchestrator).stream(_request()))

    assert emissions[-1].partial is False
    assert emissions[-1].text == "partial answer"


@pytest.mark.asyncio
async def test_final_json_is_decoded(orchestrator, transport):
    transport.chunks = [_delta('{"score": '), _delta("7}"), _frame({"type": "message_stop"})]

    emissions = await _collect(
        StreamingConsumer(orchestrator).stream(_request(format=OutputFormat.JSON))
    )

    assert emissions[-2].data.value == '{"score": 7}'
    assert emissions[-1].data.value == {"score": 7}


@pytest.mark.asyncio
async def test_consumer_close_releases_transport(orchestrator, transport, usage_repo):
    transport.chunks = [_delta("one"), _delta("two"), _frame({"type": "message_stop"})]

    gen = StreamingConsumer(orchestrator).stream(_request())
    first = await gen.__anext__()
    await gen.aclose()

    assert first.text == "one"
    assert transport.stream_closed == 1
    assert usage_repo.list_records() == []
    assert len(orchestrator.monitoring) == 0


@pytest.mark.asyncio
async def test_provider_error_status_raises_mapped_error(orchestrator, transport):
    transport.chunks = [b""]
    transport.stream_response = ProviderResponse(
        status_code=529,
        body={"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}},
    )

    with pytest.raises(ServiceError) as exc_info:
        await _collect(StreamingConsumer(orchestrator).stream(_request()))

    assert exc_info.value.message == "Overloaded"
    assert transport.stream_closed == 1
    samples = orchestrator.monitoring.samples()
    assert len(samples) == 1
    assert samples[0].success is False


@pytest.mark.asyncio
async def test_error_frame_mid_stream(orchestrator, transport):
    transport.chunks = [
        _delta("Hel"),
        _frame({"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}),
        _delta("never"),
    ]
    received = []

    with pytest.raises(ServiceError):
        async for item in StreamingConsumer(orchestrator).stream(_request()):
            received.append(item)

    assert [r.text for r in received] == ["Hel"]
    assert transport.stream_closed == 1


@pytest.mark.asyncio
async def test_validation_and_admission_run_before_streaming(orchestrator, transport):
    with pytest.raises(InvalidRequestError):
        await _collect(StreamingConsumer(orchestrator).stream(_request("")))

    orchestrator.rate_limiter.configure([WindowLimit("requests_per_minute", 0, 60)])
    with pytest.raises(RateLimitError):
        await _collect(StreamingConsumer(orchestrator).stream(_request()))

    assert transport.stream_opened == 0
