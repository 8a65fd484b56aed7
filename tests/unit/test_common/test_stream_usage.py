"""
Streaming Usage Parsing Unit Tests
"""

from ai_orchestrator.common.stream_usage import SSEDecoder, StreamAccumulator


def test_anthropic_stream_accumulates_text_and_usage():
    acc = StreamAccumulator()
    chunks = [
        b"event: content_block_delta\ndata: {\"type\":\"content_block_delta\",\"delta\":{\"type\":\"text_delta\",\"text\":\"Hel\"}}\n\n",
        b"data: {\"type\":\"content_block_delta\",\"delta\":{\"type\":\"text_delta\",\"text\":\"lo \"}}\n\n",
        b"data: {\"type\":\"message_delta\",\"usage\":{\"input_tokens\":10,\"output_tokens\":2}}\n\n",
        b"data: {\"type\":\"message_stop\"}\n\n",
    ]
    deltas = []
    for c in chunks:
        deltas.extend(acc.feed(c))

    assert deltas == ["Hel", "lo "]
    assert acc.text == "Hello "
    assert acc.usage.input == 10
    assert acc.usage.output == 2
    assert acc.usage.total == 12
    assert acc.finished is True


def test_message_start_sets_model_and_input_tokens():
    acc = StreamAccumulator()
    acc.feed(
        b"data: {\"type\":\"message_start\",\"message\":{\"model\":\"claude-3-haiku-20240307\","
        b"\"usage\":{\"input_tokens\":25,\"output_tokens\":1}}}\n\n"
    )
    acc.feed(b"data: {\"type\":\"message_delta\",\"usage\":{\"output_tokens\":15}}\n\n")

    assert acc.model == "claude-3-haiku-20240307"
    assert acc.input_tokens == 25
    assert acc.output_tokens == 15


def test_events_split_across_chunks_and_crlf():
    acc = StreamAccumulator()
    assert acc.feed(b"data: {\"type\":\"content_block_delta\",") == []
    assert acc.feed(b"\"delta\":{\"text\":\"Hi\"}}\r\n\r\n") == ["Hi"]
    assert acc.text == "Hi"


def test_malformed_chunks_are_skipped():
    acc = StreamAccumulator()
    acc.feed(b"data: {not json}\n\n")
    acc.feed(b"data: [1, 2]\n\n")
    acc.feed(b"data: {\"type\":\"content_block_delta\",\"delta\":{\"text\":\"ok\"}}\n\n")
    acc.feed(b"data: {\"type\":\"message_delta\",\"usage\":{\"output_tokens\":\"many\"}}\n\n")

    assert acc.skipped_frames == 2
    assert acc.text == "ok"
    assert acc.output_tokens is None
    assert acc.finished is False


def test_done_sentinel_and_error_frame():
    acc = StreamAccumulator()
    acc.feed(b"data: [DONE]\n\n")
    assert acc.finished is True

    acc = StreamAccumulator()
    acc.feed(b"data: {\"type\":\"error\",\"error\":{\"type\":\"overloaded_error\",\"message\":\"Overloaded\"}}\n\n")
    assert acc.finished is True
    assert acc.error == {"type": "overloaded_error", "message": "Overloaded"}


def test_close_flushes_trailing_event():
    acc = StreamAccumulator()
    assert acc.feed(b"data: {\"type\":\"content_block_delta\",\"delta\":{\"text\":\"tail\"}}") == []
    assert acc.close() == ["tail"]
    assert acc.text == "tail"


def test_sse_decoder_joins_multiline_data():
    decoder = SSEDecoder()
    assert decoder.feed(b"data: a\ndata: b\n\n: comment\n\n") == ["a\nb"]
    assert decoder.flush() == []
