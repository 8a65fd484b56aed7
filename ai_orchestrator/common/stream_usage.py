"""
Streaming Response Parsing

Used for streamed provider calls (text/event-stream) to extract incremental
text and the token usage reported in usage frames.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from ai_orchestrator.domain.response import TokenUsage

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class SSEDecoder:
    """
    Simple SSE Decoder: Splits bytes stream into event blocks and extracts data fields.

    - Uses empty line (\\n\\n) as event boundary
    - Supports CRLF (\\r\\n)
    - Only parses data: lines, ignores other fields
    """

    def __init__(self) -> None:
        self._buf = b""

    def feed(self, chunk: bytes) -> list[str]:
        """
        Append bytes and return list of parsed data payloads (one string per event).
        """
        if not chunk:
            return []

        data = (self._buf + chunk).replace(b"\r\n", b"\n")
        parts = data.split(b"\n\n")
        self._buf = parts.pop()  # Keep last incomplete event

        payloads: list[str] = []
        for event in parts:
            payload = self._extract_data_payload(event)
            if payload is not None:
                payloads.append(payload)
        return payloads

    def flush(self) -> list[str]:
        """Return the trailing event when the stream ends without a blank line."""
        if not self._buf.strip():
            self._buf = b""
            return []
        payload = self._extract_data_payload(self._buf.replace(b"\r\n", b"\n"))
        self._buf = b""
        return [payload] if payload is not None else []

    @staticmethod
    def _extract_data_payload(event: bytes) -> Optional[str]:
        data_lines: list[bytes] = []
        for line in event.split(b"\n"):
            if not line:
                continue
            if line.startswith(b"data:"):
                value = line[5:]
                if value.startswith(b" "):
                    value = value[1:]
                data_lines.append(value)
        if not data_lines:
            return None
        return b"\n".join(data_lines).decode("utf-8", errors="ignore")


def _extract_usage_dict(data: dict[str, Any]) -> Optional[dict[str, Any]]:
    usage = data.get("usage")
    if isinstance(usage, dict):
        return usage

    # message_start nests usage under the message object
    for key in ("message", "delta"):
        nested = data.get(key)
        if isinstance(nested, dict) and isinstance(nested.get("usage"), dict):
            return nested["usage"]

    return None


class StreamAccumulator:
    """
    Accumulate text and token usage from an Anthropic-style event stream.

    - content_block_delta frames carry incremental text
    - usage frames (message_start / message_delta) carry token counts; each
      count is updated only when reported
    - message_stop or the [DONE] sentinel marks end-of-stream
    - error frames are recorded as a terminal stream failure
    - malformed frames are skipped with a warning
    """

    def __init__(self) -> None:
        self._decoder = SSEDecoder()
        self._text_parts: list[str] = []
        self.input_tokens: Optional[int] = None
        self.output_tokens: Optional[int] = None
        self.model: Optional[str] = None
        self.finished = False
        self.error: Optional[dict[str, Any]] = None
        self.skipped_frames = 0

    def feed(self, chunk: bytes) -> list[str]:
        """
        Feed raw bytes.

        Returns:
            list[str]: Non-empty text deltas decoded from complete events
        """
        deltas: list[str] = []
        for payload in self._decoder.feed(chunk):
            delta = self._handle_payload(payload)
            if delta:
                deltas.append(delta)
        return deltas

    def close(self) -> list[str]:
        deltas: list[str] = []
        for payload in self._decoder.flush():
            delta = self._handle_payload(payload)
            if delta:
                deltas.append(delta)
        return deltas

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    @property
    def usage(self) -> TokenUsage:
        return TokenUsage.of(self.input_tokens, self.output_tokens)

    def _handle_payload(self, payload: str) -> Optional[str]:
        stripped = payload.strip()
        if not stripped:
            return None
        if stripped == DONE_SENTINEL:
            self.finished = True
            return None

        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            self.skipped_frames += 1
            logger.warning("Skipping malformed stream chunk: %s (%s)", stripped[:200], e)
            return None

        if not isinstance(data, dict):
            self.skipped_frames += 1
            logger.warning("Skipping unexpected stream chunk: %s", stripped[:200])
            return None

        self._update_usage(data)
        event_type = data.get("type")

        if event_type == "message_start":
            message = data.get("message")
            if isinstance(message, dict) and message.get("model"):
                self.model = str(message["model"])
        elif event_type == "message_stop":
            self.finished = True
        elif event_type == "error":
            error = data.get("error")
            self.error = error if isinstance(error, dict) else {"message": str(error)}
            self.finished = True
        elif event_type == "content_block_delta":
            delta = data.get("delta")
            if isinstance(delta, dict):
                text = delta.get("text")
                if isinstance(text, str) and text:
                    self._text_parts.append(text)
                    return text
        return None

    def _update_usage(self, data: dict[str, Any]) -> None:
        usage = _extract_usage_dict(data)
        if not usage:
            return
        try:
            if usage.get("input_tokens") is not None:
                self.input_tokens = int(usage["input_tokens"])
            if usage.get("output_tokens") is not None:
                self.output_tokens = int(usage["output_tokens"])
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed usage frame: %s", usage)
