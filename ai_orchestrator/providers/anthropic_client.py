"""
Anthropic Messages Transport

Implements unary and streaming calls to the Anthropic Messages API.
"""

import json
import logging
from typing import Any, AsyncGenerator, Optional

import httpx

from ai_orchestrator.common.timer import Timer
from ai_orchestrator.config import Settings, get_settings
from ai_orchestrator.providers.base import ProviderResponse, ProviderTransport

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/v1/messages"


def _decode_body(response: httpx.Response) -> Any:
    body: Any = response.text
    try:
        body = response.json()
    except json.JSONDecodeError:
        pass
    return body


class AnthropicClient(ProviderTransport):
    """
    Anthropic Protocol Transport

    Uses the x-api-key header for authentication and pins the anthropic-version header.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize transport

        Args:
            settings: Client configuration
            transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        settings = settings or get_settings()
        self.base_url = settings.ANTHROPIC_BASE_URL
        self.api_key = settings.ANTHROPIC_API_KEY
        self.version = settings.ANTHROPIC_VERSION
        self.user_agent = settings.USER_AGENT
        self.timeout = settings.HTTP_TIMEOUT
        self._transport = transport

    @property
    def url(self) -> str:
        cleaned_base = self.base_url.rstrip("/")
        if cleaned_base.endswith("/v1"):
            return f"{cleaned_base}{MESSAGES_PATH[3:]}"
        return f"{cleaned_base}{MESSAGES_PATH}"

    def _prepare_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "anthropic-version": self.version,
            "User-Agent": self.user_agent,
        }
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    def _client(self) -> httpx.AsyncClient:
        if self._transport is not None:
            return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return httpx.AsyncClient(timeout=self.timeout)

    async def forward(self, body: dict[str, Any]) -> ProviderResponse:
        """
        Send request to the Messages API

        Args:
            body: Request body

        Returns:
            ProviderResponse: Provider response
        """
        url = self.url
        headers = self._prepare_headers()

        logger.debug(
            "Anthropic Request: url=%s body=%s",
            url,
            json.dumps(body, ensure_ascii=False),
        )

        timer = Timer().start()

        try:
            async with self._client() as client:
                response = await client.request(
                    method="POST",
                    url=url,
                    headers=headers,
                    json=body,
                )

                timer.mark_first_byte()
                response_body = _decode_body(response)
                timer.stop()

                return ProviderResponse(
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    body=response_body,
                    first_byte_delay_ms=timer.first_byte_delay_ms,
                    total_time_ms=timer.total_time_ms,
                )

        except httpx.TimeoutException as e:
            timer.stop()
            return ProviderResponse(
                status_code=504,
                error=f"Request timeout: {str(e)}",
                first_byte_delay_ms=timer.first_byte_delay_ms,
                total_time_ms=timer.total_time_ms,
            )

        except httpx.RequestError as e:
            timer.stop()
            return ProviderResponse(
                status_code=502,
                error=f"Request error: {str(e)}",
                first_byte_delay_ms=timer.first_byte_delay_ms,
                total_time_ms=timer.total_time_ms,
            )

    async def stream(
        self, body: dict[str, Any]
    ) -> AsyncGenerator[tuple[bytes, ProviderResponse], None]:
        """
        Send streaming request to the Messages API

        Non-2xx answers are read in full and yielded once with an empty chunk.

        Args:
            body: Request body

        Yields:
            tuple[bytes, ProviderResponse]: (Data chunk, Response info)
        """
        url = self.url
        headers = self._prepare_headers()

        logger.debug(
            "Anthropic Stream Request: url=%s body=%s",
            url,
            json.dumps(body, ensure_ascii=False),
        )

        timer = Timer().start()

        try:
            async with self._client() as client:
                async with client.stream(
                    method="POST",
                    url=url,
                    headers=headers,
                    json=body,
                ) as response:
                    provider_response = ProviderResponse(
                        status_code=response.status_code,
                        headers=dict(response.headers),
                    )

                    if response.status_code >= 300:
                        await response.aread()
                        timer.stop()
                        provider_response.body = _decode_body(response)
                        provider_response.total_time_ms = timer.total_time_ms
                        yield b"", provider_response
                        return

                    async for chunk in response.aiter_bytes():
                        if provider_response.first_byte_delay_ms is None:
                            timer.mark_first_byte()
                            provider_response.first_byte_delay_ms = timer.first_byte_delay_ms
                        yield chunk, provider_response

                    timer.stop()
                    provider_response.total_time_ms = timer.total_time_ms

        except httpx.TimeoutException as e:
            timer.stop()
            yield b"", ProviderResponse(
                status_code=504,
                error=f"Request timeout: {str(e)}",
                first_byte_delay_ms=timer.first_byte_delay_ms,
                total_time_ms=timer.total_time_ms,
            )

        except httpx.RequestError as e:
            timer.stop()
            yield b"", ProviderResponse(
                status_code=502,
                error=f"Request error: {str(e)}",
                first_byte_delay_ms=timer.first_byte_delay_ms,
                total_time_ms=timer.total_time_ms,
            )
