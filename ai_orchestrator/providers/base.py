"""
Provider Transport Base Class

Defines the abstract interface for provider transports.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Optional


@dataclass
class ProviderResponse:
    """
    Provider Response Data Class

    Encapsulates response information from the provider. Transport failures are
    reported through `error` with a synthetic status code instead of raising.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    # Parsed JSON, or raw text when the body is not JSON
    body: Any = None
    first_byte_delay_ms: Optional[int] = None
    total_time_ms: Optional[int] = None
    # Set for timeouts (504) and connection failures (502)
    error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        """2xx with no transport error"""
        return 200 <= self.status_code < 300 and self.error is None

    @property
    def is_server_error(self) -> bool:
        """Whether it is a server error (status code >= 500)"""
        return self.status_code >= 500


class ProviderTransport(ABC):
    """
    Provider Transport Abstract Base Class

    Performs the actual call to the remote API, unary and streaming.
    Timeouts are enforced here; callers impose no deadline of their own.
    """

    @abstractmethod
    async def forward(self, body: dict[str, Any]) -> ProviderResponse:
        """
        Send a unary request

        Args:
            body: Provider request body

        Returns:
            ProviderResponse: Provider response
        """
        pass

    @abstractmethod
    def stream(
        self, body: dict[str, Any]
    ) -> AsyncGenerator[tuple[bytes, ProviderResponse], None]:
        """
        Send a streaming request

        The underlying connection is released when the generator is exhausted
        or closed.

        Args:
            body: Provider request body (the stream flag is set by the caller)

        Yields:
            tuple[bytes, ProviderResponse]: (Data chunk, Response info)
        """
        pass

    async def close(self) -> None:
        """Release transport resources"""
        return None
