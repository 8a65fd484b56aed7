"""
Error Definitions

Defines the error taxonomy surfaced at the orchestrator boundary and the
helpers that normalize transport results and raw exceptions into it.
"""

from typing import Any, Optional

import httpx

from ai_orchestrator.domain.response import ErrorInfo, ErrorType
from ai_orchestrator.providers.base import ProviderResponse


class OrchestratorError(Exception):
    """
    Orchestrator Base Exception

    Base class for all errors surfaced by the client, containing message, kind, code
    and retry information.
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.SYSTEM_ERROR,
        code: str = "UNKNOWN_ERROR",
        retryable: bool = False,
        retry_after: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """
        Initialize exception

        Args:
            message: Error message
            error_type: Error kind
            code: Error code
            retryable: Whether the same request may succeed later
            retry_after: Suggested retry delay (seconds)
            details: Extra error details
        """
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.retryable = retryable
        self.retry_after = retry_after
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary format

        Returns:
            dict: Error information dictionary
        """
        result = {
            "error": {
                "message": self.message,
                "type": self.error_type.value,
                "code": self.code,
                "retryable": self.retryable,
            }
        }
        if self.retry_after is not None:
            result["error"]["retry_after"] = self.retry_after
        if self.details:
            result["error"]["details"] = self.details
        return result

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            code=self.code,
            message=self.message,
            type=self.error_type,
            retryable=self.retryable,
            retry_after=self.retry_after,
            details=self.details,
        )


class RateLimitError(OrchestratorError):
    """
    Rate Limit Error

    Raised when a configured window is exhausted or the provider answers 429.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        window: str = "requests_per_minute",
        retry_after: int = 60,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type=ErrorType.RATE_LIMIT,
            code="RATE_LIMIT_EXCEEDED",
            retryable=True,
            retry_after=retry_after,
            details={"window": window, **(details or {})},
        )
        self.window = window


class InvalidRequestError(OrchestratorError):
    """
    Invalid Request Error

    Raised when request parameters do not meet requirements. Never retryable as-is.
    """

    def __init__(
        self,
        message: str = "Invalid request parameters",
        code: str = "INVALID_REQUEST",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type=ErrorType.INVALID_REQUEST,
            code=code,
            retryable=False,
            details=details,
        )


class FeatureDisabledError(InvalidRequestError):
    """Raised when an operation needs a feature toggle that is switched off."""

    def __init__(self, feature: str):
        super().__init__(
            message=f"{feature} is not enabled",
            code="FEATURE_DISABLED",
            details={"feature": feature},
        )


class ApiError(OrchestratorError):
    """
    Provider API Error

    Raised when the provider rejects credentials or the request shape.
    """

    def __init__(
        self,
        message: str = "Provider rejected the request",
        code: str = "API_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type=ErrorType.API_ERROR,
            code=code,
            retryable=False,
            details=details,
        )


class RequestTimeoutError(OrchestratorError):
    """Transport-level timeout"""

    def __init__(
        self,
        message: str = "Request timeout",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type=ErrorType.TIMEOUT,
            code="TIMEOUT",
            retryable=True,
            retry_after=30,
            details=details,
        )


class ServiceError(OrchestratorError):
    """
    Service Error

    Anything else: network failure, unexpected provider shape, internal failure.
    """

    def __init__(
        self,
        message: str = "Unknown error occurred",
        code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type=ErrorType.SYSTEM_ERROR,
            code=code,
            retryable=True,
            retry_after=60,
            details=details,
        )


def _provider_error_message(body: Any, default: str) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return default


def _provider_error_type(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("type")
    return None


def _retry_after_header(headers: dict[str, str], default: int) -> int:
    for key, value in headers.items():
        if key.lower() == "retry-after":
            try:
                return max(1, int(float(value)))
            except (TypeError, ValueError):
                return default
    return default


def error_from_provider_response(response: ProviderResponse) -> OrchestratorError:
    """
    Map a failed transport result to the error taxonomy

    Args:
        response: ProviderResponse with a non-2xx status or a transport error

    Returns:
        OrchestratorError: Typed error
    """
    status = response.status_code
    default_message = response.error or f"API Error {status}"
    message = _provider_error_message(response.body, default_message)
    details: dict[str, Any] = {"status_code": status}
    provider_type = _provider_error_type(response.body)
    if provider_type:
        details["provider_error_type"] = provider_type

    if status in (400, 404, 413, 422):
        return InvalidRequestError(message=message, details=details)
    if status in (401, 403):
        return ApiError(message=message, code="UNAUTHORIZED", details=details)
    if status == 429:
        return RateLimitError(
            message=message,
            window="provider",
            retry_after=_retry_after_header(response.headers, 60),
            details=details,
        )
    if status in (408, 504):
        return RequestTimeoutError(message=message, details=details)
    return ServiceError(message=message, details=details)


def normalize_error(exc: BaseException) -> OrchestratorError:
    """
    Normalize any exception into the error taxonomy

    Already-typed errors pass through unchanged.
    """
    if isinstance(exc, OrchestratorError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError(message=f"Request timeout: {exc}")
    if isinstance(exc, httpx.HTTPError):
        return ServiceError(message=f"Request error: {exc}")
    return ServiceError(message=str(exc) or exc.__class__.__name__)


# Provider stream error types mapped onto the equivalent HTTP status
_STREAM_ERROR_STATUS = {
    "invalid_request_error": 400,
    "authentication_error": 401,
    "permission_error": 403,
    "not_found_error": 404,
    "request_too_large": 413,
    "rate_limit_error": 429,
    "api_error": 500,
    "overloaded_error": 529,
}


def error_from_stream_frame(error: dict[str, Any]) -> OrchestratorError:
    """Map an error frame received mid-stream to the error taxonomy"""
    status = _STREAM_ERROR_STATUS.get(str(error.get("type")), 500)
    return error_from_provider_response(ProviderResponse(status_code=status, body={"error": error}))
