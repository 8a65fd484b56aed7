"""
Error Taxonomy Unit Tests
"""

import httpx
import pytest

from ai_orchestrator.common.errors import (
    ApiError,
    FeatureDisabledError,
    InvalidRequestError,
    RateLimitError,
    RequestTimeoutError,
    ServiceError,
    error_from_provider_response,
    error_from_stream_frame,
    normalize_error,
)
from ai_orchestrator.domain.response import ErrorType
from ai_orchestrator.providers.base import ProviderResponse


@pytest.mark.parametrize(
    "status_code,error_type,retryable",
    [
        (400, ErrorType.INVALID_REQUEST, False),
        (404, ErrorType.INVALID_REQUEST, False),
        (401, ErrorType.API_ERROR, False),
        (403, ErrorType.API_ERROR, False),
        (429, ErrorType.RATE_LIMIT, True),
        (408, ErrorType.TIMEOUT, True),
        (504, ErrorType.TIMEOUT, True),
        (500, ErrorType.SYSTEM_ERROR, True),
        (502, ErrorType.SYSTEM_ERROR, True),
        (529, ErrorType.SYSTEM_ERROR, True),
    ],
)
def test_error_from_provider_response_status_mapping(status_code, error_type, retryable):
    error = error_from_provider_response(ProviderResponse(status_code=status_code))
    assert error.error_type == error_type
    assert error.retryable is retryable
    assert error.details["status_code"] == status_code


def test_error_from_provider_response_uses_provider_message():
    response = ProviderResponse(
        status_code=400,
        body={"type": "error", "error": {"type": "invalid_request_error", "message": "max_tokens: too large"}},
    )
    error = error_from_provider_response(response)
    assert isinstance(error, InvalidRequestError)
    assert error.message == "max_tokens: too large"
    assert error.details["provider_error_type"] == "invalid_request_error"


def test_error_from_provider_response_unauthorized_code():
    error = error_from_provider_response(ProviderResponse(status_code=401))
    assert isinstance(error, ApiError)
    assert error.code == "UNAUTHORIZED"
    assert error.message == "API Error 401"


def test_provider_rate_limit_honors_retry_after_header():
    response = ProviderResponse(status_code=429, headers={"Retry-After": "12"})
    error = error_from_provider_response(response)
    assert isinstance(error, RateLimitError)
    assert error.retry_after == 12
    assert error.window == "provider"

    error = error_from_provider_response(ProviderResponse(status_code=429))
    assert error.retry_after == 60


def test_transport_error_message_is_kept():
    error = error_from_provider_response(ProviderResponse(status_code=502, error="Request error: refused"))
    assert isinstance(error, ServiceError)
    assert error.message == "Request error: refused"


def test_error_from_stream_frame():
    error = error_from_stream_frame({"type": "overloaded_error", "message": "Overloaded"})
    assert error.error_type == ErrorType.SYSTEM_ERROR
    assert error.message == "Overloaded"

    error = error_from_stream_frame({"type": "rate_limit_error", "message": "Slow down"})
    assert error.error_type == ErrorType.RATE_LIMIT


class TestNormalizeError:
    """normalize_error"""

    def test_typed_errors_pass_through(self):
        original = InvalidRequestError("bad")
        assert normalize_error(original) is original

    def test_httpx_timeout(self):
        error = normalize_error(httpx.ReadTimeout("read timed out"))
        assert isinstance(error, RequestTimeoutError)
        assert error.retry_after == 30

    def test_httpx_transport_error(self):
        error = normalize_error(httpx.ConnectError("refused"))
        assert isinstance(error, ServiceError)
        assert error.error_type == ErrorType.SYSTEM_ERROR

    def test_arbitrary_exception(self):
        error = normalize_error(ValueError("boom"))
        assert isinstance(error, ServiceError)
        assert error.message == "boom"
        assert error.retry_after == 60


def test_to_dict_and_error_info():
    error = RateLimitError("Rate limit exceeded: requests_per_hour", window="requests_per_hour", retry_after=3600)
    payload = error.to_dict()
    assert payload["error"]["type"] == "rate_limit"
    assert payload["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert payload["error"]["retry_after"] == 3600
    assert payload["error"]["details"] == {"window": "requests_per_hour"}

    info = error.to_error_info()
    assert info.type == ErrorType.RATE_LIMIT
    assert info.retryable is True


def test_feature_disabled_is_invalid_request():
    error = FeatureDisabledError("Batch processing")
    assert isinstance(error, InvalidRequestError)
    assert error.code == "FEATURE_DISABLED"
    assert error.message == "Batch processing is not enabled"
    assert error.retryable is False
