"""
Response Domain Model

Defines the immutable result of one request. Responses are the unit
stored in the cache and reported to monitoring.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResultKind(str, Enum):
    """Kind tag of a result payload"""

    TITLE = "title"
    DESCRIPTION = "description"
    CONTENT = "content"
    KEYWORDS = "keywords"
    SCHEMA = "schema"
    ALT_TEXT = "alt_text"
    ANALYSIS = "analysis"


class ErrorType(str, Enum):
    """Error taxonomy kinds"""

    RATE_LIMIT = "rate_limit"
    INVALID_REQUEST = "invalid_request"
    API_ERROR = "api_error"
    TIMEOUT = "timeout"
    SYSTEM_ERROR = "system_error"


class TokenUsage(BaseModel):
    """Token Usage"""

    model_config = ConfigDict(frozen=True)

    input: int = 0
    output: int = 0
    total: int = 0

    @classmethod
    def of(cls, input_tokens: Optional[int], output_tokens: Optional[int]) -> "TokenUsage":
        input_tokens = int(input_tokens or 0)
        output_tokens = int(output_tokens or 0)
        return cls(input=input_tokens, output=output_tokens, total=input_tokens + output_tokens)


class QualityMetrics(BaseModel):
    """
    Heuristic Quality Scores

    Every score is in [0, 1]. These are advisory signals derived from structural
    features of the text, not correctness guarantees.
    """

    model_config = ConfigDict(frozen=True)

    coherence: float
    relevance: float
    seo_effectiveness: float
    readability: float
    factual_accuracy: float
    brand_alignment: float

    @property
    def average(self) -> float:
        values = list(self.model_dump().values())
        return sum(values) / len(values)


class ResultPayload(BaseModel):
    """Typed result payload of a successful response"""

    model_config = ConfigDict(frozen=True)

    kind: ResultKind
    # Decoded JSON when requested and parseable, raw text otherwise
    value: Any
    confidence: float
    quality: Optional[QualityMetrics] = None


class ErrorInfo(BaseModel):
    """Structured error carried by failed responses"""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    type: ErrorType
    retryable: bool
    # Suggested delay before retrying (seconds)
    retry_after: Optional[int] = None
    details: dict[str, Any] = Field(default_factory=dict)


class AIResponse(BaseModel):
    """
    AI Response

    Produced once per request and immutable thereafter.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    data: Optional[ResultPayload] = None
    error: Optional[ErrorInfo] = None

    # Metadata
    request_id: Optional[str] = None
    model: str
    tokens_used: TokenUsage = Field(default_factory=TokenUsage)

    # Timing (ms)
    latency_ms: int = 0
    queue_time_ms: Optional[int] = None

    # Usage tracking
    cost: float = 0.0
    rate_limit_remaining: Optional[int] = None

    # Served from the response cache
    cached: bool = False
    # In-progress streaming emission
    partial: bool = False

    @property
    def quality(self) -> Optional[QualityMetrics]:
        return self.data.quality if self.data else None

    @property
    def confidence(self) -> Optional[float]:
        return self.data.confidence if self.data else None

    @property
    def text(self) -> Optional[str]:
        """Result value as text (JSON values are not re-serialized)"""
        if self.data is None or not isinstance(self.data.value, str):
            return None
        return self.data.value

    @classmethod
    def failure(
        cls,
        error: ErrorInfo,
        model: str,
        request_id: Optional[str] = None,
    ) -> "AIResponse":
        return cls(
            success=False,
            error=error,
            model=model,
            request_id=request_id,
        )
