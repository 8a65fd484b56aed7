"""
Request Domain Model

Defines the immutable request value submitted by callers and the
lifecycle record the orchestrator attaches to it at submission time.
"""

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ai_orchestrator.common.time import utc_now


class RequestType(str, Enum):
    """Request purpose"""

    SEO_ANALYSIS = "seo_analysis"
    TITLE_GENERATION = "title_generation"
    META_GENERATION = "meta_generation"
    CONTENT_OPTIMIZATION = "content_optimization"
    KEYWORD_ANALYSIS = "keyword_analysis"
    COMPETITOR_ANALYSIS = "competitor_analysis"
    SCHEMA_GENERATION = "schema_generation"
    IMAGE_ALT_GENERATION = "image_alt_generation"
    BULK_OPTIMIZATION = "bulk_optimization"
    CUSTOM_ANALYSIS = "custom_analysis"


class ResourceType(str, Enum):
    """Catalog resource a request is about"""

    PRODUCT = "product"
    COLLECTION = "collection"
    PAGE = "page"
    BLOG = "blog"
    ARTICLE = "article"


class OutputFormat(str, Enum):
    """Desired output format"""

    TEXT = "text"
    JSON = "json"
    STRUCTURED = "structured"


class RequestStatus(str, Enum):
    """Lifecycle status assigned at submission"""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RequestContext(BaseModel):
    """
    Structured Request Context

    Business, brand, competitor and historical data passed alongside the prompt.
    The shapes are owned by the calling domain, so they are kept as plain mappings.
    """

    model_config = ConfigDict(frozen=True)

    # Current SEO state (title, description, content, keywords)
    current_seo: Optional[dict[str, Any]] = Field(None, description="Current SEO data")
    # Shop / business information
    shop_info: Optional[dict[str, Any]] = Field(None, description="Shop information")
    # Brand guidelines (tone, voice, keywords, avoidWords, ...)
    brand_guidelines: Optional[dict[str, Any]] = Field(None, description="Brand guidelines")
    target_audience: Optional[str] = Field(None, description="Target audience")
    # Resource-level technical context
    resource_context: Optional[dict[str, Any]] = Field(None, description="Resource context")
    competitor_data: list[dict[str, Any]] = Field(default_factory=list, description="Competitor data")
    # Historical performance data
    performance_history: list[dict[str, Any]] = Field(default_factory=list, description="Performance history")

    @property
    def brand_keywords(self) -> list[str]:
        if not self.brand_guidelines:
            return []
        return [str(k) for k in self.brand_guidelines.get("keywords") or []]

    @property
    def brand_avoid_words(self) -> list[str]:
        if not self.brand_guidelines:
            return []
        avoid = self.brand_guidelines.get("avoid_words") or self.brand_guidelines.get("avoidWords") or []
        return [str(w) for w in avoid]


class GenerationParameters(BaseModel):
    """
    Generation Parameters

    Unset model/temperature/max_tokens fall back to the configured defaults.
    Range checks happen in the orchestrator so that invalid values surface
    as invalid_request errors instead of construction failures.
    """

    model_config = ConfigDict(frozen=True)

    # Model identifier
    model: Optional[str] = Field(None, description="Model identifier")
    # Sampling temperature, 0-1
    temperature: Optional[float] = Field(None, description="Sampling temperature")
    # Max output tokens
    max_tokens: Optional[int] = Field(None, description="Max output tokens")
    top_p: Optional[float] = Field(None, description="Nucleus sampling")
    top_k: Optional[int] = Field(None, description="Top-k sampling")

    # Task-specific parameters
    strategy: str = Field("balanced", description="conservative / balanced / aggressive / creative")
    focus: list[str] = Field(default_factory=list, description="Optimization focus areas")
    constraints: dict[str, Any] = Field(default_factory=dict, description="Length/content/style constraints")

    # Output preferences
    format: OutputFormat = Field(OutputFormat.TEXT, description="Desired output format")
    include_reasoning: bool = False
    include_alternatives: bool = False
    include_confidence: bool = False

    # Quality controls
    fact_check: bool = False
    brand_consistency: bool = False
    grammar_check: bool = False
    plagiarism_check: bool = False

    @property
    def wants_json(self) -> bool:
        return self.format in (OutputFormat.JSON, OutputFormat.STRUCTURED)


class AIRequest(BaseModel):
    """
    AI Request

    Immutable description of one unit of work. Carries no identity until submitted.
    """

    model_config = ConfigDict(frozen=True)

    type: RequestType = Field(..., description="Request purpose")
    prompt: str = Field(..., description="Free-text prompt")
    # Tenant the request is billed to
    shop_id: str = Field("", description="Shop ID")
    user_id: Optional[str] = Field(None, description="User ID")
    context: RequestContext = Field(default_factory=RequestContext)
    parameters: GenerationParameters = Field(default_factory=GenerationParameters)
    resource_type: Optional[ResourceType] = Field(None, description="Resource type")
    resource_id: Optional[str] = Field(None, description="Resource ID")


_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_request_id() -> str:
    """Generate a request id of the form req_<epoch-ms>_<9 base36 chars>"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


@dataclass
class SubmittedRequest:
    """
    Submitted Request

    Identity and lifecycle status assigned by the orchestrator.
    The wrapped request is borrowed from the caller for the duration of one call.
    """

    request: AIRequest
    id: str = field(default_factory=generate_request_id)
    status: RequestStatus = RequestStatus.PENDING
    attempts: int = 0
    created_at: datetime = field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def mark_processing(self) -> None:
        self.status = RequestStatus.PROCESSING
        self.started_at = utc_now()

    def mark_completed(self) -> None:
        self.status = RequestStatus.COMPLETED
        self.completed_at = utc_now()

    def mark_failed(self) -> None:
        self.status = RequestStatus.FAILED
        self.completed_at = utc_now()

    def mark_cancelled(self) -> None:
        self.status = RequestStatus.CANCELLED
        self.completed_at = utc_now()

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            RequestStatus.COMPLETED,
            RequestStatus.FAILED,
            RequestStatus.CANCELLED,
        )
