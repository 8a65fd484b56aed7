"""
Quality and Confidence Heuristics

Scores are derived from structural signals only (sentence counts, lengths,
keyword presence). They are advisory and must not be treated as correctness
guarantees by consuming systems.
"""

from __future__ import annotations

import json
import re
from typing import Optional

from ai_orchestrator.domain.request import AIRequest, RequestType
from ai_orchestrator.domain.response import QualityMetrics

BASE_CONFIDENCE = 0.8

# Fixed until a fact-checking service exists
FACTUAL_ACCURACY_SCORE = 0.9
# Used when the request carries no brand guidelines
DEFAULT_BRAND_ALIGNMENT = 0.8

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_CONTEXT_WORD = re.compile(r"\b[a-zA-Z]{3,}\b")
_SEO_KEYWORDS = re.compile(r"\b(seo|optimization|search|ranking)\b", re.IGNORECASE)

# Length bands (characters) by request type
_SEO_LENGTH_BANDS: dict[RequestType, tuple[int, int]] = {
    RequestType.TITLE_GENERATION: (30, 60),
    RequestType.META_GENERATION: (120, 160),
}


def _clamp(value: float) -> float:
    return max(0.0, min(value, 1.0))


def _sentences(content: str) -> list[str]:
    return [s for s in _SENTENCE_SPLIT.split(content) if s.strip()]


def assess_coherence(content: str) -> float:
    sentences = _sentences(content)
    if len(sentences) < 2:
        return 0.5

    avg_sentence_length = len(content) / len(sentences)
    if avg_sentence_length < 10 or avg_sentence_length > 100:
        return 0.6

    return 0.8


def extract_context_terms(request: AIRequest) -> list[str]:
    """Resource type plus the first ten meaningful words of the serialized context"""
    terms: list[str] = []
    if request.resource_type:
        terms.append(request.resource_type.value)

    context_str = json.dumps(request.context.model_dump(mode="json", exclude_none=True), sort_keys=True)
    words = _CONTEXT_WORD.findall(context_str)
    terms.extend(words[:10])
    return terms


def assess_relevance(content: str, request: AIRequest) -> float:
    context_terms = extract_context_terms(request)
    content_lower = content.lower()

    found = sum(1 for term in context_terms if term.lower() in content_lower)
    return min(found / max(len(context_terms), 1), 1.0)


def assess_seo_effectiveness(content: str, request: AIRequest) -> float:
    score = 0.5

    band = _SEO_LENGTH_BANDS.get(request.type)
    if band is not None:
        low, high = band
        if low <= len(content) <= high:
            score += 0.3

    if _SEO_KEYWORDS.search(content):
        score += 0.2

    return min(score, 1.0)


def assess_readability(content: str) -> float:
    words = len(content.split())
    sentences = len(_sentences(content))

    if words == 0 or sentences == 0:
        return 0.5

    avg_words_per_sentence = words / sentences

    # Ideal range: 15-20 words per sentence
    if 15 <= avg_words_per_sentence <= 20:
        return 0.9
    if 10 <= avg_words_per_sentence <= 25:
        return 0.7
    return 0.5


def assess_brand_alignment(content: str, request: AIRequest) -> float:
    keywords = request.context.brand_keywords
    avoid_words = request.context.brand_avoid_words
    if not keywords and not avoid_words:
        return DEFAULT_BRAND_ALIGNMENT

    content_lower = content.lower()
    score = DEFAULT_BRAND_ALIGNMENT
    if keywords:
        present = sum(1 for k in keywords if k.lower() in content_lower)
        score = present / len(keywords)

    violations = sum(1 for w in avoid_words if w.lower() in content_lower)
    score -= 0.2 * violations
    return _clamp(score)


def assess_quality(content: str, request: AIRequest) -> QualityMetrics:
    """Compute every heuristic quality score for a piece of generated content"""
    return QualityMetrics(
        coherence=assess_coherence(content),
        relevance=assess_relevance(content, request),
        seo_effectiveness=assess_seo_effectiveness(content, request),
        readability=assess_readability(content),
        factual_accuracy=FACTUAL_ACCURACY_SCORE,
        brand_alignment=assess_brand_alignment(content, request),
    )


def calculate_confidence(
    content: str,
    input_tokens: int,
    temperature: Optional[float],
) -> float:
    """
    Confidence in [0, 1]

    Base 0.8, +0.1 for output over 100 chars, +0.05 for more than 500 input
    tokens, +0.05 for temperature below 0.3.
    """
    confidence = BASE_CONFIDENCE

    if len(content) > 100:
        confidence += 0.1
    if input_tokens > 500:
        confidence += 0.05
    if temperature is not None and temperature < 0.3:
        confidence += 0.05

    return min(confidence, 1.0)
