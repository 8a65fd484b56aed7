"""
Quality Heuristics Unit Tests
"""

import pytest

from ai_orchestrator.common.quality import (
    assess_brand_alignment,
    assess_coherence,
    assess_quality,
    assess_readability,
    assess_relevance,
    assess_seo_effectiveness,
    calculate_confidence,
    extract_context_terms,
)
from ai_orchestrator.domain.request import AIRequest, RequestContext, RequestType, ResourceType


def _request(request_type=RequestType.SEO_ANALYSIS, **kwargs) -> AIRequest:
    return AIRequest(type=request_type, prompt="Analyze this", **kwargs)


class TestConfidence:
    """Confidence heuristic"""

    def test_base_confidence(self):
        assert calculate_confidence("short", 0, 0.7) == pytest.approx(0.8)

    def test_long_output_adds_increment(self):
        assert calculate_confidence("x" * 101, 0, 0.7) == pytest.approx(0.9)

    def test_all_increments_clamped_to_one(self):
        assert calculate_confidence("x" * 101, 501, 0.1) == pytest.approx(1.0)

    def test_boundaries_are_exclusive(self):
        assert calculate_confidence("x" * 100, 500, 0.3) == pytest.approx(0.8)


class TestReadability:
    """Readability heuristic"""

    def test_ideal_band(self):
        content = " ".join(["word"] * 16) + "."
        assert assess_readability(content) == 0.9

    def test_acceptable_band(self):
        content = " ".join(["word"] * 12) + "."
        assert assess_readability(content) == 0.7

    def test_outside_bands(self):
        assert assess_readability("Too short.") == 0.5

    def test_empty_content(self):
        assert assess_readability("") == 0.5


def test_coherence_needs_multiple_sentences():
    assert assess_coherence("Just one sentence") == 0.5
    assert assess_coherence("This is a fine sentence. Here is another one.") == 0.8


def test_seo_effectiveness_uses_length_band_and_keywords():
    title = "Organic SEO Coffee Beans for Everyday Brewing"
    assert 30 <= len(title) <= 60
    assert assess_seo_effectiveness(title, _request(RequestType.TITLE_GENERATION)) == pytest.approx(1.0)

    assert assess_seo_effectiveness("x" * 40, _request(RequestType.TITLE_GENERATION)) == pytest.approx(0.8)
    assert assess_seo_effectiveness("better ranking", _request()) == pytest.approx(0.7)
    assert assess_seo_effectiveness("plain", _request()) == pytest.approx(0.5)


def test_context_terms_and_relevance():
    request = _request(
        resource_type=ResourceType.PRODUCT,
        context=RequestContext(shop_info={"name": "Acme"}),
    )
    assert extract_context_terms(request) == ["product", "name", "Acme"]
    assert assess_relevance("Acme product page", request) == pytest.approx(2 / 3)


def test_relevance_without_context_terms_is_zero():
    assert assess_relevance("anything", _request()) == 0.0


class TestBrandAlignment:
    """Brand alignment heuristic"""

    def test_default_without_guidelines(self):
        assert assess_brand_alignment("anything", _request()) == 0.8

    def test_keyword_share(self):
        request = _request(
            context=RequestContext(brand_guidelines={"keywords": ["eco", "organic"]})
        )
        assert assess_brand_alignment("An eco friendly choice", request) == pytest.approx(0.5)

    def test_avoid_words_penalize(self):
        request = _request(
            context=RequestContext(
                brand_guidelines={"keywords": ["eco", "organic"], "avoidWords": ["cheap"]}
            )
        )
        assert assess_brand_alignment("eco but cheap", request) == pytest.approx(0.3)


def test_assess_quality_scores_are_bounded():
    metrics = assess_quality("Some generated text. Another sentence here!", _request())
    for value in metrics.model_dump().values():
        assert 0.0 <= value <= 1.0
    assert metrics.factual_accuracy == 0.9
    assert 0.0 <= metrics.average <= 1.0
