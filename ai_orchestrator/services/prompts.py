"""
Prompt Construction

Purpose-specific system instructions and result kind mapping by request type.
"""

from ai_orchestrator.domain.request import AIRequest, RequestType
from ai_orchestrator.domain.response import ResultKind

SYSTEM_PREAMBLE = "You are an expert SEO analyst specializing in e-commerce and Shopify stores. "

SYSTEM_INSTRUCTIONS: dict[RequestType, str] = {
    RequestType.SEO_ANALYSIS: (
        "Analyze the provided content for SEO opportunities and issues. "
        "Provide specific, actionable recommendations."
    ),
    RequestType.TITLE_GENERATION: (
        "Generate compelling, SEO-optimized titles that will improve click-through rates and search rankings."
    ),
    RequestType.META_GENERATION: (
        "Create engaging meta descriptions that encourage clicks while incorporating relevant keywords naturally."
    ),
    RequestType.CONTENT_OPTIMIZATION: (
        "Optimize the provided content for search engines while maintaining readability and user engagement."
    ),
    RequestType.KEYWORD_ANALYSIS: (
        "Analyze keyword usage and suggest improvements for better search visibility and ranking."
    ),
    RequestType.COMPETITOR_ANALYSIS: (
        "Compare the provided content against competitors and identify opportunities for improvement."
    ),
    RequestType.SCHEMA_GENERATION: (
        "Generate appropriate schema.org structured data markup for the provided content."
    ),
    RequestType.IMAGE_ALT_GENERATION: (
        "Create descriptive, SEO-friendly alt text for images that improves accessibility and search visibility."
    ),
}

DEFAULT_INSTRUCTION = "Provide SEO analysis and recommendations based on current best practices."
JSON_SUFFIX = " Always respond with valid JSON format."

RESULT_KINDS: dict[RequestType, ResultKind] = {
    RequestType.TITLE_GENERATION: ResultKind.TITLE,
    RequestType.META_GENERATION: ResultKind.DESCRIPTION,
    RequestType.CONTENT_OPTIMIZATION: ResultKind.CONTENT,
    RequestType.KEYWORD_ANALYSIS: ResultKind.KEYWORDS,
    RequestType.SCHEMA_GENERATION: ResultKind.SCHEMA,
    RequestType.IMAGE_ALT_GENERATION: ResultKind.ALT_TEXT,
}


def build_system_message(request: AIRequest) -> str:
    message = SYSTEM_PREAMBLE + SYSTEM_INSTRUCTIONS.get(request.type, DEFAULT_INSTRUCTION)
    if request.parameters.wants_json:
        message += JSON_SUFFIX
    return message


def result_kind_for(request_type: RequestType) -> ResultKind:
    return RESULT_KINDS.get(request_type, ResultKind.ANALYSIS)
