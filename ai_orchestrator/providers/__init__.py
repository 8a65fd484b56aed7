"""
Provider transport module initialization
"""

from ai_orchestrator.providers.base import ProviderResponse, ProviderTransport
from ai_orchestrator.providers.anthropic_client import AnthropicClient

__all__ = [
    "ProviderResponse",
    "ProviderTransport",
    "AnthropicClient",
]
