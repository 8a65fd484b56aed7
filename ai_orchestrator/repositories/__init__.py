"""
Repository module initialization
"""

from ai_orchestrator.repositories.usage_repo import (
    InMemoryUsageRepository,
    LoggingUsageRepository,
    UsageRepository,
)

__all__ = [
    "InMemoryUsageRepository",
    "LoggingUsageRepository",
    "UsageRepository",
]
