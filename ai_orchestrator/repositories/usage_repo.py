"""
Usage Tracking Repository

Defines the usage-tracking sink interface and the in-process implementations.
Durable persistence belongs to the embedding application, which supplies its
own UsageRepository.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Optional

from ai_orchestrator.domain.usage import UsageRecord, UsageSummary

logger = logging.getLogger(__name__)


class UsageRepository(ABC):
    """Usage Tracking Repository Interface"""

    @abstractmethod
    async def record(self, record: UsageRecord) -> None:
        """
        Report one completed request

        Fire-and-forget: callers do not consume a result.

        Args:
            record: Usage record
        """
        pass


class LoggingUsageRepository(UsageRepository):
    """Reports usage to the log only"""

    async def record(self, record: UsageRecord) -> None:
        logger.info(
            "Usage tracked: shop_id=%s type=%s model=%s tokens=%s/%s/%s cost=%.6f timestamp=%s",
            record.shop_id,
            record.request_type.value,
            record.model,
            record.tokens_used.input,
            record.tokens_used.output,
            record.tokens_used.total,
            record.cost,
            record.timestamp.isoformat(),
        )


class InMemoryUsageRepository(UsageRepository):
    """Keeps records in memory and summarizes them per shop"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[UsageRecord] = []

    async def record(self, record: UsageRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list_records(self, shop_id: Optional[str] = None) -> list[UsageRecord]:
        with self._lock:
            records = list(self._records)
        if shop_id is None:
            return records
        return [r for r in records if r.shop_id == shop_id]

    def summarize(self, shop_id: str) -> UsageSummary:
        records = self.list_records(shop_id)
        summary = UsageSummary(shop_id=shop_id)
        if not records:
            return summary

        cost_by_model: dict[str, float] = defaultdict(float)
        cost_by_type: dict[str, float] = defaultdict(float)
        for r in records:
            cost_by_model[r.model] += r.cost
            cost_by_type[r.request_type.value] += r.cost

        successful = sum(1 for r in records if r.success)
        total_cost = sum(r.cost for r in records)
        total_tokens = sum(r.tokens_used.total for r in records)

        return UsageSummary(
            shop_id=shop_id,
            total_requests=len(records),
            successful_requests=successful,
            failed_requests=len(records) - successful,
            input_tokens=sum(r.tokens_used.input for r in records),
            output_tokens=sum(r.tokens_used.output for r in records),
            total_tokens=total_tokens,
            total_cost=total_cost,
            cost_by_model=dict(cost_by_model),
            cost_by_type=dict(cost_by_type),
            average_latency_ms=sum(r.latency_ms for r in records) / len(records),
            cost_per_successful_request=total_cost / successful if successful else 0.0,
            tokens_per_request=total_tokens / len(records),
        )

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
