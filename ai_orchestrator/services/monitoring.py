"""
Monitoring Sink Module

Bounded history of per-request samples with threshold alerts and periodic
rolling aggregates.
"""

import logging
import threading
from collections import deque
from functools import lru_cache
from typing import Optional

import psutil

from ai_orchestrator.config import Settings
from ai_orchestrator.domain.monitoring import (
    AlertSeverity,
    AlertType,
    MetricsSnapshot,
    MonitoringAlert,
    MonitoringSample,
    ResourceUsage,
)
from ai_orchestrator.domain.response import AIResponse, ErrorType

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
# Reported when quality monitoring is off
DEFAULT_SAMPLE_QUALITY = 0.8


@lru_cache(maxsize=1)
def current_process() -> psutil.Process:
    """Shared handle for this process; cpu_percent is primed so later reads measure an interval"""
    process = psutil.Process()
    process.cpu_percent(interval=None)
    return process


def resource_usage_snapshot() -> ResourceUsage:
    """Process RSS and CPU usage since the previous snapshot; zeros when unavailable"""
    try:
        process = current_process()
        return ResourceUsage(
            memory_mb=process.memory_info().rss / BYTES_PER_MB,
            cpu_percent=process.cpu_percent(interval=None),
        )
    except (OSError, psutil.Error):
        return ResourceUsage()


def build_sample(
    response: AIResponse,
    shop_id: str,
    processing_time_ms: Optional[float] = None,
) -> MonitoringSample:
    """Derive a monitoring sample from a completed response"""
    response_time_ms = float(processing_time_ms if processing_time_ms is not None else response.latency_ms)
    seconds = response_time_ms / 1000
    total_tokens = response.tokens_used.total

    quality = response.quality
    average_quality = quality.average if quality is not None else DEFAULT_SAMPLE_QUALITY

    return MonitoringSample(
        shop_id=shop_id,
        request_id=response.request_id,
        response_time_ms=response_time_ms,
        queue_time_ms=float(response.queue_time_ms or 0),
        tokens_per_second=total_tokens / seconds if seconds > 0 else 0.0,
        average_quality=average_quality if response.success else 0.0,
        success=response.success,
        error_code=response.error.code if response.error else None,
        resource_usage=resource_usage_snapshot(),
        cost=response.cost,
        cost_per_hour=response.cost * 3600 / seconds if seconds > 0 else 0.0,
        cost_per_token=response.cost / total_tokens if total_tokens > 0 else 0.0,
    )


class MonitoringSink:
    """
    Monitoring Sink

    Keeps at most `max_samples` most recent samples (oldest evicted first).
    """

    def __init__(
        self,
        max_samples: int = 1000,
        window_size: int = 60,
        settings: Optional[Settings] = None,
    ) -> None:
        self.window_size = window_size
        self._settings = settings
        self._lock = threading.Lock()
        self._samples: deque[MonitoringSample] = deque(maxlen=max_samples)
        self.last_snapshot: Optional[MetricsSnapshot] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MonitoringSink":
        return cls(
            max_samples=settings.MONITORING_MAX_SAMPLES,
            window_size=settings.MONITORING_WINDOW_SIZE,
            settings=settings,
        )

    def apply_settings(self, settings: Settings) -> None:
        self._settings = settings
        self.window_size = settings.MONITORING_WINDOW_SIZE
        if settings.MONITORING_MAX_SAMPLES != self.max_samples:
            # Shrinking keeps the most recent samples
            with self._lock:
                self._samples = deque(self._samples, maxlen=settings.MONITORING_MAX_SAMPLES)

    @property
    def max_samples(self) -> int:
        return self._samples.maxlen or 0

    def evaluate_alerts(
        self, sample: MonitoringSample, error_type: Optional[ErrorType] = None
    ) -> list[MonitoringAlert]:
        """Check a sample against configured cost and quality thresholds"""
        settings = self._settings
        if settings is None:
            return []

        alerts: list[MonitoringAlert] = []
        if not sample.success:
            is_rate_limit = error_type == ErrorType.RATE_LIMIT
            alerts.append(
                MonitoringAlert(
                    type=AlertType.RATE_LIMIT if is_rate_limit else AlertType.ERROR,
                    severity=AlertSeverity.WARNING,
                    message=f"Request failed: {sample.error_code}",
                    threshold=0.0,
                    actual_value=1.0,
                )
            )
            return alerts

        if sample.cost > settings.COST_LIMIT_PER_REQUEST:
            alerts.append(
                MonitoringAlert(
                    type=AlertType.COST,
                    severity=AlertSeverity.WARNING,
                    message="Request cost above per-request limit",
                    threshold=settings.COST_LIMIT_PER_REQUEST,
                    actual_value=sample.cost,
                )
            )
        if sample.cost_per_hour > settings.RATE_LIMIT_COST_PER_HOUR:
            alerts.append(
                MonitoringAlert(
                    type=AlertType.COST,
                    severity=AlertSeverity.INFO,
                    message="Projected cost per hour above budget",
                    threshold=settings.RATE_LIMIT_COST_PER_HOUR,
                    actual_value=sample.cost_per_hour,
                )
            )
        if sample.average_quality < settings.QUALITY_THRESHOLD_MINIMUM:
            alerts.append(
                MonitoringAlert(
                    type=AlertType.QUALITY,
                    severity=AlertSeverity.CRITICAL,
                    message="Quality below minimum threshold",
                    threshold=settings.QUALITY_THRESHOLD_MINIMUM,
                    actual_value=sample.average_quality,
                )
            )
        elif sample.average_quality < settings.QUALITY_THRESHOLD_WARNING:
            alerts.append(
                MonitoringAlert(
                    type=AlertType.QUALITY,
                    severity=AlertSeverity.WARNING,
                    message="Quality below warning threshold",
                    threshold=settings.QUALITY_THRESHOLD_WARNING,
                    actual_value=sample.average_quality,
                )
            )
        return alerts

    def record(
        self, sample: MonitoringSample, error_type: Optional[ErrorType] = None
    ) -> MonitoringSample:
        """Attach alerts and append; the oldest sample is evicted when full"""
        alerts = self.evaluate_alerts(sample, error_type)
        if alerts:
            sample = sample.model_copy(update={"alerts": sample.alerts + alerts})
            for alert in alerts:
                logger.warning(
                    "Monitoring alert: type=%s severity=%s message=%s threshold=%s actual=%s",
                    alert.type.value,
                    alert.severity.value,
                    alert.message,
                    alert.threshold,
                    alert.actual_value,
                )
        with self._lock:
            self._samples.append(sample)
        return sample

    def record_response(
        self,
        response: AIResponse,
        shop_id: str,
        processing_time_ms: Optional[float] = None,
    ) -> MonitoringSample:
        sample = build_sample(response, shop_id, processing_time_ms)
        error_type = response.error.type if response.error else None
        return self.record(sample, error_type)

    def samples(self) -> list[MonitoringSample]:
        """Copy of the current buffer, oldest first"""
        with self._lock:
            return list(self._samples)

    def aggregate(self) -> Optional[MetricsSnapshot]:
        """Rolling aggregate over the most recent `window_size` samples"""
        with self._lock:
            recent = list(self._samples)[-self.window_size:] if self.window_size > 0 else []
        if not recent:
            return None

        count = len(recent)
        return MetricsSnapshot(
            request_count=count,
            avg_response_time_ms=sum(s.response_time_ms for s in recent) / count,
            avg_cost_per_hour=sum(s.cost_per_hour for s in recent) / count,
            avg_quality=sum(s.average_quality for s in recent) / count,
            error_rate=sum(s.error_rate for s in recent) / count,
            total_cost=sum(s.cost for s in recent),
        )

    def collect_metrics(self) -> Optional[MetricsSnapshot]:
        """Aggregate, log and keep the latest snapshot"""
        snapshot = self.aggregate()
        if snapshot is None:
            return None

        self.last_snapshot = snapshot
        logger.info(
            "Service metrics: avg_response_time=%.2fms avg_cost_per_hour=$%.4f "
            "request_count=%s error_rate=%.2f",
            snapshot.avg_response_time_ms,
            snapshot.avg_cost_per_hour,
            snapshot.request_count,
            snapshot.error_rate,
        )
        return snapshot

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()
        self.last_snapshot = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
