"""
Maintenance Scheduler Unit Tests
"""

import pytest

from ai_orchestrator.domain.response import AIResponse
from ai_orchestrator.scheduler import MaintenanceScheduler
from ai_orchestrator.services.monitoring import MonitoringSink
from ai_orchestrator.services.rate_limiter import SlidingWindowRateLimiter
from ai_orchestrator.services.response_cache import ResponseCache


@pytest.fixture
def scheduler(settings, clock) -> MaintenanceScheduler:
    return MaintenanceScheduler(
        settings,
        SlidingWindowRateLimiter.from_settings(settings, clock=clock),
        ResponseCache(ttl_seconds=10, clock=clock),
        MonitoringSink.from_settings(settings),
    )


@pytest.mark.asyncio
async def test_start_registers_jobs_and_shutdown_stops(scheduler):
    scheduler.start()
    try:
        assert scheduler.running is True
        assert set(scheduler.job_ids()) == {
            "sweep_rate_limit_windows",
            "purge_expired_cache",
            "collect_metrics",
        }
        # Second start is a no-op
        scheduler.start()
        assert len(scheduler.job_ids()) == 3
    finally:
        scheduler.shutdown()

    assert scheduler.running is False
    assert scheduler.job_ids() == []
    scheduler.shutdown()


@pytest.mark.asyncio
async def test_feature_toggles_skip_jobs(scheduler, settings):
    scheduler.settings = settings.model_copy(update={"FEATURE_CACHING": False, "FEATURE_ANALYTICS": False})
    scheduler.start()
    try:
        assert scheduler.job_ids() == ["sweep_rate_limit_windows"]
    finally:
        scheduler.shutdown()


@pytest.mark.asyncio
async def test_restart_applies_new_settings(scheduler, settings):
    scheduler.start()
    try:
        scheduler.restart(settings.model_copy(update={"FEATURE_ANALYTICS": False}))
        assert scheduler.running is True
        assert "collect_metrics" not in scheduler.job_ids()
    finally:
        scheduler.shutdown()


def test_restart_when_stopped_only_stores_settings(scheduler, settings):
    new_settings = settings.model_copy(update={"METRICS_INTERVAL_SECONDS": 5})
    scheduler.restart(new_settings)
    assert scheduler.running is False
    assert scheduler.settings is new_settings


@pytest.mark.asyncio
async def test_job_bodies_do_their_work(scheduler, clock):
    scheduler.rate_limiter.admit()
    scheduler.cache.store("k", AIResponse(success=True, model="claude-3-sonnet"))
    clock.advance(3600)

    await scheduler.sweep_rate_limit_windows()
    await scheduler.purge_expired_cache()

    assert scheduler.rate_limiter.size() == 0
    assert len(scheduler.cache) == 0


@pytest.mark.asyncio
async def test_job_failures_are_logged_not_raised(scheduler, monkeypatch, caplog):
    def broken():
        raise RuntimeError("boom")

    monkeypatch.setattr(scheduler.rate_limiter, "sweep", broken)
    monkeypatch.setattr(scheduler.cache, "purge_expired", broken)
    monkeypatch.setattr(scheduler.monitoring, "collect_metrics", broken)

    await scheduler.sweep_rate_limit_windows()
    await scheduler.purge_expired_cache()
    await scheduler.collect_metrics()

    assert "Rate limit sweep task failed" in caplog.text
    assert "Cache purge task failed" in caplog.text
    assert "Metrics collection task failed" in caplog.text
