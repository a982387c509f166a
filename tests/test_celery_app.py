"""
Recurring Billing Scheduler - Celery Wiring Tests
"""

import asyncio

import pytest

from billing_scheduler.celery_app import celery_app
from billing_scheduler.tasks import celery_tasks


class TestBeatSchedule:
    def test_daily_and_weekly_entries(self):
        schedule = celery_app.conf.beat_schedule

        assert schedule["run-daily-billing-jobs"]["task"] == celery_tasks.run_daily_jobs_task.name
        assert schedule["run-weekly-billing-jobs"]["task"] == celery_tasks.run_weekly_jobs_task.name

    def test_weekly_entry_runs_on_monday(self):
        crontab = celery_app.conf.beat_schedule["run-weekly-billing-jobs"]["schedule"]

        assert crontab.day_of_week == {1}
        assert crontab.minute == {0}


class TestTaskEntryPoints:
    def test_run_async_returns_result(self):
        async def answer():
            return 42

        try:
            assert celery_tasks.run_async(answer()) == 42
        finally:
            asyncio.set_event_loop(None)

    def test_task_runs_coroutine_through_run_async(self, monkeypatch):
        seen = []

        def fake_run_async(coro):
            seen.append(coro.__name__)
            coro.close()
            return {"job": "daily"}

        monkeypatch.setattr(celery_tasks, "run_async", fake_run_async)

        assert celery_tasks.run_daily_jobs_task() == {"job": "daily"}
        assert seen == ["_run_daily_jobs"]

    @pytest.mark.asyncio
    async def test_daily_jobs_return_serialisable_report(self, orchestrator, test_template, monkeypatch):
        monkeypatch.setattr(celery_tasks, "build_orchestrator", lambda: orchestrator)

        result = await celery_tasks._run_daily_jobs()

        assert result["job"] == "daily"
        assert result["tenants"][0]["tenant_id"] == str(test_template.tenant_id)
        assert isinstance(result["started_at"], str)

    @pytest.mark.asyncio
    async def test_weekly_jobs_return_serialisable_report(self, orchestrator, test_tenant, monkeypatch):
        monkeypatch.setattr(celery_tasks, "build_orchestrator", lambda: orchestrator)

        result = await celery_tasks._run_weekly_jobs()

        assert result["job"] == "weekly"
        assert result["tenants_succeeded"] == 1
