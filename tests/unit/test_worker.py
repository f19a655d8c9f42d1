from unittest.mock import AsyncMock

import pytest

from app.jobs import research_backfill_job, worker
from app.models.domain.research_domain import ResearchResult


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_research_backfill_is_registered():
    assert "research_backfill" in worker.JOB_REGISTRY
    assert "research_backfill_all" in worker.JOB_REGISTRY


@pytest.mark.asyncio
async def test_research_backfill_retries_all_users(monkeypatch):
    pool = AsyncMock()
    service = AsyncMock()
    service.retry_user_research.return_value = [
        ResearchResult(success=True, domain="stripe.com", status="complete"),
        ResearchResult(success=False, domain="unknown-domain.com", status="failed"),
    ]
    monkeypatch.setattr(research_backfill_job, "db_pool", pool)
    monkeypatch.setattr(research_backfill_job, "research_service", service)

    summary = await research_backfill_job.run_research_backfill_with_failed()

    assert summary == {"total": 2, "succeeded": 1, "failed": 1}
    service.retry_user_research.assert_awaited_once_with(None, include_failed=True)
    pool.initialize.assert_awaited_once()
    pool.close.assert_awaited_once()
    service.close.assert_awaited_once()
