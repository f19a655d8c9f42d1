import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.domain.research_domain import ResearchResult
from app.services.research_dispatcher import ResearchTaskDispatcher


def _service_returning(result=None, side_effect=None):
    service = MagicMock()
    service.research_contact_company = AsyncMock(return_value=result, side_effect=side_effect)
    return service


@pytest.mark.asyncio
async def test_dispatch_returns_before_research_finishes():
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_research(contact_id, domain):
        started.set()
        await release.wait()
        return ResearchResult(success=True, domain=domain, status="complete")

    service = MagicMock()
    service.research_contact_company = slow_research
    dispatcher = ResearchTaskDispatcher(service)

    task = dispatcher.dispatch("c1", "stripe.com")
    await started.wait()

    assert dispatcher.in_flight == 1
    release.set()
    await task
    assert dispatcher.in_flight == 0


@pytest.mark.asyncio
async def test_dispatch_swallows_research_errors():
    service = _service_returning(side_effect=RuntimeError("boom"))
    dispatcher = ResearchTaskDispatcher(service)

    task = dispatcher.dispatch("c1", "stripe.com")
    await task

    assert task.exception() is None
    service.research_contact_company.assert_awaited_once_with("c1", "stripe.com")


@pytest.mark.asyncio
async def test_drain_cancels_stragglers():
    async def never_finishes(contact_id, domain):
        await asyncio.Event().wait()

    service = MagicMock()
    service.research_contact_company = never_finishes
    dispatcher = ResearchTaskDispatcher(service)

    task = dispatcher.dispatch("c1", "stripe.com")
    await dispatcher.drain(timeout=0.01)

    assert task.cancelled()
    assert dispatcher.in_flight == 0


@pytest.mark.asyncio
async def test_drain_without_tasks_is_noop():
    await ResearchTaskDispatcher(_service_returning()).drain(timeout=0.01)


@pytest.mark.asyncio
async def test_dispatch_retry_runs_in_background():
    service = MagicMock()
    service.retry_user_research = AsyncMock(
        return_value=[ResearchResult(success=True, domain="stripe.com", status="complete")]
    )
    dispatcher = ResearchTaskDispatcher(service)

    task = dispatcher.dispatch_retry("user-123", include_failed=True)
    assert dispatcher.in_flight == 1
    await task

    service.retry_user_research.assert_awaited_once_with("user-123", include_failed=True)
    assert dispatcher.in_flight == 0


@pytest.mark.asyncio
async def test_dispatch_retry_swallows_errors():
    service = MagicMock()
    service.retry_user_research = AsyncMock(side_effect=RuntimeError("database unavailable"))
    dispatcher = ResearchTaskDispatcher(service)

    task = dispatcher.dispatch_retry("user-123")
    await task

    assert task.exception() is None
