"""
Tests for the research status write in ContactRepository; the database is patched out.
"""

from unittest.mock import AsyncMock

import pytest

from app.repositories import contact_repository
from app.repositories.contact_repository import ContactRepository


@pytest.fixture
def execute(monkeypatch):
    mock = AsyncMock(return_value=1)
    monkeypatch.setattr(contact_repository, "execute_query", mock)
    return mock


@pytest.mark.asyncio
async def test_status_write_skips_personal_rows(execute):
    assert await ContactRepository.update_research_status("c1", "processing") is True

    query, params = execute.await_args.args
    assert "research_status <> 'na'" in query
    assert params == ("processing", "c1")


@pytest.mark.asyncio
async def test_status_write_reports_untouched_rows(execute):
    execute.return_value = 0

    assert await ContactRepository.update_research_status("c1", "complete") is False


@pytest.mark.asyncio
async def test_na_cannot_be_written_after_creation(execute):
    with pytest.raises(ValueError):
        await ContactRepository.update_research_status("c1", "na")

    execute.assert_not_awaited()
