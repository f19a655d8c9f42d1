"""
Tests for cache-first company research and the contact research state machine.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.models.domain.research_domain import CompanyData, EnrichmentResult
from app.services.enrichment.clearbit_client import MockEnrichmentProvider
from app.services.research_service import ResearchService


class CountingProvider(MockEnrichmentProvider):
    def __init__(self):
        self.calls: list[str] = []

    async def enrich_company(self, domain: str) -> EnrichmentResult:
        self.calls.append(domain)
        return await super().enrich_company(domain)


@pytest.fixture
def provider():
    return CountingProvider()


@pytest.fixture
def service(provider, contact_repo, research_repo):
    return ResearchService(
        provider,
        contact_repository=contact_repo,
        research_repository=research_repo,
        batch_delay_seconds=0,
    )


@pytest.mark.asyncio
async def test_research_company_miss_then_hit(service, provider, research_repo):
    first = await service.research_company("Stripe.com")
    second = await service.research_company("stripe.com")

    assert first.success is True
    assert first.cache_hit is False
    assert second.cache_hit is True
    assert second.company_research == first.company_research
    assert provider.calls == ["stripe.com"]
    assert research_repo.upserts == 1
    assert list(research_repo.rows) == ["stripe.com"]


@pytest.mark.asyncio
async def test_research_company_failure_is_not_cached(service, provider, research_repo):
    result = await service.research_company("unknown-domain.com")

    assert result.success is False
    assert result.status == "failed"
    assert result.error_code == "NOT_FOUND"
    assert research_repo.rows == {}


@pytest.mark.asyncio
async def test_research_company_requires_domain(service, provider):
    result = await service.research_company("   ")

    assert result.success is False
    assert result.error_code == "INVALID_DOMAIN"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_get_company_research_never_calls_provider(service, provider):
    assert await service.get_company_research("stripe.com") is None
    assert provider.calls == []


@pytest.mark.asyncio
async def test_refresh_bypasses_cache(service, provider, research_repo):
    await service.research_company("stripe.com")
    refreshed = await service.refresh_company_research("stripe.com")

    assert refreshed.success is True
    assert provider.calls == ["stripe.com", "stripe.com"]
    assert research_repo.upserts == 2
    assert len(research_repo.rows) == 1


@pytest.mark.asyncio
async def test_business_contact_research_completes(service, contact_repo, research_repo):
    contact = contact_repo.add("ceo@stripe.com", company_domain="stripe.com")

    result = await service.research_contact_company(contact.id, "stripe.com")

    assert result.success is True
    assert result.contact_id == contact.id
    assert contact_repo.contacts[contact.id].research_status == "complete"
    assert contact_repo.status_history == [(contact.id, "processing"), (contact.id, "complete")]
    assert "stripe.com" in research_repo.rows


@pytest.mark.asyncio
async def test_provider_failure_marks_contact_failed(service, contact_repo):
    contact = contact_repo.add("a@unknown-domain.com", company_domain="unknown-domain.com")

    result = await service.research_contact_company(contact.id, "unknown-domain.com")

    assert result.success is False
    assert contact_repo.contacts[contact.id].research_status == "failed"


@pytest.mark.asyncio
async def test_persistence_error_marks_contact_failed(service, contact_repo, research_repo):
    contact = contact_repo.add("ceo@stripe.com", company_domain="stripe.com")
    research_repo.upsert = AsyncMock(side_effect=RuntimeError("disk full"))

    result = await service.research_contact_company(contact.id, "stripe.com")

    assert result.success is False
    assert "disk full" in result.error
    assert contact_repo.contacts[contact.id].research_status == "failed"


@pytest.mark.asyncio
async def test_failure_status_write_errors_are_swallowed(service, contact_repo):
    contact = contact_repo.add("ceo@stripe.com", company_domain="stripe.com")
    contact_repo.fail_status_updates_with = RuntimeError("database unavailable")

    result = await service.research_contact_company(contact.id, "stripe.com")

    assert result.success is False
    assert result.status == "failed"
    assert contact_repo.contacts[contact.id].research_status == "pending"


@pytest.mark.asyncio
async def test_batch_keeps_order_and_isolates_failures(service, contact_repo):
    good = contact_repo.add("a@stripe.com", company_domain="stripe.com")
    bad = contact_repo.add("b@unknown-domain.com", company_domain="unknown-domain.com")
    other = contact_repo.add("c@acme.io", company_domain="acme.io")

    results = await service.batch_research_contacts(
        [(good.id, "stripe.com"), (bad.id, "unknown-domain.com"), (other.id, "acme.io")],
        concurrency=2,
    )

    assert [r.contact_id for r in results] == [good.id, bad.id, other.id]
    assert [r.success for r in results] == [True, False, True]


@pytest.mark.asyncio
async def test_batch_sleeps_only_between_windows(service, contact_repo, monkeypatch):
    sleeps: list[float] = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    service.batch_delay_seconds = 1.0
    items = [
        (contact_repo.add(f"u{i}@acme{i}.com", company_domain=f"acme{i}.com").id, f"acme{i}.com")
        for i in range(7)
    ]

    results = await service.batch_research_contacts(items, concurrency=3)

    assert len(results) == 7
    assert sleeps == [1.0, 1.0]


@pytest.mark.asyncio
async def test_batch_rejects_invalid_concurrency(service):
    with pytest.raises(ValueError):
        await service.batch_research_contacts([("id", "acme.io")], concurrency=0)


@pytest.mark.asyncio
async def test_research_stats_zero_initialised(service, contact_repo):
    contact_repo.add("a@stripe.com", company_domain="stripe.com")
    contact_repo.add("b@gmail.com", research_status="na")

    stats = await service.get_research_stats("user-123")

    assert stats == {"pending": 1, "processing": 0, "complete": 0, "failed": 0, "na": 1}


@pytest.mark.asyncio
async def test_retry_user_research_selects_statuses(service, contact_repo):
    pending = contact_repo.add("a@stripe.com", company_domain="stripe.com")
    stuck = contact_repo.add("b@acme.io", company_domain="acme.io", research_status="processing")
    failed = contact_repo.add("c@globex.com", company_domain="globex.com", research_status="failed")
    contact_repo.add("d@gmail.com", research_status="na")

    results = await service.retry_user_research("user-123")
    assert {r.contact_id for r in results} == {pending.id, stuck.id}

    results = await service.retry_user_research("user-123", include_failed=True)
    assert {r.contact_id for r in results} == {failed.id}


@pytest.mark.asyncio
async def test_domain_is_overwritten_with_normalized_key(contact_repo, research_repo):
    provider = AsyncMock()
    provider.name = "stub"
    provider.enrich_company.return_value = EnrichmentResult.ok(
        CompanyData(domain="STRIPE.COM", company_name="Stripe")
    )
    service = ResearchService(
        provider, contact_repository=contact_repo, research_repository=research_repo
    )

    result = await service.research_company("  Stripe.COM ")

    assert result.company_research.domain == "stripe.com"
    provider.enrich_company.assert_awaited_once_with("stripe.com")


@pytest.mark.asyncio
async def test_personal_contact_stays_na(service, provider, contact_repo):
    contact = contact_repo.add("john@gmail.com", research_status="na")

    result = await service.research_contact_company(contact.id, "gmail.com")

    assert result.success is False
    assert result.error_code == "NOT_RESEARCHABLE"
    assert provider.calls == []
    assert contact_repo.status_history == []
    assert contact_repo.contacts[contact.id].research_status == "na"


@pytest.mark.asyncio
async def test_batch_leaves_personal_contacts_in_na(service, provider, contact_repo):
    personal = contact_repo.add("john@gmail.com", research_status="na")
    business = contact_repo.add("ceo@stripe.com", company_domain="stripe.com")

    results = await service.batch_research_contacts(
        [(personal.id, "gmail.com"), (business.id, "stripe.com")]
    )

    assert [r.success for r in results] == [False, True]
    assert provider.calls == ["stripe.com"]
    assert contact_repo.contacts[personal.id].research_status == "na"
    assert contact_repo.contacts[business.id].research_status == "complete"


@pytest.mark.asyncio
async def test_missing_contact_is_not_researched(service, provider):
    result = await service.research_contact_company("gone", "stripe.com")

    assert result.error_code == "NOT_RESEARCHABLE"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_concurrent_research_of_one_domain_stores_one_row(
    contact_repo, research_repo
):
    both_missed = asyncio.Event()
    callers: list[str] = []

    class SlowProvider(MockEnrichmentProvider):
        async def enrich_company(self, domain: str) -> EnrichmentResult:
            callers.append(domain)
            if len(callers) == 2:
                both_missed.set()
            await both_missed.wait()
            return await super().enrich_company(domain)

    service = ResearchService(
        SlowProvider(), contact_repository=contact_repo, research_repository=research_repo
    )

    first, second = await asyncio.gather(
        service.research_company("acme.io"), service.research_company("ACME.io")
    )

    assert first.success is True
    assert second.success is True
    assert callers == ["acme.io", "acme.io"]
    assert list(research_repo.rows) == ["acme.io"]
    assert research_repo.upserts == 2


@pytest.mark.asyncio
async def test_list_company_research_normalizes_and_dedupes(service, research_repo):
    await service.research_company("stripe.com")
    await service.research_company("acme.io")

    research = await service.list_company_research([" Stripe.com", "stripe.com", "", "acme.io"])

    assert sorted(r.domain for r in research) == ["acme.io", "stripe.com"]


@pytest.mark.asyncio
async def test_delete_company_research(service, research_repo):
    await service.research_company("stripe.com")

    assert await service.delete_company_research("STRIPE.com") is True
    assert research_repo.rows == {}
    assert await service.delete_company_research("stripe.com") is False


@pytest.mark.asyncio
async def test_pending_research_contacts_only_lists_pending(service, contact_repo):
    pending = contact_repo.add("a@stripe.com", company_domain="stripe.com")
    contact_repo.add("b@acme.io", company_domain="acme.io", research_status="complete")
    contact_repo.add("c@gmail.com", research_status="na")
    contact_repo.add("d@globex.com", company_domain="globex.com", user_id="someone-else")

    contacts = await service.get_pending_research_contacts("user-123")

    assert [c.id for c in contacts] == [pending.id]
