"""
Tests for contact creation, classification and research dispatch.
"""

from unittest.mock import MagicMock

import pytest

from app.models.domain.contact_domain import ContactFields
from app.services import contacts_service
from app.services.contacts_service import DuplicateContactError, InvalidEmailError
from app.services.enrichment.clearbit_client import MockEnrichmentProvider
from app.services.research_dispatcher import ResearchTaskDispatcher
from app.services.research_service import ResearchService


@pytest.fixture
def dispatcher(monkeypatch):
    fake = MagicMock()
    monkeypatch.setattr(contacts_service, "research_dispatcher", fake)
    return fake


@pytest.fixture(autouse=True)
def repo(monkeypatch, contact_repo):
    monkeypatch.setattr(contacts_service, "ContactRepository", contact_repo)
    return contact_repo


@pytest.mark.asyncio
async def test_business_contact_is_pending_and_dispatched(dispatcher):
    contact = await contacts_service.create_contact(
        "user-123", "CEO@Stripe.com", ContactFields(first_name="  Pat ", company="")
    )

    assert contact.email == "ceo@stripe.com"
    assert contact.company_domain == "stripe.com"
    assert contact.research_status == "pending"
    assert contact.is_business_contact is True
    assert contact.first_name == "Pat"
    assert contact.company is None
    dispatcher.dispatch.assert_called_once_with(contact.id, "stripe.com")


@pytest.mark.asyncio
async def test_personal_contact_is_never_researched(dispatcher):
    contact = await contacts_service.create_contact("user-123", "john@gmail.com")

    assert contact.company_domain is None
    assert contact.research_status == "na"
    assert contact.is_business_contact is False
    dispatcher.dispatch.assert_not_called()


@pytest.mark.asyncio
async def test_invalid_email_rejected(dispatcher):
    with pytest.raises(InvalidEmailError):
        await contacts_service.create_contact("user-123", "not-an-email")
    dispatcher.dispatch.assert_not_called()


@pytest.mark.asyncio
async def test_duplicate_contact_rejected(dispatcher):
    await contacts_service.create_contact("user-123", "ceo@stripe.com")

    with pytest.raises(DuplicateContactError):
        await contacts_service.create_contact("user-123", "CEO@stripe.com")
    assert dispatcher.dispatch.call_count == 1


@pytest.mark.asyncio
async def test_trigger_research_skips_personal_contacts(dispatcher, repo):
    personal = repo.add("john@gmail.com", research_status="na")
    business = repo.add("ceo@stripe.com", company_domain="stripe.com", research_status="failed")

    assert await contacts_service.trigger_contact_research("user-123", personal.id) is None
    assert await contacts_service.trigger_contact_research("user-123", "missing") is None

    result = await contacts_service.trigger_contact_research("user-123", business.id)
    assert result.id == business.id
    dispatcher.dispatch.assert_called_once_with(business.id, "stripe.com")


@pytest.mark.asyncio
async def test_other_users_contacts_are_invisible(dispatcher, repo):
    contact = repo.add("ceo@stripe.com", company_domain="stripe.com", user_id="someone-else")

    assert await contacts_service.get_contact("user-123", contact.id) is None
    assert await contacts_service.trigger_contact_research("user-123", contact.id) is None


@pytest.mark.asyncio
async def test_created_business_contact_is_researched_in_background(
    monkeypatch, contact_repo, research_repo
):
    service = ResearchService(
        MockEnrichmentProvider(),
        contact_repository=contact_repo,
        research_repository=research_repo,
        batch_delay_seconds=0,
    )
    background = ResearchTaskDispatcher(service)
    monkeypatch.setattr(contacts_service, "research_dispatcher", background)

    contact = await contacts_service.create_contact("user-123", "ceo@stripe.com")

    assert contact.research_status == "pending"
    assert background.in_flight == 1

    await background.drain()

    assert contact_repo.contacts[contact.id].research_status == "complete"
    assert research_repo.rows["stripe.com"].company_name == "Stripe"
    assert contact_repo.status_history == [(contact.id, "processing"), (contact.id, "complete")]
