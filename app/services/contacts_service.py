"""
Contacts service.

CRUD for a user's contacts. Creation classifies the address once:
business contacts get their company_domain and start in "pending" with
research dispatched in the background; personal contacts are stored as
"na" and never researched. Email (and therefore classification) is
immutable after creation.

Service layer returns domain models only - API layer handles HTTP concerns.
"""

from typing import Any

from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import Contact, ContactFields, ResearchStatus
from app.repositories.contact_repository import ContactRepository
from app.services.research_dispatcher import research_dispatcher
from app.utils.email_utils import classify, normalize_email

logger = get_logger(__name__)


class ContactServiceError(Exception):
    """Custom exception for contact service operations."""

    def __init__(self, message: str, user_id: str | None = None):
        super().__init__(message)
        self.user_id = user_id


class InvalidEmailError(ContactServiceError):
    """Address failed validation or could not be classified."""


class DuplicateContactError(ContactServiceError):
    """The user already has a contact with this address."""


def _clean_fields(fields: ContactFields) -> ContactFields:
    cleaned = {}
    for name, value in fields.model_dump().items():
        cleaned[name] = (value.strip() or None) if isinstance(value, str) else value
    return ContactFields(**cleaned)


async def create_contact(user_id: str, email: str, fields: ContactFields | None = None) -> Contact:
    """
    Create a contact and, for business addresses, kick off company research.

    Raises:
        InvalidEmailError: address is malformed or has no classifiable domain
        DuplicateContactError: (user, email) already exists
    """
    normalized = normalize_email(email)
    if not normalized:
        raise InvalidEmailError("Invalid email address", user_id=user_id)

    classification = classify(normalized)
    if not classification.is_valid:
        raise InvalidEmailError("Email domain could not be classified", user_id=user_id)

    research_status: ResearchStatus = "pending" if classification.is_business else "na"
    company_domain = classification.domain if classification.is_business else None

    contact = await ContactRepository.create(
        user_id,
        normalized,
        _clean_fields(fields or ContactFields()),
        company_domain=company_domain,
        research_status=research_status,
    )
    if contact is None:
        raise DuplicateContactError("Contact with this email already exists", user_id=user_id)

    logger.info(
        "Contact created",
        user_id=user_id,
        contact_id=contact.id,
        is_business=classification.is_business,
        company_domain=company_domain,
    )

    if classification.is_business and company_domain:
        research_dispatcher.dispatch(contact.id, company_domain)

    return contact


async def get_contacts(user_id: str, research_status: ResearchStatus | None = None) -> list[Contact]:
    return await ContactRepository.list_for_user(user_id, research_status)


async def get_contact(user_id: str, contact_id: str) -> Contact | None:
    return await ContactRepository.get(user_id, contact_id)


async def update_contact(user_id: str, contact_id: str, changes: dict[str, Any]) -> Contact | None:
    """Update non-email fields; returns None if the contact is not the user's."""
    cleaned = {
        key: (value.strip() or None) if isinstance(value, str) else value
        for key, value in changes.items()
    }
    contact = await ContactRepository.update_fields(user_id, contact_id, cleaned)
    if contact:
        logger.info("Contact updated", user_id=user_id, contact_id=contact_id, fields=list(cleaned))
    return contact


async def delete_contact(user_id: str, contact_id: str) -> bool:
    deleted = await ContactRepository.delete(user_id, contact_id)
    if deleted:
        logger.info("Contact deleted", user_id=user_id, contact_id=contact_id)
    return deleted


async def trigger_contact_research(user_id: str, contact_id: str) -> Contact | None:
    """
    Manually re-dispatch research for one business contact.

    Returns None when the contact does not exist or is personal ("na").
    """
    contact = await ContactRepository.get(user_id, contact_id)
    if not contact or not contact.company_domain or contact.research_status == "na":
        return None

    research_dispatcher.dispatch(contact.id, contact.company_domain)
    logger.info(
        "Contact research re-triggered",
        user_id=user_id,
        contact_id=contact_id,
        previous_status=contact.research_status,
    )
    return contact
