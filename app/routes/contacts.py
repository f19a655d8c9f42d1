"""
contacts.py
-----------
Purpose:
    Contact CRUD plus research re-triggering and research statistics.

    Creating a business contact returns immediately; company research runs
    in the background and is reflected in research_status.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.verify import get_user_id
from app.infrastructure.observability.logging import get_logger
from app.models.api.contact_request import (
    CreateContactRequest,
    RetryResearchRequest,
    UpdateContactRequest,
)
from app.models.api.contact_response import (
    ContactListResponse,
    ContactResponse,
    PendingResearchResponse,
    ResearchStatsResponse,
    ResearchTriggerResponse,
    RetryResearchResponse,
)
from app.models.domain.contact_domain import ContactFields, ResearchStatus
from app.services.contacts_service import (
    DuplicateContactError,
    InvalidEmailError,
    create_contact,
    delete_contact,
    get_contact,
    get_contacts,
    trigger_contact_research,
    update_contact,
)
from app.services.research_dispatcher import research_dispatcher
from app.services.research_service import research_service

router = APIRouter(prefix="/contacts", tags=["contacts"])
logger = get_logger(__name__)


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def create_contact_endpoint(
    request: CreateContactRequest, user_id: str = Depends(get_user_id)
):
    fields = ContactFields(**request.model_dump(exclude={"email"}))
    try:
        contact = await create_contact(user_id, request.email, fields)
    except InvalidEmailError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except DuplicateContactError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return ContactResponse.from_contact(contact)


@router.get("", response_model=ContactListResponse)
async def list_contacts_endpoint(
    research_status: ResearchStatus | None = Query(default=None),
    user_id: str = Depends(get_user_id),
):
    contacts = await get_contacts(user_id, research_status)
    return ContactListResponse(contacts=contacts, count=len(contacts))


# Static paths come before /{contact_id}
@router.get("/research/stats", response_model=ResearchStatsResponse)
async def research_stats_endpoint(user_id: str = Depends(get_user_id)):
    stats = await research_service.get_research_stats(user_id)
    return ResearchStatsResponse(stats=stats, total=sum(stats.values()))


@router.get("/research/pending", response_model=PendingResearchResponse)
async def pending_research_endpoint(user_id: str = Depends(get_user_id)):
    contacts = await research_service.get_pending_research_contacts(user_id)
    return PendingResearchResponse(contacts=contacts, count=len(contacts))


@router.post(
    "/research/retry",
    response_model=RetryResearchResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def retry_research_endpoint(
    request: RetryResearchRequest | None = None, user_id: str = Depends(get_user_id)
):
    """Re-run unfinished research in the background; progress shows in /contacts/research/stats."""
    include_failed = request.include_failed if request else False
    research_dispatcher.dispatch_retry(user_id, include_failed=include_failed)
    return RetryResearchResponse(
        success=True, message="Research retry started", include_failed=include_failed
    )


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact_endpoint(contact_id: uuid.UUID, user_id: str = Depends(get_user_id)):
    contact = await get_contact(user_id, str(contact_id))
    if not contact:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return ContactResponse.from_contact(contact)


@router.patch("/{contact_id}", response_model=ContactResponse)
async def update_contact_endpoint(
    contact_id: uuid.UUID, request: UpdateContactRequest, user_id: str = Depends(get_user_id)
):
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    contact = await update_contact(user_id, str(contact_id), changes)
    if not contact:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return ContactResponse.from_contact(contact)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact_endpoint(contact_id: uuid.UUID, user_id: str = Depends(get_user_id)):
    if not await delete_contact(user_id, str(contact_id)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")


@router.post(
    "/{contact_id}/research",
    response_model=ResearchTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_research_endpoint(contact_id: uuid.UUID, user_id: str = Depends(get_user_id)):
    contact = await trigger_contact_research(user_id, str(contact_id))
    if not contact:
        existing = await get_contact(user_id, str(contact_id))
        if not existing:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Personal contacts are not researched",
        )

    return ResearchTriggerResponse(
        success=True,
        message="Research started",
        contact_id=contact.id,
        domain=contact.company_domain,
    )
