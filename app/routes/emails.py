"""
emails.py
---------
Purpose:
    AI email generation, saving drafts, sending and delivery statistics.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.verify import get_user_id
from app.infrastructure.observability.logging import get_logger
from app.models.api.email_request import GenerateEmailRequest, SaveEmailRequest, SendBatchRequest
from app.models.api.email_response import EmailListResponse, GenerateEmailResponse
from app.models.domain.email_domain import (
    BatchSendResult,
    Email,
    EmailStatus,
    SendEmailResponse,
)
from app.services.contacts_service import get_contact
from app.services.email_generation.ai_service import email_generation_service
from app.services.email_service import email_service
from app.services.product_context_service import has_product_context

router = APIRouter(prefix="/emails", tags=["emails"])
logger = get_logger(__name__)

_GENERATION_ERROR_STATUS = {
    "NOT_CONFIGURED": status.HTTP_503_SERVICE_UNAVAILABLE,
    "CONTACT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "MISSING_PRODUCT_CONTEXT": status.HTTP_400_BAD_REQUEST,
    "GENERATION_FAILED": status.HTTP_502_BAD_GATEWAY,
}

_SEND_ERROR_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ALREADY_SENT": status.HTTP_409_CONFLICT,
    "INVALID_STATE": status.HTTP_409_CONFLICT,
    "MISSING_RECIPIENT": status.HTTP_400_BAD_REQUEST,
    "PROVIDER_ERROR": status.HTTP_502_BAD_GATEWAY,
}


@router.post("/generate", response_model=GenerateEmailResponse)
async def generate_email_endpoint(
    request: GenerateEmailRequest, user_id: str = Depends(get_user_id)
):
    contact_id = str(request.contact_id)
    if request.tone or request.focus_on:
        result = await email_generation_service.regenerate_email(
            user_id, contact_id, tone=request.tone, focus_on=request.focus_on
        )
    else:
        result = await email_generation_service.generate_email(
            user_id, contact_id, request.custom_instructions
        )

    if not result.success:
        raise HTTPException(
            status_code=_GENERATION_ERROR_STATUS.get(
                result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            detail=result.error,
        )
    return GenerateEmailResponse(success=True, email=result.email, contact_id=contact_id)


@router.post("", response_model=Email, status_code=status.HTTP_201_CREATED)
async def save_email_endpoint(request: SaveEmailRequest, user_id: str = Depends(get_user_id)):
    """Save generated (or edited) content as a draft."""
    contact = await get_contact(user_id, str(request.contact_id))
    if not contact:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")

    return await email_service.save_draft(
        user_id, contact.id, request.subject, request.body_text, request.body_html
    )


@router.get("", response_model=EmailListResponse)
async def list_emails_endpoint(
    email_status: EmailStatus | None = Query(default=None, alias="status"),
    user_id: str = Depends(get_user_id),
):
    emails = await email_service.get_emails(user_id, email_status)
    return EmailListResponse(emails=emails, count=len(emails))


@router.get("/stats")
async def email_stats_endpoint(user_id: str = Depends(get_user_id)) -> dict[str, int]:
    return await email_service.get_email_stats(user_id)


@router.get("/status")
async def email_service_status_endpoint(user_id: str = Depends(get_user_id)):
    return {
        "delivery": email_service.get_email_service_status(),
        "generation": email_generation_service.status(),
        "product_context_set": await has_product_context(user_id),
    }


@router.post("/send-batch", response_model=BatchSendResult)
async def send_batch_endpoint(request: SendBatchRequest, user_id: str = Depends(get_user_id)):
    email_ids = [str(email_id) for email_id in request.email_ids]
    return await email_service.send_batch_emails(email_ids, user_id)


@router.get("/{email_id}", response_model=Email)
async def get_email_endpoint(email_id: uuid.UUID, user_id: str = Depends(get_user_id)):
    email = await email_service.get_email(user_id, str(email_id))
    if not email:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Email not found")
    return email


@router.delete("/{email_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_email_endpoint(email_id: uuid.UUID, user_id: str = Depends(get_user_id)):
    if not await email_service.delete_email(user_id, str(email_id)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Email not found")


@router.post("/{email_id}/send", response_model=SendEmailResponse)
async def send_email_endpoint(email_id: uuid.UUID, user_id: str = Depends(get_user_id)):
    result = await email_service.send_saved_email(str(email_id), user_id)
    if not result.success:
        raise HTTPException(
            status_code=_SEND_ERROR_STATUS.get(
                result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            detail={"error": result.error, "error_code": result.error_code},
        )
    return result
