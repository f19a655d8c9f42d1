"""
webhooks.py
-----------
Purpose:
    SendGrid event webhook. Each POST carries a list of events; supported
    ones update the matching email's delivery status. Unknown events and
    unknown message ids are counted as ignored, never rejected.
"""

from fastapi import APIRouter

from app.infrastructure.observability.logging import get_logger
from app.models.api.email_request import SendGridEvent
from app.models.api.email_response import WebhookResponse
from app.services.email_service import email_service

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = get_logger(__name__)

SENDGRID_EVENT_MAP = {
    "delivered": "delivered",
    "open": "opened",
    "click": "clicked",
    "bounce": "bounced",
    "dropped": "bounced",
}


def provider_message_id(sg_message_id: str) -> str:
    """sg_message_id is '<X-Message-Id>.filterXXXX...'; keep the header part."""
    return sg_message_id.split(".", 1)[0]


@router.post("/sendgrid", response_model=WebhookResponse)
async def sendgrid_webhook(events: list[SendGridEvent]):
    processed = 0

    for item in events:
        tracking_event = SENDGRID_EVENT_MAP.get(item.event)
        if not tracking_event or not item.sg_message_id:
            continue

        if await email_service.update_email_tracking(
            provider_message_id(item.sg_message_id), tracking_event
        ):
            processed += 1

    logger.info(
        "SendGrid webhook processed",
        received=len(events),
        processed=processed,
    )
    return WebhookResponse(
        received=len(events), processed=processed, ignored=len(events) - processed
    )
