"""
Outbound email domain models.

Status lifecycle: draft -> queued -> sent -> {delivered|opened|clicked|bounced};
failed is reachable from queued and can be retried.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EmailStatus = Literal[
    "draft", "queued", "sent", "delivered", "opened", "clicked", "bounced", "failed"
]

EMAIL_STATUSES: tuple[str, ...] = (
    "draft",
    "queued",
    "sent",
    "delivered",
    "opened",
    "clicked",
    "bounced",
    "failed",
)

ALREADY_SENT_STATUSES = frozenset({"sent", "delivered", "opened", "clicked", "bounced"})
SENDABLE_STATUSES = frozenset({"draft", "queued", "failed"})

TrackingEvent = Literal["delivered", "opened", "clicked", "bounced"]

SendErrorCode = Literal[
    "NOT_FOUND", "ALREADY_SENT", "INVALID_STATE", "MISSING_RECIPIENT", "PROVIDER_ERROR"
]


class Email(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    contact_id: str
    subject: str
    body_text: str
    body_html: str | None = None
    status: EmailStatus = "draft"
    provider_message_id: str | None = None
    sent_at: datetime | None = None
    opened_at: datetime | None = None
    clicked_at: datetime | None = None
    bounced_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class EmailWithRecipient(Email):
    """Email row joined with the recipient fields of its contact."""

    contact_email: str | None = None
    contact_first_name: str | None = None
    contact_last_name: str | None = None

    @property
    def recipient_name(self) -> str | None:
        name = " ".join(p for p in (self.contact_first_name, self.contact_last_name) if p)
        return name or None


class DeliveryResult(BaseModel):
    """What a delivery provider reports for one message."""

    success: bool
    message_id: str | None = None
    error: str | None = None
    mock_mode: bool = False


class SentInfo(BaseModel):
    id: str
    status: EmailStatus
    sent_at: datetime | None
    provider_message_id: str | None


class SendEmailResponse(BaseModel):
    success: bool
    email: SentInfo | None = None
    error: str | None = None
    error_code: SendErrorCode | None = None
    mock_mode: bool = False


class BatchSendItem(BaseModel):
    email_id: str
    success: bool
    error: str | None = None
    error_code: SendErrorCode | None = None


class BatchSendResult(BaseModel):
    success: int = 0
    failed: int = 0
    results: list[BatchSendItem] = Field(default_factory=list)


class ProductContext(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    product_name: str
    product_description: str
    target_audience: str
    pain_points: str
    value_proposition: str
    tone: str = "professional"
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GeneratedEmail(BaseModel):
    subject: str
    body_text: str
    body_html: str


GenerationErrorCode = Literal[
    "NOT_CONFIGURED", "CONTACT_NOT_FOUND", "MISSING_PRODUCT_CONTEXT", "GENERATION_FAILED"
]


class EmailGenerationResult(BaseModel):
    success: bool
    email: GeneratedEmail | None = None
    error: str | None = None
    error_code: GenerationErrorCode | None = None
