"""
Email generation, delivery and webhook request models.
"""

import uuid

from pydantic import BaseModel, ConfigDict, Field


class GenerateEmailRequest(BaseModel):
    """Request for generating an email for a contact."""

    contact_id: uuid.UUID = Field(..., description="Target contact ID")
    custom_instructions: str | None = Field(default=None, max_length=2000)
    tone: str | None = Field(default=None, max_length=50, description="Regenerate with this tone")
    focus_on: str | None = Field(default=None, max_length=500, description="Topic to emphasize")


class SaveEmailRequest(BaseModel):
    """Request for saving a (generated or edited) email as a draft."""

    contact_id: uuid.UUID
    subject: str = Field(..., min_length=1, max_length=300)
    body_text: str = Field(..., min_length=1)
    body_html: str | None = None


class SendBatchRequest(BaseModel):
    email_ids: list[uuid.UUID] = Field(..., min_length=1, max_length=100)


class SendGridEvent(BaseModel):
    """One item of a SendGrid event webhook POST (extra fields ignored)."""

    model_config = ConfigDict(extra="allow")

    event: str
    email: str | None = None
    sg_message_id: str | None = None
    timestamp: int | None = None
