from pydantic import BaseModel

from app.models.domain.email_domain import Email, GeneratedEmail


class GenerateEmailResponse(BaseModel):
    success: bool
    email: GeneratedEmail
    contact_id: str


class EmailListResponse(BaseModel):
    emails: list[Email]
    count: int


class WebhookResponse(BaseModel):
    received: int
    processed: int
    ignored: int
