from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

ResearchStatus = Literal["pending", "processing", "complete", "failed", "na"]

RESEARCH_STATUSES: tuple[str, ...] = ("pending", "processing", "complete", "failed", "na")


class Contact(BaseModel):
    """A user's outreach target; email and classification are fixed at creation."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    title: str | None = None
    company: str | None = None
    phone: str | None = None
    notes: str | None = None
    company_domain: str | None = None
    research_status: ResearchStatus = "pending"
    created_at: datetime
    updated_at: datetime

    @property
    def is_business_contact(self) -> bool:
        return self.research_status != "na"

    @property
    def full_name(self) -> str | None:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or None


class ContactFields(BaseModel):
    """Mutable, non-email contact fields used for create and update."""

    first_name: str | None = None
    last_name: str | None = None
    title: str | None = None
    company: str | None = None
    phone: str | None = None
    notes: str | None = None
