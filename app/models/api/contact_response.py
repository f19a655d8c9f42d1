from pydantic import BaseModel

from app.models.domain.contact_domain import Contact
from app.models.domain.research_domain import CompanyResearch


class ContactResponse(BaseModel):
    """Contact plus the derived business flag."""

    contact: Contact
    is_business_contact: bool

    @classmethod
    def from_contact(cls, contact: Contact) -> "ContactResponse":
        return cls(contact=contact, is_business_contact=contact.is_business_contact)


class ContactListResponse(BaseModel):
    contacts: list[Contact]
    count: int


class ResearchTriggerResponse(BaseModel):
    success: bool
    message: str
    contact_id: str
    domain: str | None = None


class ResearchStatsResponse(BaseModel):
    stats: dict[str, int]
    total: int


class RetryResearchResponse(BaseModel):
    success: bool
    message: str
    include_failed: bool


class CompanyResearchResponse(BaseModel):
    domain: str
    cache_hit: bool
    research: CompanyResearch


class CompanyResearchListResponse(BaseModel):
    research: list[CompanyResearch]
    count: int


class PendingResearchResponse(BaseModel):
    contacts: list[Contact]
    count: int
