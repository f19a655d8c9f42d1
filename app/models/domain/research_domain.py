"""
Company research domain models.

CompanyData is what an enrichment provider returns; CompanyResearch is the
persisted, cross-user cache row keyed by lower-cased domain.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.models.domain.contact_domain import ResearchStatus

EnrichmentErrorCode = Literal["NOT_FOUND", "API_ERROR", "RATE_LIMITED", "INVALID_DOMAIN"]


class CompanyData(BaseModel):
    domain: str
    company_name: str | None = None
    industry: str | None = None
    description: str | None = None
    employee_count: str | None = None
    location: str | None = None
    website: str | None = None
    linkedin_url: str | None = None
    twitter_url: str | None = None
    technologies: list[str] = Field(default_factory=list)
    raw_data: dict[str, Any] | None = None


class CompanyResearch(CompanyData):
    created_at: datetime
    updated_at: datetime


class EnrichmentError(BaseModel):
    code: EnrichmentErrorCode
    message: str


class EnrichmentResult(BaseModel):
    """Tagged result of a provider lookup: exactly one of data / error is set."""

    success: bool
    data: CompanyData | None = None
    error: EnrichmentError | None = None

    @classmethod
    def ok(cls, data: CompanyData) -> "EnrichmentResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: EnrichmentErrorCode, message: str) -> "EnrichmentResult":
        return cls(success=False, error=EnrichmentError(code=code, message=message))


ResearchErrorCode = Literal[
    "NOT_FOUND", "API_ERROR", "RATE_LIMITED", "INVALID_DOMAIN", "NOT_RESEARCHABLE"
]


class ResearchResult(BaseModel):
    """Outcome of researching one domain, optionally on behalf of a contact."""

    success: bool
    domain: str
    status: ResearchStatus
    contact_id: str | None = None
    company_research: CompanyResearch | None = None
    cache_hit: bool = False
    error: str | None = None
    error_code: ResearchErrorCode | None = None
