"""
research.py
-----------
Purpose:
    Access to the shared company research cache: read-through lookup,
    batch listing and the administrative refresh/delete operations.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.verify import get_user_id
from app.infrastructure.observability.logging import get_logger
from app.models.api.contact_response import CompanyResearchListResponse, CompanyResearchResponse
from app.models.domain.research_domain import ResearchResult
from app.services.research_service import research_service

router = APIRouter(prefix="/research", tags=["research"])
logger = get_logger(__name__)

_ERROR_STATUS = {
    "INVALID_DOMAIN": status.HTTP_400_BAD_REQUEST,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
    "API_ERROR": status.HTTP_502_BAD_GATEWAY,
}

MAX_LIST_DOMAINS = 100


def _to_response(result: ResearchResult) -> CompanyResearchResponse:
    if not result.success:
        raise HTTPException(
            status_code=_ERROR_STATUS.get(result.error_code, status.HTTP_502_BAD_GATEWAY),
            detail=result.error or "Research failed",
        )
    return CompanyResearchResponse(
        domain=result.domain, cache_hit=result.cache_hit, research=result.company_research
    )


@router.get("", response_model=CompanyResearchListResponse)
async def list_company_research_endpoint(
    domains: str = Query(..., description="Comma-separated company domains"),
    _: str = Depends(get_user_id),
):
    """Cached research for several domains; never calls the provider."""
    requested = [d for d in (part.strip() for part in domains.split(",")) if d]
    if not requested:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No domains given")
    if len(requested) > MAX_LIST_DOMAINS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {MAX_LIST_DOMAINS} domains per request",
        )

    research = await research_service.list_company_research(requested)
    return CompanyResearchListResponse(research=research, count=len(research))


@router.get("/{domain}", response_model=CompanyResearchResponse)
async def get_company_research_endpoint(
    domain: str,
    cached_only: bool = Query(default=False, description="Never call the provider"),
    _: str = Depends(get_user_id),
):
    """Return cached research for a domain, fetching it on a cache miss."""
    if cached_only:
        cached = await research_service.get_company_research(domain)
        if not cached:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="No cached research for domain"
            )
        return CompanyResearchResponse(domain=cached.domain, cache_hit=True, research=cached)

    return _to_response(await research_service.research_company(domain))


@router.post("/{domain}/refresh", response_model=CompanyResearchResponse)
async def refresh_company_research_endpoint(domain: str, user_id: str = Depends(get_user_id)):
    """Re-fetch from the provider and overwrite the cached row."""
    logger.info("Company research refresh requested", domain=domain, user_id=user_id)
    return _to_response(await research_service.refresh_company_research(domain))


@router.delete("/{domain}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company_research_endpoint(domain: str, user_id: str = Depends(get_user_id)):
    if not await research_service.delete_company_research(domain):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No cached research for domain"
        )
    logger.info("Company research removed", domain=domain, user_id=user_id)
