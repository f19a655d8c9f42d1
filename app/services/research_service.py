"""
Company research service.

Two layers live here:

1. research_company(domain): cache-first enrichment. The company_research
   table is checked before any provider call; a miss goes to the configured
   provider (Clearbit or mock) and a success is upserted by domain.

2. research_contact_company(contact_id, domain): the per-contact state
   machine pending -> processing -> {complete | failed}. It never raises;
   every outcome is reported through ResearchResult and the contact's
   research_status column.

Contacts classified as personal sit in "na" from creation. The status
write refuses to move them, so research_contact_company() skips them
without calling the provider.
"""

import asyncio
from collections.abc import Sequence
from typing import Any

from app.config import settings
from app.infrastructure.observability.logging import get_logger, log_research_transition
from app.models.domain.contact_domain import Contact, ResearchStatus
from app.models.domain.research_domain import CompanyResearch, ResearchResult
from app.repositories.company_research_repository import CompanyResearchRepository
from app.repositories.contact_repository import ContactRepository
from app.services.enrichment.clearbit_client import (
    EnrichmentProvider,
    build_enrichment_provider,
)

logger = get_logger(__name__)


def normalize_domain(domain: str | None) -> str:
    return (domain or "").strip().lower()


class ResearchService:
    """Cache-first company enrichment plus the contact research state machine."""

    def __init__(
        self,
        provider: EnrichmentProvider | None = None,
        *,
        contact_repository: type[ContactRepository] = ContactRepository,
        research_repository: type[CompanyResearchRepository] = CompanyResearchRepository,
        batch_delay_seconds: float | None = None,
    ):
        self.provider = provider or build_enrichment_provider(settings)
        self.contacts = contact_repository
        self.research = research_repository
        self.batch_delay_seconds = (
            settings.RESEARCH_BATCH_DELAY_SECONDS
            if batch_delay_seconds is None
            else batch_delay_seconds
        )

    # ------------------------------------------------------------------
    # Cache + enrichment
    # ------------------------------------------------------------------

    async def research_company(self, domain: str) -> ResearchResult:
        """
        Return company research for a domain, fetching it only on a cache miss.

        Persistence errors propagate; provider errors are returned as a
        failed ResearchResult.
        """
        normalized = normalize_domain(domain)
        if not normalized:
            return ResearchResult(
                success=False,
                domain=normalized,
                status="failed",
                error="Domain is required",
                error_code="INVALID_DOMAIN",
            )

        cached = await self.research.get(normalized)
        if cached:
            logger.info("Company research cache hit", domain=normalized)
            return ResearchResult(
                success=True,
                domain=normalized,
                status="complete",
                company_research=cached,
                cache_hit=True,
            )

        logger.info("Company research cache miss", domain=normalized, provider=self.provider.name)
        return await self._fetch_and_store(normalized)

    async def refresh_company_research(self, domain: str) -> ResearchResult:
        """Administrative re-fetch that bypasses the cache and overwrites the row."""
        normalized = normalize_domain(domain)
        logger.info("Refreshing company research", domain=normalized, provider=self.provider.name)
        return await self._fetch_and_store(normalized)

    async def _fetch_and_store(self, domain: str) -> ResearchResult:
        enrichment = await self.provider.enrich_company(domain)

        if not enrichment.success:
            error = enrichment.error
            logger.info(
                "Company enrichment failed",
                domain=domain,
                error_code=error.code,
                error=error.message,
            )
            return ResearchResult(
                success=False,
                domain=domain,
                status="failed",
                error=error.message,
                error_code=error.code,
            )

        data = enrichment.data.model_copy(update={"domain": domain})
        stored = await self.research.upsert(data)

        logger.info("Company enrichment stored", domain=domain, company_name=stored.company_name)
        return ResearchResult(
            success=True,
            domain=domain,
            status="complete",
            company_research=stored,
        )

    async def get_company_research(self, domain: str) -> CompanyResearch | None:
        """Cache lookup only; never calls the provider."""
        return await self.research.get(normalize_domain(domain))

    async def list_company_research(self, domains: Sequence[str]) -> list[CompanyResearch]:
        normalized = sorted({normalize_domain(d) for d in domains if normalize_domain(d)})
        return await self.research.list_by_domains(normalized)

    async def delete_company_research(self, domain: str) -> bool:
        deleted = await self.research.delete(normalize_domain(domain))
        logger.info("Company research deleted", domain=normalize_domain(domain), deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Contact state machine
    # ------------------------------------------------------------------

    async def research_contact_company(self, contact_id: str, domain: str) -> ResearchResult:
        """
        Drive one contact through processing to complete/failed.

        Never raises. A failure while recording the failed status is logged
        and swallowed so fire-and-forget callers never see it.
        """
        normalized = normalize_domain(domain)

        try:
            claimed = await self.contacts.update_research_status(contact_id, "processing")
            if not claimed:
                logger.warning(
                    "Contact not researchable; skipping",
                    contact_id=contact_id,
                    domain=normalized,
                )
                return ResearchResult(
                    success=False,
                    domain=normalized,
                    status="failed",
                    contact_id=contact_id,
                    error="Contact is missing or personal",
                    error_code="NOT_RESEARCHABLE",
                )
            log_research_transition(contact_id, normalized, "processing")

            result = await self.research_company(normalized)
            new_status: ResearchStatus = "complete" if result.success else "failed"

            await self.contacts.update_research_status(contact_id, new_status)
            log_research_transition(contact_id, normalized, new_status, result.error)

            return result.model_copy(update={"contact_id": contact_id})

        except Exception as e:
            logger.error(
                "Unexpected error researching contact",
                contact_id=contact_id,
                domain=normalized,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._mark_failed_best_effort(contact_id, normalized, str(e))
            return ResearchResult(
                success=False,
                domain=normalized,
                status="failed",
                contact_id=contact_id,
                error=f"Research failed: {e}",
            )

    async def _mark_failed_best_effort(self, contact_id: str, domain: str, error: str) -> None:
        try:
            await self.contacts.update_research_status(contact_id, "failed")
            log_research_transition(contact_id, domain, "failed", error)
        except Exception as status_error:
            logger.error(
                "Could not record failed research status",
                contact_id=contact_id,
                domain=domain,
                error=str(status_error),
            )

    async def batch_research_contacts(
        self,
        contacts: Sequence[tuple[str, str]],
        concurrency: int | None = None,
    ) -> list[ResearchResult]:
        """
        Research (contact_id, domain) pairs in fixed windows.

        Each window runs concurrently; a short pause separates windows to stay
        under provider rate limits. Results keep input order and one failing
        item never stops the batch.
        """
        window = settings.RESEARCH_BATCH_CONCURRENCY if concurrency is None else concurrency
        if window < 1:
            raise ValueError("concurrency must be at least 1")

        results: list[ResearchResult] = []
        items = list(contacts)

        for start in range(0, len(items), window):
            batch = items[start : start + window]
            batch_results = await asyncio.gather(
                *(self.research_contact_company(cid, domain) for cid, domain in batch)
            )
            results.extend(batch_results)

            if start + window < len(items):
                await asyncio.sleep(self.batch_delay_seconds)

        logger.info(
            "Batch research finished",
            total=len(results),
            succeeded=sum(1 for r in results if r.success),
            concurrency=window,
        )
        return results

    async def get_pending_research_contacts(self, user_id: str) -> list[Contact]:
        return await self.contacts.list_research_candidates(["pending"], user_id=user_id)

    async def get_research_stats(self, user_id: str) -> dict[str, int]:
        return await self.contacts.research_status_counts(user_id)

    async def retry_user_research(
        self, user_id: str | None = None, include_failed: bool = False
    ) -> list[ResearchResult]:
        """
        Explicit re-trigger for contacts left pending, stuck in processing,
        or (optionally) failed. user_id=None covers every user.
        """
        statuses: list[ResearchStatus] = ["pending", "processing"]
        if include_failed:
            statuses.append("failed")

        candidates = await self.contacts.list_research_candidates(statuses, user_id=user_id)
        logger.info(
            "Re-triggering contact research",
            user_id=user_id,
            statuses=statuses,
            candidate_count=len(candidates),
        )
        return await self.batch_research_contacts(
            [(c.id, c.company_domain) for c in candidates if c.company_domain]
        )

    def status(self) -> dict[str, Any]:
        return {"provider": self.provider.name, "mock_mode": self.provider.is_mock}

    async def close(self) -> None:
        await self.provider.close()


# Singleton instance for application use
research_service = ResearchService()
