"""
Persistence for the shared company research cache.

One row per lower-cased domain across all users. Writes go through a single
INSERT ... ON CONFLICT upsert so concurrent enrichment of the same domain
never produces a duplicate or a unique-violation.
"""

from psycopg.types.json import Jsonb

from app.db.helpers import DatabaseError, execute_query, fetch_all, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.models.domain.research_domain import CompanyData, CompanyResearch

logger = get_logger(__name__)


class CompanyResearchRepository:
    SELECT_COLUMNS = """
        domain, company_name, industry, description, employee_count, location,
        website, linkedin_url, twitter_url, technologies, raw_data,
        created_at, updated_at
    """

    @staticmethod
    def _row_to_research(row: dict | None) -> CompanyResearch | None:
        if not row:
            return None
        data = dict(row)
        data["technologies"] = list(data.get("technologies") or [])
        return CompanyResearch.model_validate(data)

    @classmethod
    async def get(cls, domain: str) -> CompanyResearch | None:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM company_research WHERE domain = %s"
        return cls._row_to_research(await fetch_one(query, (domain,)))

    @classmethod
    async def list_by_domains(cls, domains: list[str]) -> list[CompanyResearch]:
        if not domains:
            return []
        query = f"""
            SELECT {cls.SELECT_COLUMNS} FROM company_research
            WHERE domain = ANY(%s)
            ORDER BY domain
        """
        rows = await fetch_all(query, (list(domains),))
        return [cls._row_to_research(row) for row in rows]

    @classmethod
    @with_db_retry(max_retries=2)
    async def upsert(cls, data: CompanyData) -> CompanyResearch:
        """Insert or replace the cached row for data.domain."""
        query = f"""
            INSERT INTO company_research (
                domain, company_name, industry, description, employee_count, location,
                website, linkedin_url, twitter_url, technologies, raw_data
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (domain) DO UPDATE SET
                company_name = EXCLUDED.company_name,
                industry = EXCLUDED.industry,
                description = EXCLUDED.description,
                employee_count = EXCLUDED.employee_count,
                location = EXCLUDED.location,
                website = EXCLUDED.website,
                linkedin_url = EXCLUDED.linkedin_url,
                twitter_url = EXCLUDED.twitter_url,
                technologies = EXCLUDED.technologies,
                raw_data = EXCLUDED.raw_data,
                updated_at = NOW()
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                data.domain,
                data.company_name,
                data.industry,
                data.description,
                data.employee_count,
                data.location,
                data.website,
                data.linkedin_url,
                data.twitter_url,
                list(data.technologies),
                Jsonb(data.raw_data) if data.raw_data is not None else None,
            ),
        )
        if not row:
            raise DatabaseError("Upsert returned no row", operation="company_research_upsert")

        logger.debug("Company research stored", domain=data.domain)
        return cls._row_to_research(row)

    @staticmethod
    async def delete(domain: str) -> bool:
        affected = await execute_query("DELETE FROM company_research WHERE domain = %s", (domain,))
        return affected > 0
