"""
Persistence for contacts.

The research pipeline only ever calls update_research_status(); every other
method backs the contacts CRUD service.
"""

from collections.abc import Iterable

from app.db.helpers import execute_query, fetch_all, fetch_one
from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import (
    RESEARCH_STATUSES,
    Contact,
    ContactFields,
    ResearchStatus,
)

logger = get_logger(__name__)


class ContactRepository:
    SELECT_COLUMNS = """
        id, user_id, email, first_name, last_name, title, company, phone, notes,
        company_domain, research_status, created_at, updated_at
    """

    @staticmethod
    def _row_to_contact(row: dict | None) -> Contact | None:
        if not row:
            return None
        data = dict(row)
        data["id"] = str(data["id"])
        data["user_id"] = str(data["user_id"])
        return Contact.model_validate(data)

    @classmethod
    async def create(
        cls,
        user_id: str,
        email: str,
        fields: ContactFields,
        company_domain: str | None,
        research_status: ResearchStatus,
    ) -> Contact | None:
        """
        Insert a contact. Returns None when (user_id, email) already exists.
        """
        query = f"""
            INSERT INTO contacts (
                user_id, email, first_name, last_name, title, company, phone, notes,
                company_domain, research_status
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id, email) DO NOTHING
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                user_id,
                email,
                fields.first_name,
                fields.last_name,
                fields.title,
                fields.company,
                fields.phone,
                fields.notes,
                company_domain,
                research_status,
            ),
        )
        return cls._row_to_contact(row)

    @classmethod
    async def get(cls, user_id: str, contact_id: str) -> Contact | None:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM contacts WHERE id = %s AND user_id = %s"
        return cls._row_to_contact(await fetch_one(query, (contact_id, user_id)))

    @classmethod
    async def list_for_user(
        cls, user_id: str, research_status: ResearchStatus | None = None
    ) -> list[Contact]:
        if research_status:
            query = f"""
                SELECT {cls.SELECT_COLUMNS} FROM contacts
                WHERE user_id = %s AND research_status = %s
                ORDER BY created_at DESC
            """
            rows = await fetch_all(query, (user_id, research_status))
        else:
            query = f"""
                SELECT {cls.SELECT_COLUMNS} FROM contacts
                WHERE user_id = %s
                ORDER BY created_at DESC
            """
            rows = await fetch_all(query, (user_id,))
        return [cls._row_to_contact(row) for row in rows]

    @classmethod
    async def list_research_candidates(
        cls,
        statuses: Iterable[ResearchStatus],
        user_id: str | None = None,
        limit: int = 500,
    ) -> list[Contact]:
        """Business contacts in the given statuses, oldest first."""
        status_list = list(statuses)
        if user_id:
            query = f"""
                SELECT {cls.SELECT_COLUMNS} FROM contacts
                WHERE user_id = %s
                  AND research_status = ANY(%s::research_status[])
                  AND company_domain IS NOT NULL
                ORDER BY created_at ASC
                LIMIT %s
            """
            rows = await fetch_all(query, (user_id, status_list, limit))
        else:
            query = f"""
                SELECT {cls.SELECT_COLUMNS} FROM contacts
                WHERE research_status = ANY(%s::research_status[])
                  AND company_domain IS NOT NULL
                ORDER BY created_at ASC
                LIMIT %s
            """
            rows = await fetch_all(query, (status_list, limit))
        return [cls._row_to_contact(row) for row in rows]

    @classmethod
    async def update_fields(
        cls, user_id: str, contact_id: str, changes: dict
    ) -> Contact | None:
        """Update non-email fields. Keys outside ContactFields are ignored."""
        allowed = {k: v for k, v in changes.items() if k in ContactFields.model_fields}
        if not allowed:
            return await cls.get(user_id, contact_id)

        assignments = ", ".join(f"{column} = %s" for column in allowed)
        query = f"""
            UPDATE contacts
            SET {assignments}, updated_at = NOW()
            WHERE id = %s AND user_id = %s
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(query, (*allowed.values(), contact_id, user_id))
        return cls._row_to_contact(row)

    @staticmethod
    async def update_research_status(contact_id: str, status: ResearchStatus) -> bool:
        """
        Move a business contact to a research status.

        Personal contacts stay "na": the row is left alone and False is returned.
        """
        if status == "na":
            raise ValueError('research_status "na" is only assigned at contact creation')

        query = """
            UPDATE contacts
            SET research_status = %s,
                updated_at = NOW()
            WHERE id = %s AND research_status <> 'na'
        """
        affected = await execute_query(query, (status, contact_id))
        return affected > 0

    @staticmethod
    async def delete(user_id: str, contact_id: str) -> bool:
        affected = await execute_query(
            "DELETE FROM contacts WHERE id = %s AND user_id = %s", (contact_id, user_id)
        )
        return affected > 0

    @staticmethod
    async def research_status_counts(user_id: str) -> dict[str, int]:
        rows = await fetch_all(
            """
            SELECT research_status, COUNT(*) AS count
            FROM contacts
            WHERE user_id = %s
            GROUP BY research_status
            """,
            (user_id,),
        )
        counts = {status: 0 for status in RESEARCH_STATUSES}
        for row in rows:
            counts[row["research_status"]] = int(row["count"])
        return counts
