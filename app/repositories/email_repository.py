"""
Persistence for outbound emails and their delivery status.
"""

from psycopg import sql

from app.db.helpers import execute_query, fetch_all, fetch_one
from app.infrastructure.observability.logging import get_logger
from app.models.domain.email_domain import (
    EMAIL_STATUSES,
    Email,
    EmailStatus,
    EmailWithRecipient,
)

logger = get_logger(__name__)

# Tracking events that also stamp a timestamp column
TRACKING_TIMESTAMP_COLUMNS = {
    "opened": "opened_at",
    "clicked": "clicked_at",
    "bounced": "bounced_at",
}


class EmailRepository:
    SELECT_COLUMNS = """
        e.id, e.user_id, e.contact_id, e.subject, e.body_text, e.body_html, e.status,
        e.provider_message_id, e.sent_at, e.opened_at, e.clicked_at, e.bounced_at,
        e.created_at, e.updated_at
    """

    RETURNING_COLUMNS = SELECT_COLUMNS.replace("e.", "")

    @staticmethod
    def _normalize_ids(row: dict) -> dict:
        data = dict(row)
        for key in ("id", "user_id", "contact_id"):
            data[key] = str(data[key])
        return data

    @classmethod
    def _row_to_email(cls, row: dict | None) -> Email | None:
        if not row:
            return None
        return Email.model_validate(cls._normalize_ids(row))

    @classmethod
    async def create_draft(
        cls,
        user_id: str,
        contact_id: str,
        subject: str,
        body_text: str,
        body_html: str | None,
    ) -> Email:
        query = f"""
            INSERT INTO emails (user_id, contact_id, subject, body_text, body_html, status)
            VALUES (%s, %s, %s, %s, %s, 'draft')
            RETURNING {cls.RETURNING_COLUMNS}
        """
        row = await fetch_one(query, (user_id, contact_id, subject, body_text, body_html))
        logger.info("Email draft created", user_id=user_id, contact_id=contact_id)
        return cls._row_to_email(row)

    @classmethod
    async def get(cls, user_id: str, email_id: str) -> Email | None:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM emails e WHERE e.id = %s AND e.user_id = %s"
        return cls._row_to_email(await fetch_one(query, (email_id, user_id)))

    @classmethod
    async def get_with_recipient(cls, user_id: str, email_id: str) -> EmailWithRecipient | None:
        query = f"""
            SELECT {cls.SELECT_COLUMNS},
                   c.email AS contact_email,
                   c.first_name AS contact_first_name,
                   c.last_name AS contact_last_name
            FROM emails e
            JOIN contacts c ON c.id = e.contact_id
            WHERE e.id = %s AND e.user_id = %s
        """
        row = await fetch_one(query, (email_id, user_id))
        if not row:
            return None
        return EmailWithRecipient.model_validate(cls._normalize_ids(row))

    @classmethod
    async def list_for_user(cls, user_id: str, status: EmailStatus | None = None) -> list[Email]:
        if status:
            query = f"""
                SELECT {cls.SELECT_COLUMNS} FROM emails e
                WHERE e.user_id = %s AND e.status = %s
                ORDER BY e.created_at DESC
            """
            rows = await fetch_all(query, (user_id, status))
        else:
            query = f"""
                SELECT {cls.SELECT_COLUMNS} FROM emails e
                WHERE e.user_id = %s
                ORDER BY e.created_at DESC
            """
            rows = await fetch_all(query, (user_id,))
        return [cls._row_to_email(row) for row in rows]

    @classmethod
    async def find_by_provider_message_id(cls, provider_message_id: str) -> Email | None:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM emails e WHERE e.provider_message_id = %s"
        return cls._row_to_email(await fetch_one(query, (provider_message_id,)))

    @staticmethod
    async def set_status(email_id: str, status: EmailStatus) -> bool:
        affected = await execute_query(
            "UPDATE emails SET status = %s, updated_at = NOW() WHERE id = %s",
            (status, email_id),
        )
        return affected > 0

    @classmethod
    async def mark_sent(cls, email_id: str, provider_message_id: str | None) -> Email | None:
        query = f"""
            UPDATE emails
            SET status = 'sent',
                sent_at = NOW(),
                provider_message_id = %s,
                updated_at = NOW()
            WHERE id = %s
            RETURNING {cls.RETURNING_COLUMNS}
        """
        return cls._row_to_email(await fetch_one(query, (provider_message_id, email_id)))

    @staticmethod
    async def apply_tracking_status(email_id: str, status: EmailStatus, event: str) -> bool:
        """Set status and, for opened/clicked/bounced, the first-seen timestamp."""
        column = TRACKING_TIMESTAMP_COLUMNS.get(event)
        if column:
            query = sql.SQL(
                "UPDATE emails SET status = %s, {col} = COALESCE({col}, NOW()), "
                "updated_at = NOW() WHERE id = %s"
            ).format(col=sql.Identifier(column))
        else:
            query = "UPDATE emails SET status = %s, updated_at = NOW() WHERE id = %s"
        affected = await execute_query(query, (status, email_id))
        return affected > 0

    @staticmethod
    async def delete(user_id: str, email_id: str) -> bool:
        affected = await execute_query(
            "DELETE FROM emails WHERE id = %s AND user_id = %s", (email_id, user_id)
        )
        return affected > 0

    @staticmethod
    async def status_counts(user_id: str) -> dict[str, int]:
        rows = await fetch_all(
            """
            SELECT status, COUNT(*) AS count
            FROM emails
            WHERE user_id = %s
            GROUP BY status
            """,
            (user_id,),
        )
        counts = {status: 0 for status in EMAIL_STATUSES}
        for row in rows:
            counts[row["status"]] = int(row["count"])
        return counts
