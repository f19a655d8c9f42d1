"""
Persistence for a user's product context (one row per user).
"""

from app.db.helpers import fetch_one
from app.models.domain.email_domain import ProductContext


class ProductContextRepository:
    SELECT_COLUMNS = """
        user_id, product_name, product_description, target_audience, pain_points,
        value_proposition, tone, created_at, updated_at
    """

    @staticmethod
    def _row_to_context(row: dict | None) -> ProductContext | None:
        if not row:
            return None
        data = dict(row)
        data["user_id"] = str(data["user_id"])
        return ProductContext.model_validate(data)

    @classmethod
    async def get(cls, user_id: str) -> ProductContext | None:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM product_contexts WHERE user_id = %s"
        return cls._row_to_context(await fetch_one(query, (user_id,)))

    @classmethod
    async def upsert(cls, context: ProductContext) -> ProductContext:
        query = f"""
            INSERT INTO product_contexts (
                user_id, product_name, product_description, target_audience,
                pain_points, value_proposition, tone
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id) DO UPDATE SET
                product_name = EXCLUDED.product_name,
                product_description = EXCLUDED.product_description,
                target_audience = EXCLUDED.target_audience,
                pain_points = EXCLUDED.pain_points,
                value_proposition = EXCLUDED.value_proposition,
                tone = EXCLUDED.tone,
                updated_at = NOW()
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                context.user_id,
                context.product_name,
                context.product_description,
                context.target_audience,
                context.pain_points,
                context.value_proposition,
                context.tone or "professional",
            ),
        )
        return cls._row_to_context(row)
