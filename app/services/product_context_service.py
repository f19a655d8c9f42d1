"""
Product context service: the per-user product description that drives
email generation.
"""

from app.infrastructure.observability.logging import get_logger
from app.models.domain.email_domain import ProductContext
from app.repositories.product_context_repository import ProductContextRepository

logger = get_logger(__name__)

REQUIRED_FIELDS = (
    "product_name",
    "product_description",
    "target_audience",
    "pain_points",
    "value_proposition",
)


class ProductContextError(Exception):
    """Invalid product context input."""

    def __init__(self, message: str, missing_fields: list[str] | None = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []


async def get_product_context(user_id: str) -> ProductContext | None:
    return await ProductContextRepository.get(user_id)


async def upsert_product_context(user_id: str, data: dict) -> ProductContext:
    """
    Create or replace the user's product context.

    Raises:
        ProductContextError: a required field is missing or blank
    """
    cleaned = {
        key: value.strip() if isinstance(value, str) else value for key, value in data.items()
    }
    missing = [name for name in REQUIRED_FIELDS if not cleaned.get(name)]
    if missing:
        raise ProductContextError(f"Missing required fields: {', '.join(missing)}", missing)

    context = ProductContext(
        user_id=user_id,
        product_name=cleaned["product_name"],
        product_description=cleaned["product_description"],
        target_audience=cleaned["target_audience"],
        pain_points=cleaned["pain_points"],
        value_proposition=cleaned["value_proposition"],
        tone=cleaned.get("tone") or "professional",
    )
    saved = await ProductContextRepository.upsert(context)
    logger.info("Product context saved", user_id=user_id, product_name=saved.product_name)
    return saved


async def has_product_context(user_id: str) -> bool:
    return await ProductContextRepository.get(user_id) is not None
