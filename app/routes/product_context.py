"""
product_context.py
------------------
Purpose:
    Read and replace the user's product context used by email generation.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import get_user_id
from app.models.api.contact_request import ProductContextRequest
from app.models.domain.email_domain import ProductContext
from app.services.product_context_service import (
    ProductContextError,
    get_product_context,
    upsert_product_context,
)

router = APIRouter(prefix="/product-context", tags=["product-context"])


@router.get("", response_model=ProductContext)
async def get_product_context_endpoint(user_id: str = Depends(get_user_id)):
    context = await get_product_context(user_id)
    if not context:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product context not set"
        )
    return context


@router.put("", response_model=ProductContext)
async def put_product_context_endpoint(
    request: ProductContextRequest, user_id: str = Depends(get_user_id)
):
    try:
        return await upsert_product_context(user_id, request.model_dump())
    except ProductContextError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
