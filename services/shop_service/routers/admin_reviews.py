"""Admin review moderation router."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.models import ReviewStatus
from services.shop_service.schemas import ReviewResponse, ReviewStatusUpdate
from services.shop_service.services import reviews as review_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/reviews", tags=["admin-shop"])


@router.get("", response_model=list[ReviewResponse])
async def list_reviews(
    status_filter: Optional[ReviewStatus] = Query(None, alias="status"),
    product_id: Optional[uuid.UUID] = None,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await review_service.list_reviews(
        db, status=status_filter, product_id=product_id
    )


@router.patch("/{review_id}", response_model=ReviewResponse)
async def update_review_status(
    review_id: uuid.UUID,
    payload: ReviewStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve, reject or reopen a review; the product rating follows."""
    return await review_service.set_review_status(
        db, review_id, payload.status, performed_by=current_user.user_id
    )


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await review_service.delete_review(
        db, review_id, performed_by=current_user.user_id
    )
