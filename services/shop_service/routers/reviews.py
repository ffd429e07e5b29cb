"""Product review router."""

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.schemas import ReviewCreate, ReviewResponse
from services.shop_service.services import reviews as review_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["shop"])


@router.get("/products/{slug}/reviews", response_model=list[ReviewResponse])
async def list_product_reviews(slug: str, db: AsyncSession = Depends(get_async_db)):
    """Approved reviews, newest first."""
    return await review_service.list_product_reviews(db, slug)


@router.post(
    "/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED
)
async def create_review(
    payload: ReviewCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Submit a review for moderation. Requires a shipped or completed order."""
    return await review_service.create_review(db, payload, current_user)
