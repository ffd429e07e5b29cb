"""Admin coupon management router."""

import uuid

from fastapi import APIRouter, Depends, Response, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.schemas import CouponCreate, CouponResponse, CouponUpdate
from services.shop_service.services import coupons as coupon_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/coupons", tags=["admin-shop"])


def _to_response(coupon) -> CouponResponse:
    return CouponResponse.model_validate(coupon)


@router.get("", response_model=list[CouponResponse])
async def list_coupons(
    active_only: bool = False,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    coupons = await coupon_service.list_coupons(db, active_only=active_only)
    return [_to_response(c) for c in coupons]


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    coupon_in: CouponCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    coupon = await coupon_service.create_coupon(
        db, coupon_in, performed_by=current_user.user_id
    )
    return _to_response(coupon)


@router.get("/{coupon_id}", response_model=CouponResponse)
async def get_coupon(
    coupon_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return _to_response(await coupon_service.get_coupon(db, coupon_id))


@router.patch("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(
    coupon_id: uuid.UUID,
    coupon_in: CouponUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    coupon = await coupon_service.update_coupon(
        db, coupon_id, coupon_in, performed_by=current_user.user_id
    )
    return _to_response(coupon)


@router.delete("/{coupon_id}")
async def delete_coupon(
    coupon_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete an unused coupon; used coupons are deactivated (200 with body)."""
    coupon = await coupon_service.delete_coupon(
        db, coupon_id, performed_by=current_user.user_id
    )
    if coupon is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return _to_response(coupon)
