"""Gift card purchase, balance check and redemption router."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import gift_card_limit
from libs.db.session import get_async_db
from services.shop_service.schemas import (
    GiftCardCodeRequest,
    GiftCardDetailResponse,
    GiftCardListResponse,
    GiftCardPurchaseRequest,
    GiftCardRedeemRequest,
    GiftCardResponse,
)
from services.shop_service.services import gift_cards as gift_card_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/gift-cards", tags=["shop"])


@router.get("", response_model=GiftCardListResponse)
async def list_my_gift_cards(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    purchased, received = await gift_card_service.list_gift_cards_for_user(
        db, current_user
    )
    return GiftCardListResponse(
        purchased=[GiftCardDetailResponse.model_validate(c) for c in purchased],
        received=[GiftCardDetailResponse.model_validate(c) for c in received],
    )


@router.post("", response_model=GiftCardResponse, status_code=status.HTTP_201_CREATED)
async def purchase_gift_card(
    payload: GiftCardPurchaseRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await gift_card_service.issue_gift_card(
        db,
        payload,
        purchaser_auth_id=current_user.user_id if current_user else None,
    )


@router.post("/validate", response_model=GiftCardResponse)
@gift_card_limit
async def validate_gift_card(
    request: Request,
    payload: GiftCardCodeRequest,
    db: AsyncSession = Depends(get_async_db),
):
    return await gift_card_service.check_gift_card(db, payload.code)


@router.post("/redeem", response_model=GiftCardResponse)
@gift_card_limit
async def redeem_gift_card(
    request: Request,
    payload: GiftCardRedeemRequest,
    db: AsyncSession = Depends(get_async_db),
):
    return await gift_card_service.redeem_gift_card(
        db, payload.code, payload.amount, order_id=payload.order_id
    )
