"""Shop orders router: checkout and order history."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import checkout_limit
from libs.db.session import get_async_db
from services.shop_service.models import PaymentMethod
from services.shop_service.routers._helpers import get_pricing_config
from services.shop_service.schemas import (
    CheckoutResponse,
    OrderCreateRequest,
    OrderResponse,
)
from services.shop_service.services import orders as order_service
from services.shop_service.services.payments import (
    StripeClient,
    get_stripe_client,
    start_card_payment,
)
from services.shop_service.services.pricing import PricingConfig
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["shop"])
logger = get_logger(__name__)


@router.post(
    "/orders", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED
)
@checkout_limit
async def create_order(
    request: Request,
    payload: OrderCreateRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    config: PricingConfig = Depends(get_pricing_config),
    stripe: StripeClient = Depends(get_stripe_client),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a pending order; card orders also get a PaymentIntent.

    If the gateway call fails the order stays pending and is cleaned up by the
    stale-order job.
    """
    order = await order_service.create_order(
        db, payload, user=current_user, config=config
    )

    client_secret = None
    if order.payment_method == PaymentMethod.CARD:
        intent = await start_card_payment(db, order, stripe)
        client_secret = intent.client_secret

    return CheckoutResponse(
        order=OrderResponse.model_validate(order), client_secret=client_secret
    )


@router.get("/orders", response_model=list[OrderResponse])
async def list_my_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_service.list_orders_for_user(
        db, current_user.user_id, skip=skip, limit=limit
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_service.get_order_for_user(db, order_id, current_user)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_my_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel a pending order. Paid orders cannot be cancelled here."""
    return await order_service.cancel_order(db, order_id, user=current_user)
