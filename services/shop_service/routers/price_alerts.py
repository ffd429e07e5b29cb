"""Price drop alert router."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import alert_limit
from libs.db.session import get_async_db
from services.shop_service.errors import AuthorizationError, ValidationError
from services.shop_service.schemas import PriceAlertCreate, PriceAlertResponse
from services.shop_service.services import price_alerts as alert_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/price-alerts", tags=["shop"])


@router.get("", response_model=list[PriceAlertResponse])
async def list_alerts(
    email: Optional[str] = Query(None, description="Admins only"),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Alerts for the signed-in user's email."""
    if email and not current_user.is_admin:
        raise AuthorizationError("Only admins can list another address")
    lookup = email or current_user.email
    if not lookup:
        raise ValidationError("No email address on this account")
    return await alert_service.list_price_alerts(db, lookup)


@router.post(
    "", response_model=PriceAlertResponse, status_code=status.HTTP_201_CREATED
)
@alert_limit
async def create_alert(
    request: Request,
    payload: PriceAlertCreate,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await alert_service.upsert_price_alert(
        db,
        payload.email,
        payload.product_id,
        payload.target_price,
        user=current_user,
    )


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_alert(
    alert_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await alert_service.delete_price_alert(db, alert_id, user=current_user)
