"""Loyalty status router."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.routers._helpers import get_pricing_config
from services.shop_service.schemas import LoyaltyStatusResponse
from services.shop_service.services.loyalty import next_tier, tier_for
from services.shop_service.services.pricing import PricingConfig, get_total_spent
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["shop"])


@router.get("/loyalty/me", response_model=LoyaltyStatusResponse)
async def my_loyalty_status(
    current_user: AuthUser = Depends(get_current_user),
    config: PricingConfig = Depends(get_pricing_config),
    db: AsyncSession = Depends(get_async_db),
):
    """Current tier and distance to the next one."""
    total_spent = await get_total_spent(db, current_user.user_id)
    tier = tier_for(total_spent, config.loyalty_tiers)
    upcoming = next_tier(total_spent, config.loyalty_tiers)

    return LoyaltyStatusResponse(
        total_spent=total_spent,
        tier=tier.name,
        discount_percent=tier.discount_percent,
        next_tier=upcoming[0].name if upcoming else None,
        amount_to_next_tier=upcoming[1] if upcoming else None,
    )
