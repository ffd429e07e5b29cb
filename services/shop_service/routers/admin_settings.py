"""Admin store settings router."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.schemas import SettingsResponse, SettingsUpdate
from services.shop_service.services import settings_store
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/settings", tags=["admin-shop"])


@router.get("", response_model=SettingsResponse)
async def get_settings_values(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await settings_store.load_settings(db)


@router.put("", response_model=SettingsResponse)
async def update_settings(
    settings_in: SettingsUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update settings in one transaction; the pricing cache is dropped."""
    return await settings_store.update_settings(
        db,
        settings_in.model_dump(exclude_none=True),
        performed_by=current_user.user_id,
    )
