"""Admin newsletter router: subscriber list, CSV export and sending."""

from fastapi import APIRouter, Depends, Response
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.schemas import (
    NewsletterSendRequest,
    NewsletterSendResponse,
    NewsletterSubscriberResponse,
)
from services.shop_service.services import newsletter as newsletter_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/newsletter", tags=["admin-shop"])


@router.get("/subscribers", response_model=list[NewsletterSubscriberResponse])
async def list_subscribers(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await newsletter_service.list_subscribers(db)


@router.get("/subscribers/export")
async def export_subscribers(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    subscribers = await newsletter_service.list_subscribers(db)
    return Response(
        content=newsletter_service.subscribers_csv(subscribers),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=subscribers.csv"},
    )


@router.post("/send", response_model=NewsletterSendResponse)
async def send_newsletter(
    payload: NewsletterSendRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    sent, failed, total = await newsletter_service.send_newsletter(
        db, payload.subject, payload.content
    )
    return NewsletterSendResponse(sent=sent, failed=failed, total=total)
