"""Newsletter sign-up and contact form router."""

from fastapi import APIRouter, Depends, Request, Response, status
from libs.common.logging import get_logger
from libs.common.rate_limit import contact_limit, newsletter_limit
from libs.db.session import get_async_db
from services.shop_service.schemas import (
    ContactRequest,
    MessageResponse,
    NewsletterSubscribeRequest,
)
from services.shop_service.services import contact as contact_service
from services.shop_service.services import newsletter as newsletter_service
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(tags=["shop"])


@router.post(
    "/newsletter",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
@newsletter_limit
async def subscribe(
    request: Request,
    response: Response,
    payload: NewsletterSubscribeRequest,
    db: AsyncSession = Depends(get_async_db),
):
    if payload.website:
        # Honeypot filled in: answer like a real sign-up, store nothing
        logger.info("Newsletter honeypot triggered for %s", payload.email)
        return MessageResponse(message="Subscribed")

    if not await newsletter_service.subscribe(db, payload.email):
        response.status_code = status.HTTP_200_OK
        return MessageResponse(message="Already subscribed")
    return MessageResponse(message="Subscribed")


@router.post("/newsletter/unsubscribe", response_model=MessageResponse)
@newsletter_limit
async def unsubscribe(
    request: Request,
    payload: NewsletterSubscribeRequest,
    db: AsyncSession = Depends(get_async_db),
):
    await newsletter_service.unsubscribe(db, payload.email)
    return MessageResponse(message="Unsubscribed")


@router.post("/contact", response_model=MessageResponse)
@contact_limit
async def contact(request: Request, payload: ContactRequest):
    """Always answers success; delivery problems are only logged."""
    await contact_service.send_contact_message(
        payload.name, payload.email, payload.message
    )
    return MessageResponse(message="Message sent")
