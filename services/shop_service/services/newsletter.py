"""Newsletter subscriptions and bulk sends."""

import asyncio

from libs.common.emails.store import send_newsletter_email
from libs.common.logging import get_logger
from services.shop_service.errors import NotFoundError, ValidationError
from services.shop_service.models import NewsletterSubscriber
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SEND_BATCH_SIZE = 50


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def subscribe(db: AsyncSession, email: str) -> bool:
    """Add ``email`` to the list. Returns False if it was already subscribed."""
    email = _normalize_email(email)
    result = await db.execute(
        select(NewsletterSubscriber).where(NewsletterSubscriber.email == email)
    )
    if result.scalar_one_or_none() is not None:
        return False

    db.add(NewsletterSubscriber(email=email))
    await db.commit()
    logger.info("Newsletter subscription for %s", email)
    return True


async def unsubscribe(db: AsyncSession, email: str) -> None:
    email = _normalize_email(email)
    result = await db.execute(
        select(NewsletterSubscriber).where(NewsletterSubscriber.email == email)
    )
    subscriber = result.scalar_one_or_none()
    if subscriber is None:
        raise NotFoundError("Email is not subscribed")

    await db.delete(subscriber)
    await db.commit()
    logger.info("Newsletter unsubscribe for %s", email)


async def list_subscribers(db: AsyncSession) -> list[NewsletterSubscriber]:
    result = await db.execute(
        select(NewsletterSubscriber).order_by(NewsletterSubscriber.created_at.desc())
    )
    return list(result.scalars().all())


def subscribers_csv(subscribers: list[NewsletterSubscriber]) -> str:
    csv_content = "Email,Subscribed at\n"
    for subscriber in subscribers:
        csv_content += f"{subscriber.email},{subscriber.created_at.isoformat()}\n"
    return csv_content


async def send_newsletter(
    db: AsyncSession, subject: str, content: str
) -> tuple[int, int, int]:
    """Email every subscriber in batches. Returns (sent, failed, total)."""
    subscribers = await list_subscribers(db)
    if not subscribers:
        raise ValidationError("There are no newsletter subscribers")

    emails = [s.email for s in subscribers]
    sent = failed = 0
    for start in range(0, len(emails), SEND_BATCH_SIZE):
        batch = emails[start : start + SEND_BATCH_SIZE]
        results = await asyncio.gather(
            *(send_newsletter_email(email, subject, content) for email in batch),
            return_exceptions=True,
        )
        for email, outcome in zip(batch, results):
            if outcome is True:
                sent += 1
            else:
                failed += 1
                if isinstance(outcome, Exception):
                    logger.error("Newsletter to %s failed: %s", email, outcome)

    logger.info(
        "Newsletter '%s' sent to %d of %d subscribers (%d failed)",
        subject,
        sent,
        len(emails),
        failed,
    )
    return sent, failed, len(emails)
