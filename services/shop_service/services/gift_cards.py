"""Gift card issuing, balance checks and redemption ledger."""

import secrets
import uuid
from datetime import timedelta
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import as_utc, utc_now
from libs.common.emails.store import send_gift_card_email
from libs.common.logging import get_logger
from services.shop_service.errors import (
    GiftCardError,
    GiftCardRejection,
    ShopError,
    ValidationError,
)
from services.shop_service.models import GiftCard, GiftCardRedemption, GiftCardStatus
from services.shop_service.schemas import GiftCardPurchaseRequest
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

# No 0/O, 1/I
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_PREFIX = "NEXU"

MIN_AMOUNT = 5_000
MAX_AMOUNT = 500_000
VALIDITY = timedelta(days=365)
MAX_CODE_ATTEMPTS = 10


def generate_code() -> str:
    """NEXU-XXXX-XXXX"""
    groups = [
        "".join(secrets.choice(CODE_ALPHABET) for _ in range(4)) for _ in range(2)
    ]
    return "-".join([CODE_PREFIX, *groups])


def _normalize(code: str) -> str:
    return code.strip().upper()


async def issue_gift_card(
    db: AsyncSession,
    payload: GiftCardPurchaseRequest,
    *,
    purchaser_auth_id: Optional[str] = None,
) -> GiftCard:
    if not MIN_AMOUNT <= payload.amount <= MAX_AMOUNT:
        raise ValidationError(
            f"Gift card amount must be between {MIN_AMOUNT} and {MAX_AMOUNT} Ft"
        )

    code = None
    for _ in range(MAX_CODE_ATTEMPTS):
        candidate = generate_code()
        clash = await db.execute(select(GiftCard.id).where(GiftCard.code == candidate))
        if clash.scalar_one_or_none() is None:
            code = candidate
            break
    if code is None:
        raise ShopError("Could not generate a unique gift card code", status_code=500)

    now = utc_now()
    card = GiftCard(
        code=code,
        amount=payload.amount,
        balance=payload.amount,
        status=GiftCardStatus.ACTIVE,
        purchaser_auth_id=purchaser_auth_id,
        purchaser_email=payload.purchaser_email,
        sender_name=payload.sender_name,
        recipient_name=payload.recipient_name,
        recipient_email=payload.recipient_email,
        message=payload.message,
        expires_at=now + VALIDITY,
        activated_at=now,
    )
    db.add(card)
    await db.commit()
    logger.info("Gift card %s issued for %d Ft", card.code, card.amount)

    try:
        await send_gift_card_email(
            to_email=card.recipient_email,
            recipient_name=card.recipient_name or "",
            code=card.code,
            amount=card.amount,
            expires_at=card.expires_at,
            sender_name=card.sender_name,
            message=card.message,
        )
    except Exception:
        logger.exception("Gift card email failed for %s", card.code)

    return card


def _check_usable(card: Optional[GiftCard], now) -> Optional[GiftCardRejection]:
    """Return the rejection that applies to ``card``, if any."""
    if card is None:
        return GiftCardRejection.NOT_FOUND
    if card.status == GiftCardStatus.EXPIRED or (
        card.status == GiftCardStatus.ACTIVE and now > as_utc(card.expires_at)
    ):
        return GiftCardRejection.EXPIRED
    if card.status == GiftCardStatus.REDEEMED:
        return GiftCardRejection.INSUFFICIENT_BALANCE
    if card.status != GiftCardStatus.ACTIVE:
        return GiftCardRejection.NOT_ACTIVE
    return None


_MESSAGES = {
    GiftCardRejection.NOT_FOUND: "Gift card not found",
    GiftCardRejection.EXPIRED: "Gift card has expired",
    GiftCardRejection.NOT_ACTIVE: "Gift card is not active",
    GiftCardRejection.INSUFFICIENT_BALANCE: "Insufficient gift card balance",
}


async def _expire(db: AsyncSession, card: GiftCard) -> None:
    if card.status != GiftCardStatus.EXPIRED:
        card.status = GiftCardStatus.EXPIRED
        await db.commit()
        logger.info("Gift card %s expired", card.code)


async def check_gift_card(db: AsyncSession, code: str) -> GiftCard:
    """Return a usable card. An overdue card is flipped to expired first."""
    result = await db.execute(select(GiftCard).where(GiftCard.code == _normalize(code)))
    card = result.scalar_one_or_none()

    rejection = _check_usable(card, utc_now())
    if rejection == GiftCardRejection.EXPIRED:
        await _expire(db, card)
    if rejection is None and card.balance <= 0:
        rejection = GiftCardRejection.INSUFFICIENT_BALANCE
    if rejection is not None:
        raise GiftCardError(rejection, _MESSAGES[rejection])
    return card


async def redeem_gift_card(
    db: AsyncSession,
    code: str,
    amount: int,
    *,
    order_id: Optional[uuid.UUID] = None,
) -> GiftCard:
    """Take ``amount`` off the card in one locked transaction."""
    if amount <= 0:
        raise ValidationError("Redemption amount must be positive")

    result = await db.execute(
        select(GiftCard)
        .where(GiftCard.code == _normalize(code))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    card = result.scalar_one_or_none()

    rejection = _check_usable(card, utc_now())
    if rejection == GiftCardRejection.EXPIRED:
        await _expire(db, card)
    if rejection is None and amount > card.balance:
        rejection = GiftCardRejection.INSUFFICIENT_BALANCE
    if rejection is not None:
        raise GiftCardError(rejection, _MESSAGES[rejection])

    balance_before = card.balance
    balance_after = balance_before - amount
    db.add(
        GiftCardRedemption(
            gift_card_id=card.id,
            order_id=order_id,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
        )
    )
    card.balance = balance_after
    if balance_after == 0:
        card.status = GiftCardStatus.REDEEMED

    await db.commit()
    logger.info(
        "Gift card %s redeemed %d Ft (balance %d -> %d)",
        card.code,
        amount,
        balance_before,
        balance_after,
    )
    return card


async def list_gift_cards_for_user(
    db: AsyncSession, user: AuthUser
) -> tuple[list[GiftCard], list[GiftCard]]:
    """Cards the user bought, and usable or used-up cards sent to their email."""
    purchased = await db.execute(
        select(GiftCard)
        .where(GiftCard.purchaser_auth_id == user.user_id)
        .options(selectinload(GiftCard.redemptions))
        .order_by(GiftCard.created_at.desc())
    )

    received: list[GiftCard] = []
    if user.email:
        result = await db.execute(
            select(GiftCard)
            .where(
                func.lower(GiftCard.recipient_email) == user.email.lower(),
                GiftCard.status.in_([GiftCardStatus.ACTIVE, GiftCardStatus.REDEEMED]),
            )
            .options(selectinload(GiftCard.redemptions))
            .order_by(GiftCard.created_at.desc())
        )
        received = list(result.scalars().all())

    return list(purchased.scalars().all()), received


async def expire_gift_cards(db: AsyncSession) -> int:
    """Flip every active card past its expiry date."""
    result = await db.execute(
        update(GiftCard)
        .where(
            GiftCard.status == GiftCardStatus.ACTIVE,
            GiftCard.expires_at < utc_now(),
        )
        .values(status=GiftCardStatus.EXPIRED)
    )
    await db.commit()
    if result.rowcount:
        logger.info("Expired %d gift cards", result.rowcount)
    return result.rowcount or 0
