"""Loyalty tiers: lifetime spend buys a percentage discount on future orders."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from libs.common.currency import percent_of


@dataclass(frozen=True)
class LoyaltyTier:
    name: str
    min_spent: int
    discount_percent: Decimal


DEFAULT_LOYALTY_TIERS: tuple[LoyaltyTier, ...] = (
    LoyaltyTier("Kezdő", 0, Decimal("0")),
    LoyaltyTier("Bronz", 50_000, Decimal("2")),
    LoyaltyTier("Ezüst", 200_000, Decimal("4")),
    LoyaltyTier("Arany", 400_000, Decimal("6")),
    LoyaltyTier("Platina", 800_000, Decimal("8")),
    LoyaltyTier("Gyémánt", 1_000_000, Decimal("10")),
)


def _sorted(tiers: Optional[Sequence[LoyaltyTier]]) -> list[LoyaltyTier]:
    tiers = tiers or DEFAULT_LOYALTY_TIERS
    return sorted(tiers, key=lambda t: t.min_spent)


def tier_for(
    total_spent: int, tiers: Optional[Sequence[LoyaltyTier]] = None
) -> LoyaltyTier:
    """Highest tier whose threshold the spend reaches; the lowest tier otherwise."""
    ordered = _sorted(tiers)
    current = ordered[0]
    for tier in ordered:
        if total_spent >= tier.min_spent:
            current = tier
    return current


def next_tier(
    total_spent: int, tiers: Optional[Sequence[LoyaltyTier]] = None
) -> Optional[tuple[LoyaltyTier, int]]:
    """The next tier up and how much more must be spent, or None at the top."""
    for tier in _sorted(tiers):
        if tier.min_spent > total_spent:
            return tier, tier.min_spent - total_spent
    return None


def loyalty_discount(
    amount: int,
    total_spent: int,
    tiers: Optional[Sequence[LoyaltyTier]] = None,
) -> int:
    if amount <= 0:
        return 0
    return percent_of(amount, tier_for(total_spent, tiers).discount_percent)
