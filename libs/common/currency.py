"""Currency helpers for the webshop.

Internal storage unit: whole forints (HUF has no fractional units in the shop).
Gateway unit: fillér. Stripe treats HUF as a two-decimal currency, so every
amount sent to it is multiplied by 100 even though the fillér part is always 0.
Percentages are carried as ``Decimal`` and rounded half-up to whole forints.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# ─── constants ───────────────────────────────────────────────────────────────

FILLER_PER_FORINT: int = 100

Number = Union[int, Decimal, str]


# ─── helpers ─────────────────────────────────────────────────────────────────


def round_half_up(amount: Number) -> int:
    """Round to whole forints, halves away from zero (1.5 → 2, 2.5 → 3)."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, percent: Number) -> int:
    """``percent`` % of ``amount``, rounded to whole forints."""
    return round_half_up(Decimal(amount) * Decimal(str(percent)) / 100)


def forint_to_minor_units(forint: int) -> int:
    """Convert forints to the gateway's minor unit. 1 Ft = 100 fillér."""
    return int(forint) * FILLER_PER_FORINT


def format_huf(amount: int) -> str:
    """Format like the storefront does: 12 990 Ft."""
    return f"{amount:,.0f}".replace(",", " ") + " Ft"
