"""Rupee amounts are stored as integer paise; Decimal only at the edges."""

from decimal import ROUND_HALF_UP, Decimal

PAISE_PER_RUPEE = 100
_ONE_PAISA = Decimal("0.01")


def to_paise(amount: Decimal) -> int:
    """Convert a rupee amount to whole paise, rounding half up."""
    rupees = Decimal(amount).quantize(_ONE_PAISA, rounding=ROUND_HALF_UP)
    return int(rupees * PAISE_PER_RUPEE)


def from_paise(paise: int) -> Decimal:
    return (Decimal(int(paise)) / PAISE_PER_RUPEE).quantize(_ONE_PAISA)
