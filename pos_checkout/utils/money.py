from decimal import ROUND_HALF_UP, Decimal

__all__ = ["ZERO", "money", "to_decimal"]

ZERO = Decimal("0.00")


def to_decimal(v) -> Decimal:
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def money(v) -> Decimal:
    """Quantize to cents, half-up (same rounding as the cash drawer)."""
    return to_decimal(v).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
