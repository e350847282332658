"""
Rule evaluator: cart + applied rules + tax rate -> SaleBreakdown.

Order of application is part of the pricing contract:

1. subtotal over all lines
2. discounts, each computed against the original subtotal and summed
3. coupon; a percentage coupon applies to (subtotal - discounts)
4. one clamp of the taxable amount at zero
5. tax on the taxable amount

No I/O, no state: same inputs, same breakdown.
"""

from decimal import Decimal
from typing import Dict, Iterable, Optional

from ..core.schemas import CartLine, Coupon, DiscountRule, SaleBreakdown
from ..utils.money import ZERO, money, to_decimal

HUNDRED = Decimal("100")


def subtotal_of(lines: Iterable[CartLine]) -> Decimal:
    return money(sum((ln.unit_price * ln.quantity for ln in lines), ZERO))


def discount_contribution(rule: DiscountRule, subtotal: Decimal) -> Decimal:
    if rule.kind == "percentage":
        return subtotal * (rule.value / HUNDRED)
    return rule.value


def coupon_contribution(coupon: Coupon, base: Decimal) -> Decimal:
    if coupon.kind == "percentage":
        amount = base * (coupon.value / HUNDRED)
    else:
        amount = coupon.value
    if coupon.max_discount is not None:
        amount = min(amount, coupon.max_discount)
    return amount


def evaluate(
    cart: Iterable[CartLine],
    applied_discounts: Optional[Iterable[DiscountRule]] = None,
    applied_coupon: Optional[Coupon] = None,
    tax_rate=ZERO,
) -> SaleBreakdown:
    subtotal = subtotal_of(cart)
    if subtotal <= 0:
        return SaleBreakdown()

    unique: Dict[str, DiscountRule] = {}
    for rule in applied_discounts or ():
        unique.setdefault(rule.id, rule)
    discount_total = money(
        sum((discount_contribution(r, subtotal) for r in unique.values()), ZERO)
    )

    coupon_amount = ZERO
    if applied_coupon is not None:
        base = max(subtotal - discount_total, ZERO)
        coupon_amount = money(coupon_contribution(applied_coupon, base))

    taxable = max(subtotal - discount_total - coupon_amount, ZERO)
    tax = money(taxable * to_decimal(tax_rate))
    return SaleBreakdown(
        subtotal=subtotal,
        discount_total=discount_total,
        coupon_amount=coupon_amount,
        taxable_amount=taxable,
        tax=tax,
        total=taxable + tax,
    )
