from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..core.errors import InsufficientTender, UnsupportedPaymentMethod
from ..core.schemas import PaymentMethod
from ..utils.money import ZERO, money, to_decimal


class PaymentOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: PaymentMethod
    total: Decimal
    tendered_cash: Optional[Decimal] = None
    change: Decimal = ZERO
    # only meaningful to the payment gateway, which confirms non-cash payments
    authorization_pending: bool = False


def parse_method(method) -> PaymentMethod:
    try:
        return PaymentMethod(getattr(method, "value", method))
    except ValueError:
        raise UnsupportedPaymentMethod(f"unsupported payment method: {method!r}") from None


def reconcile(method, total, tendered_cash=None) -> PaymentOutcome:
    """
    Validates the payment for ``total``. Side-effect free.

    Cash needs ``tendered_cash >= total`` and yields the change; any other
    method carries no tender and is left pending authorization.
    """
    method = parse_method(method)
    total = money(total)

    if method != PaymentMethod.cash:
        return PaymentOutcome(method=method, total=total, authorization_pending=True)

    if tendered_cash is None:
        raise InsufficientTender("cash payment requires a tendered amount", total=str(total))
    tendered = money(to_decimal(tendered_cash))
    if tendered < total:
        raise InsufficientTender(
            f"tendered {tendered} is less than total {total}",
            total=str(total),
            tendered=str(tendered),
        )
    return PaymentOutcome(
        method=method, total=total, tendered_cash=tendered, change=tendered - total
    )
