import logging
from datetime import date, datetime
from typing import Optional

from ..core.errors import (
    CouponExpired,
    CouponMinimumNotMet,
    CouponNotFound,
    CouponNotYetActive,
    CouponPerCustomerLimitReached,
    CouponUsageLimitReached,
)
from ..core.schemas import Coupon, normalize_code
from .collaborators import CouponDirectory
from .pricing import subtotal_of

log = logging.getLogger(__name__)


def _as_date(at) -> date:
    if at is None:
        return datetime.now().date()
    if isinstance(at, datetime):
        return at.date()
    return at


def validate_coupon(
    code: str,
    cart,
    directory: CouponDirectory,
    customer_id: Optional[str] = None,
    at=None,
) -> Coupon:
    """
    Checks a coupon code against the directory and the current cart.

    Checks run in a fixed order and stop at the first failure:
    existence, date window, global usage, per-customer usage, minimum amount.
    Returns the coupon ready for the evaluator; pricing is not computed here.

    Raises:
        CouponNotFound, CouponNotYetActive, CouponExpired,
        CouponUsageLimitReached, CouponPerCustomerLimitReached,
        CouponMinimumNotMet
    """
    code_up = normalize_code(code)
    coupon = directory.get_coupon_by_code(code_up) if code_up else None
    if coupon is None or not coupon.active:
        log.info(f"[Coupon: {code_up}] rejected: not found")
        raise CouponNotFound(f"coupon {code_up!r} not found", code=code_up)

    today = _as_date(at)
    if coupon.start_date and today < coupon.start_date:
        log.info(f"[Coupon: {code_up}] rejected: starts {coupon.start_date}")
        raise CouponNotYetActive(f"coupon {code_up} is valid from {coupon.start_date}", code=code_up)
    if coupon.end_date and today > coupon.end_date:
        log.info(f"[Coupon: {code_up}] rejected: ended {coupon.end_date}")
        raise CouponExpired(f"coupon {code_up} expired on {coupon.end_date}", code=code_up)

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise CouponUsageLimitReached(f"coupon {code_up} usage limit reached", code=code_up)

    if customer_id is not None and coupon.per_customer_limit is not None:
        used = directory.customer_usage_count(coupon.id, customer_id)
        if used >= coupon.per_customer_limit:
            raise CouponPerCustomerLimitReached(
                f"coupon {code_up} already used {used} time(s) by customer {customer_id}",
                code=code_up,
            )

    subtotal = subtotal_of(cart)
    if coupon.min_amount is not None and subtotal < coupon.min_amount:
        raise CouponMinimumNotMet(
            f"minimum purchase amount of {coupon.min_amount} required", code=code_up
        )

    log.info(f"[Coupon: {code_up}] accepted ({coupon.kind} {coupon.value})")
    return coupon
