"""
finalizer.py: Sale finalization.

Turns a priced cart and a reconciled payment into an immutable SaleRecord,
hands it to the sale store and builds the receipt content.

Failure contract:
    - the finalizer never clears or mutates the cart
    - a store failure surfaces as PersistenceFailed right away (no retry);
      the caller keeps the cart so the cashier can confirm again
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import NamedTuple, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import EmptyCart, PersistenceError, PersistenceFailed
from ..core.schemas import Receipt, SaleBreakdown, SaleLine, SaleMetadata, SaleRecord
from .cart import Cart
from .collaborators import SaleStore
from .payment import PaymentOutcome

log = logging.getLogger(__name__)


class FinalizedSale(NamedTuple):
    record: SaleRecord
    receipt: Receipt


def build_record(
    cart: Cart,
    breakdown: SaleBreakdown,
    outcome: PaymentOutcome,
    metadata: SaleMetadata,
    tax_rate,
    sale_id: Optional[str] = None,
) -> SaleRecord:
    coupon = cart.coupon
    return SaleRecord(
        sale_id=sale_id or str(uuid.uuid4()),
        created_at=datetime.now(timezone.utc),
        lines=tuple(
            SaleLine(
                product_id=ln.product_id,
                name=ln.name,
                unit_price=ln.unit_price,
                quantity=ln.quantity,
                line_total=ln.line_total,
            )
            for ln in cart.lines
        ),
        discount_ids=tuple(d.id for d in cart.discounts),
        coupon_id=coupon.id if coupon else None,
        coupon_code=coupon.code if coupon else None,
        payment_method=outcome.method,
        tendered_cash=outcome.tendered_cash,
        change=outcome.change,
        tax_rate=tax_rate,
        breakdown=breakdown,
        metadata=metadata,
    )


def finalize(
    cart: Cart,
    breakdown: SaleBreakdown,
    outcome: PaymentOutcome,
    metadata: SaleMetadata,
    store: SaleStore,
    tax_rate=0,
    sale_id: Optional[str] = None,
) -> FinalizedSale:
    """
    Records the sale and returns it with its receipt.

    ``outcome`` only exists once reconcile() accepted the payment, so an
    insufficient tender has already been raised before this point.

    Raises:
        EmptyCart: the cart has no lines.
        PersistenceFailed: the store could not record the sale.
    """
    if cart.is_empty:
        raise EmptyCart("cannot finalize an empty cart")

    record = build_record(cart, breakdown, outcome, metadata, tax_rate, sale_id)
    log_prefix = f"[Sale: {record.sale_id}]"
    log.info(f"{log_prefix} Submitting sale: total={breakdown.total} method={outcome.method.value}")

    try:
        receipt_id = store.submit_sale(record)
    except (httpx.HTTPError, SQLAlchemyError, PersistenceError) as e:
        log.error(f"{log_prefix} Sale could not be recorded, cart kept for retry: {e}")
        raise PersistenceFailed(f"sale could not be recorded: {e}", sale_id=record.sale_id) from e

    log.info(f"{log_prefix} Sale recorded as receipt {receipt_id}")
    return FinalizedSale(record=record, receipt=Receipt.from_record(record, receipt_id))
