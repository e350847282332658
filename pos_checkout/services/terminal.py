import logging
import threading
import uuid
from typing import Dict, Optional

from ..core.errors import (
    CouponPerCustomerLimitReached,
    DiscountNotFound,
    EmptyCart,
    OutOfStock,
    ProductNotFound,
    SessionNotFound,
)
from ..core.schemas import Coupon, DiscountRule, SaleBreakdown, SaleMetadata, normalize_code
from ..utils.money import to_decimal
from .cart import Cart
from .collaborators import Catalog, CouponDirectory, DiscountDirectory, SaleStore
from .coupon_validator import validate_coupon
from .finalizer import FinalizedSale, finalize
from .payment import PaymentOutcome, reconcile
from .pricing import evaluate

log = logging.getLogger(__name__)


class TerminalSession:
    """
    One terminal, one cart. Collaborators are passed per call; the session
    only keeps transaction state.
    """

    def __init__(self, session_id: str, metadata: SaleMetadata, tax_rate):
        self.session_id = session_id
        self.metadata = metadata
        self.tax_rate = to_decimal(tax_rate)
        self.cart = Cart()
        self._breakdown = SaleBreakdown()
        # sale id kept across failed confirmations of the same cart revision
        self._pending_sale: Optional[tuple] = None

    @property
    def log_prefix(self):
        return f"[Session: {self.session_id}]"

    # --- pricing ---
    def recompute(self) -> SaleBreakdown:
        self._breakdown = evaluate(self.cart, self.cart.discounts, self.cart.coupon, self.tax_rate)
        return self._breakdown

    @property
    def breakdown(self) -> SaleBreakdown:
        return self._breakdown

    # --- items ---
    def _lookup(self, catalog: Catalog, product_id):
        product = catalog.get_product(str(product_id))
        if product is None:
            raise ProductNotFound(f"product {product_id} not found")
        return product

    def add_product(self, catalog: Catalog, product_id) -> SaleBreakdown:
        product = self._lookup(catalog, product_id)
        line = self.cart.get(product.id)
        wanted = (line.quantity if line else 0) + 1
        self._check_stock(product, wanted)
        self.cart.add_item(product)
        return self.recompute()

    def set_quantity(self, catalog: Catalog, product_id, quantity) -> SaleBreakdown:
        qty = Cart.parse_quantity(quantity)
        if self.cart.get(product_id) is not None:
            self._check_stock(self._lookup(catalog, product_id), qty)
        self.cart.set_quantity(product_id, qty)
        return self.recompute()

    def remove_item(self, product_id) -> SaleBreakdown:
        self.cart.remove_item(product_id)
        return self.recompute()

    @staticmethod
    def _check_stock(product, wanted: int):
        if product.stock_quantity is not None and wanted > product.stock_quantity:
            raise OutOfStock(
                f"only {product.stock_quantity} of {product.name} in stock",
                product_id=product.id,
            )

    # --- discounts ---
    def apply_discount(self, directory: DiscountDirectory, discount_id) -> SaleBreakdown:
        rule: Optional[DiscountRule] = directory.get_discount(str(discount_id))
        if rule is None:
            raise DiscountNotFound(f"discount {discount_id} not found")
        self.cart.apply_discount(rule)
        return self.recompute()

    def remove_discount(self, discount_id) -> SaleBreakdown:
        self.cart.remove_discount(discount_id)
        return self.recompute()

    # --- customer ---
    @property
    def customer_id(self) -> Optional[str]:
        return self.metadata.customer_id

    def attach_customer(self, directory: CouponDirectory, customer_id) -> None:
        """
        Sets the customer of the current transaction.

        An already applied coupon is checked against the new customer's usage;
        if that customer is over the limit nothing changes.
        """
        customer_id = str(customer_id)
        coupon = self.cart.coupon
        if coupon is not None and coupon.per_customer_limit is not None:
            used = directory.customer_usage_count(coupon.id, customer_id)
            if used >= coupon.per_customer_limit:
                raise CouponPerCustomerLimitReached(
                    f"coupon {coupon.code} already used {used} time(s) by customer {customer_id}",
                    code=coupon.code,
                )
        self.metadata = self.metadata.model_copy(update={"customer_id": customer_id})
        log.info(f"{self.log_prefix} Customer {customer_id} attached")

    def detach_customer(self) -> None:
        self.metadata = self.metadata.model_copy(update={"customer_id": None})

    # --- coupon ---
    def apply_coupon(self, directory: CouponDirectory, code: str, at=None) -> Optional[Coupon]:
        """
        Validates ``code`` and attaches it, replacing any previous coupon.

        Returns None when the code was superseded or cleared while the lookup
        was in flight; the stale result is dropped. Coupon errors leave the
        cart (and a previously applied coupon) untouched.
        """
        current = self.cart.coupon
        if current is not None and current.code == normalize_code(code):
            # already accepted for this transaction; not re-validated
            self.cart.cancel_pending()
            return current

        pending = self.cart.begin_coupon(code)
        try:
            coupon = validate_coupon(
                pending, self.cart, directory, customer_id=self.metadata.customer_id, at=at
            )
        except Exception:
            if self.cart.pending_code == pending:
                self.cart.cancel_pending()
            raise
        if not self.cart.attach_coupon(coupon):
            log.info(f"{self.log_prefix} Dropping stale validation for coupon {pending}")
            return None
        self.recompute()
        return coupon

    def clear_coupon(self) -> SaleBreakdown:
        self.cart.detach_coupon()
        return self.recompute()

    # --- checkout ---
    def checkout(self, method, tendered_cash=None) -> PaymentOutcome:
        if self.cart.is_empty:
            raise EmptyCart("cart is empty")
        return reconcile(method, self.recompute().total, tendered_cash)

    def confirm(self, store: SaleStore, method, tendered_cash=None) -> FinalizedSale:
        if self.cart.is_empty:
            raise EmptyCart("cart is empty")
        breakdown = self.recompute()
        outcome = reconcile(method, breakdown.total, tendered_cash)

        # a retry keeps its sale id only if nothing that ends up on the receipt changed
        attempt = (self.cart.revision, outcome.method, outcome.tendered_cash, self.metadata.customer_id)
        if self._pending_sale and self._pending_sale[0] == attempt:
            sale_id = self._pending_sale[1]
        else:
            sale_id = str(uuid.uuid4())
            self._pending_sale = (attempt, sale_id)

        result = finalize(
            self.cart, breakdown, outcome, self.metadata, store, tax_rate=self.tax_rate, sale_id=sale_id
        )
        log.info(f"{self.log_prefix} Sale {sale_id} completed, clearing cart")
        self.reset()
        return result

    def reset(self) -> SaleBreakdown:
        self.cart.clear()
        self.detach_customer()
        self._pending_sale = None
        return self.recompute()


class SessionRegistry:
    """In-memory map of open terminal sessions (one cart each, nothing shared)."""

    def __init__(self):
        self._sessions: Dict[str, TerminalSession] = {}
        self._lock = threading.Lock()

    def open(self, metadata: SaleMetadata, tax_rate) -> TerminalSession:
        session = TerminalSession(uuid.uuid4().hex[:12], metadata, tax_rate)
        with self._lock:
            self._sessions[session.session_id] = session
        log.info(f"{session.log_prefix} Terminal session opened (tax_rate={session.tax_rate})")
        return session

    def get(self, session_id: str) -> TerminalSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"terminal session {session_id} not found")
        return session

    def close(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound(f"terminal session {session_id} not found")

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


registry = SessionRegistry()
