from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from ..core.errors import InvalidQuantity, ProductNotInCart
from ..core.schemas import CartLine, Coupon, DiscountRule, Product, normalize_code
from ..utils.money import ZERO


class Cart:
    """
    In-progress transaction of one terminal session.

    Pure data holder: it never prices itself, callers run the evaluator after
    each mutation. Lines are keyed by product id (one line per product) and
    keep insertion order for display. Lines are frozen and replaced on change,
    so nothing outside the cart can alter them. ``revision`` increases on every
    mutation so callers can tell whether the cart changed between two reads.
    """

    def __init__(self):
        self._lines: Dict[str, CartLine] = {}
        self._discounts: Dict[str, DiscountRule] = {}
        self._coupon: Optional[Coupon] = None
        self._pending_code: Optional[str] = None
        self.revision = 0

    # --- lines ---
    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def get(self, product_id) -> Optional[CartLine]:
        return self._lines.get(str(product_id))

    def add_item(self, product: Product) -> CartLine:
        line = self._lines.get(product.id)
        if line is not None:
            line = line.model_copy(update={"quantity": line.quantity + 1})
        else:
            # price is captured here; later catalog changes never reach this line
            line = CartLine(product_id=product.id, name=product.name, unit_price=product.price)
        self._lines[product.id] = line
        self._touch()
        return line

    @staticmethod
    def parse_quantity(quantity) -> int:
        try:
            qty = int(quantity)
        except (TypeError, ValueError):
            raise InvalidQuantity(f"quantity must be a whole number, got {quantity!r}") from None
        if qty < 1:
            raise InvalidQuantity("quantity must be >= 1, use remove_item to drop a line")
        return qty

    def set_quantity(self, product_id, quantity) -> CartLine:
        qty = self.parse_quantity(quantity)
        line = self._lines.get(str(product_id))
        if line is None:
            raise ProductNotInCart(f"product {product_id} is not in the cart")
        line = self._lines[line.product_id] = line.model_copy(update={"quantity": qty})
        self._touch()
        return line

    def remove_item(self, product_id) -> None:
        if self._lines.pop(str(product_id), None) is not None:
            self._touch()

    def subtotal(self) -> Decimal:
        return sum((ln.line_total for ln in self._lines.values()), ZERO)

    # --- discounts (set semantics by id) ---
    @property
    def discounts(self) -> List[DiscountRule]:
        return list(self._discounts.values())

    def apply_discount(self, rule: DiscountRule) -> bool:
        if rule.id in self._discounts:
            return False
        self._discounts[rule.id] = rule
        self._touch()
        return True

    def remove_discount(self, discount_id) -> None:
        if self._discounts.pop(str(discount_id), None) is not None:
            self._touch()

    # --- coupon slot ---
    @property
    def coupon(self) -> Optional[Coupon]:
        return self._coupon

    @property
    def pending_code(self) -> Optional[str]:
        return self._pending_code

    def begin_coupon(self, code) -> str:
        """Mark ``code`` as the code awaiting validation; supersedes any earlier one."""
        self._pending_code = normalize_code(code)
        return self._pending_code

    def cancel_pending(self) -> None:
        self._pending_code = None

    def attach_coupon(self, coupon: Coupon) -> bool:
        """Accept a validated coupon only while its code is still the pending one."""
        if coupon.code != self._pending_code:
            return False
        self._coupon = coupon
        self._pending_code = None
        self._touch()
        return True

    def detach_coupon(self) -> None:
        had = self._coupon is not None
        self._coupon = None
        self._pending_code = None
        if had:
            self._touch()

    def clear(self) -> None:
        self._lines.clear()
        self._discounts.clear()
        self._coupon = None
        self._pending_code = None
        self._touch()

    def _touch(self):
        self.revision += 1
