"""
Contracts of the systems the checkout core talks to.

Two implementations ship with the service: ``SqlBackend`` (local database)
and ``BackendClient`` (REST backend). Tests use in-memory fakes.
"""

from typing import List, Optional, Protocol

from ..core.schemas import Coupon, DiscountRule, Product, SaleRecord


class Catalog(Protocol):
    def get_product(self, product_id: str) -> Optional[Product]: ...


class CouponDirectory(Protocol):
    def get_coupon_by_code(self, code: str) -> Optional[Coupon]: ...

    def customer_usage_count(self, coupon_id: Optional[int], customer_id: str) -> int: ...


class DiscountDirectory(CouponDirectory, Protocol):
    def list_discounts(self) -> List[DiscountRule]: ...

    def get_discount(self, discount_id: str) -> Optional[DiscountRule]: ...


class SaleStore(Protocol):
    def submit_sale(self, record: SaleRecord) -> str:
        """Records the sale and returns its receipt id. Replays for a known sale_id."""
        ...
