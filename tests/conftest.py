"""
Pytest configuration and fixtures for the checkout service.

The settings are read at import time, so the environment is pinned to an
in-memory SQLite database before anything from pos_checkout is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DIRECTORY_BACKEND"] = "sql"
os.environ["TAX_RATE"] = "0.15"
os.environ["LOG_FILE"] = ""

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from pos_checkout.core.errors import PersistenceError  # noqa: E402
from pos_checkout.core.schemas import Coupon, DiscountRule, Product, SaleMetadata  # noqa: E402


class FakeBackend:
    """In-memory catalog, directory and sale store."""

    def __init__(self, products=(), discounts=(), coupons=(), usage=None):
        self.products = {p.id: p for p in products}
        self.discounts = {d.id: d for d in discounts}
        self.coupons = {c.code: c for c in coupons}
        self.usage = dict(usage or {})  # (coupon_id, customer_id) -> count
        self.submitted = []
        self.receipts = {}
        self.fail_with = None
        self.drop_reply = False  # store the sale, then fail as if the answer got lost
        self.on_lookup = None

    def get_product(self, product_id):
        return self.products.get(str(product_id))

    def list_discounts(self):
        return list(self.discounts.values())

    def get_discount(self, discount_id):
        return self.discounts.get(str(discount_id))

    def get_coupon_by_code(self, code):
        hook, self.on_lookup = self.on_lookup, None
        if hook:
            hook(code)
        return self.coupons.get(code)

    def customer_usage_count(self, coupon_id, customer_id):
        return self.usage.get((coupon_id, str(customer_id)), 0)

    def submit_sale(self, record):
        if self.fail_with is not None:
            raise self.fail_with
        self.submitted.append(record)
        if record.sale_id not in self.receipts:
            self.receipts[record.sale_id] = f"RCP-{len(self.receipts) + 1:06d}"
        if self.drop_reply:
            self.drop_reply = False
            raise PersistenceError("connection reset after write")
        return self.receipts[record.sale_id]


def make_product(pid="P-001", price="100.00", stock=None, name=None):
    return Product(id=pid, name=name or f"Product {pid}", price=Decimal(price), stock_quantity=stock)


def make_discount(did, kind, value):
    return DiscountRule(id=did, name=did, kind=kind, value=Decimal(str(value)))


def make_coupon(code, kind, value, **kw):
    return Coupon(code=code, kind=kind, value=Decimal(str(value)), **kw)


@pytest.fixture
def backend():
    return FakeBackend(
        products=[
            make_product("P-001", "100.00", stock=10, name="Rice 5kg"),
            make_product("P-002", "25.00", stock=2, name="Cooking Oil 1L"),
            make_product("P-003", "50.00", name="Gift Card"),
        ],
        discounts=[
            make_discount("D-10", "percentage", 10),
            make_discount("D-5OFF", "fixed", 5),
        ],
        coupons=[
            make_coupon("FIXED20", "fixed", 20, id=1, min_amount=Decimal("100")),
            make_coupon("SAVE10", "percentage", 10, id=2, min_amount=Decimal("25"), max_discount=Decimal("50")),
            make_coupon("VIP", "percentage", 50, id=3, per_customer_limit=1),
        ],
    )


@pytest.fixture
def metadata():
    return SaleMetadata(tenant_id="t-1", location_id="loc-1", operator_id="cashier-7", currency="GHS")


@pytest.fixture
def db():
    from pos_checkout.db import Base, SessionLocal, engine, init_db
    from pos_checkout.seed_demo import seed

    Base.metadata.drop_all(bind=engine)
    init_db()
    session = SessionLocal()
    seed(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from pos_checkout.main import app
    from pos_checkout.services.terminal import registry

    registry.clear()
    with TestClient(app) as c:
        yield c
    registry.clear()
