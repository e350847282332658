from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from pos_checkout.core.errors import CouponPerCustomerLimitReached, PersistenceError, PersistenceFailed
from pos_checkout.core.schemas import SaleMetadata
from pos_checkout.models.catalog import Product
from pos_checkout.models.coupon import Coupon, CouponUsage
from pos_checkout.models.sale import Sale, SaleLine
from pos_checkout.services.sql_backend import SqlBackend
from pos_checkout.services.terminal import TerminalSession

AT = datetime(2025, 8, 25, 9, 0)


@pytest.fixture
def sql(db):
    return SqlBackend(db)


def _session(customer_id="cust-1"):
    meta = SaleMetadata(tenant_id="t-1", location_id="loc-1", operator_id="cashier-7", customer_id=customer_id)
    return TerminalSession("sql-term", meta, "0.15")


def test_product_lookup(sql):
    p = sql.get_product("P-001")
    assert p.name == "Rice 5kg"
    assert p.price == Decimal("100.00")
    assert p.stock_quantity == 50
    assert sql.get_product("P-003").stock_quantity is None
    assert sql.get_product("nope") is None


def test_inactive_discounts_are_hidden(sql):
    assert [d.id for d in sql.list_discounts()] == ["D-5OFF", "D-10"]
    assert sql.get_discount("D-OLD") is None
    assert sql.get_discount("D-10").kind == "percentage"


def test_coupon_lookup_ignores_case(sql):
    c = sql.get_coupon_by_code("welcome20")
    assert c.code == "WELCOME20"
    assert c.max_discount == Decimal("100.00")
    assert c.per_customer_limit == 1
    assert sql.get_coupon_by_code("NOPE") is None


def test_sale_is_recorded_with_side_effects(sql, db):
    s = _session()
    s.add_product(sql, "P-001")
    s.add_product(sql, "P-001")
    s.add_product(sql, "P-002")
    s.apply_coupon(sql, "SAVE10", at=AT)

    sale = s.confirm(sql, "cash", "300")

    assert sale.receipt.receipt_id == "RCP-000001"
    row = db.scalars(select(Sale).where(Sale.sale_key == sale.record.sale_id)).one()
    assert row.receipt_no == "RCP-000001"
    assert row.total == sale.receipt.total
    assert row.coupon_code == "SAVE10"
    assert row.customer_id == "cust-1"
    assert sorted((ln.product_id, ln.qty) for ln in row.lines) == [("P-001", 2), ("P-002", 1)]

    assert db.get(Product, "P-001").stock_quantity == 48
    assert db.get(Product, "P-002").stock_quantity == 2

    coupon = db.scalars(select(Coupon).where(Coupon.code == "SAVE10")).one()
    assert coupon.used_count == 1
    assert sql.customer_usage_count(coupon.id, "cust-1") == 1
    assert sql.customer_usage_count(coupon.id, "cust-2") == 0


def test_resubmitting_same_sale_replays_receipt(sql, db):
    s = _session()
    s.add_product(sql, "P-001")
    s.apply_coupon(sql, "SAVE10", at=AT)
    sale = s.confirm(sql, "card")

    again = sql.submit_sale(sale.record)

    assert again == sale.receipt.receipt_id
    assert db.scalar(select(func.count(Sale.id))) == 1
    assert db.scalar(select(func.count(SaleLine.id))) == 1
    assert db.scalar(select(func.count(CouponUsage.id))) == 1
    assert db.get(Product, "P-001").stock_quantity == 49


def test_per_customer_limit_enforced_from_history(sql):
    first = _session()
    first.add_product(sql, "P-001")
    first.apply_coupon(sql, "WELCOME20", at=AT)
    first.confirm(sql, "card")

    second = _session()
    second.add_product(sql, "P-001")
    with pytest.raises(CouponPerCustomerLimitReached):
        second.apply_coupon(sql, "WELCOME20", at=AT)

    anonymous = _session(customer_id=None)
    anonymous.add_product(sql, "P-001")
    assert anonymous.apply_coupon(sql, "WELCOME20", at=AT).code == "WELCOME20"


def test_database_failure_rolls_back(sql, db, monkeypatch):
    def broken_flush(*args, **kwargs):
        raise OperationalError("INSERT INTO sale", {}, Exception("database is locked"))

    s = _session()
    s.add_product(sql, "P-001")
    monkeypatch.setattr(db, "flush", broken_flush)

    with pytest.raises(PersistenceFailed) as exc:
        s.confirm(sql, "cash", "200")
    assert isinstance(exc.value.__cause__, PersistenceError)
    assert len(s.cart) == 1

    monkeypatch.undo()
    assert db.scalar(select(func.count(Sale.id))) == 0
    assert db.get(Product, "P-001").stock_quantity == 50
