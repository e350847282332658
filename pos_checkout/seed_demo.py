from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from .db import SessionLocal, init_db
from .models.catalog import Discount, Product
from .models.coupon import Coupon

PRODUCTS = [
    {"id": "P-001", "name": "Rice 5kg", "price": Decimal("100.00"), "stock_quantity": 50, "category": "Groceries"},
    {"id": "P-002", "name": "Cooking Oil 1L", "price": Decimal("25.00"), "stock_quantity": 3, "category": "Groceries"},
    {"id": "P-003", "name": "Gift Card", "price": Decimal("50.00"), "stock_quantity": None, "category": "Services"},
]

DISCOUNTS = [
    {"id": "D-10", "name": "Staff 10%", "type": "percentage", "value": Decimal("10"), "status": "active"},
    {"id": "D-5OFF", "name": "Loyalty 5 off", "type": "fixed", "value": Decimal("5.00"), "status": "active"},
    {"id": "D-OLD", "name": "Launch week", "type": "percentage", "value": Decimal("15"), "status": "inactive"},
]

COUPONS = [
    {
        "code": "WELCOME20", "name": "Welcome Discount", "type": "percentage", "value": Decimal("20"),
        "min_amount": Decimal("50"), "max_discount": Decimal("100"),
        "start_date": date(2025, 1, 1), "end_date": date(2030, 12, 31),
        "usage_limit": 1000, "per_customer_limit": 1, "status": "active",
    },
    {
        "code": "SAVE10", "name": "Save 10%", "type": "percentage", "value": Decimal("10"),
        "min_amount": Decimal("25"), "max_discount": Decimal("50"),
        "start_date": date(2025, 1, 1), "end_date": date(2030, 12, 31),
        "usage_limit": 500, "per_customer_limit": 3, "status": "active",
    },
    {
        "code": "FIXED20", "name": "20 off", "type": "fixed", "value": Decimal("20"),
        "min_amount": Decimal("100"), "usage_limit": 200, "status": "active",
    },
]


def get_or_create(session: Session, model, defaults=None, **kwargs):
    inst = session.query(model).filter_by(**kwargs).first()
    if inst:
        return inst, False
    params = dict(kwargs)
    if defaults:
        params.update(defaults)
    inst = model(**params)
    session.add(inst)
    session.flush()
    return inst, True


def seed(db: Session):
    for p in PRODUCTS:
        p = dict(p)
        get_or_create(db, Product, defaults=p, id=p.pop("id"))
    for d in DISCOUNTS:
        d = dict(d)
        get_or_create(db, Discount, defaults=d, id=d.pop("id"))
    for c in COUPONS:
        c = dict(c)
        get_or_create(db, Coupon, defaults=c, code=c.pop("code"))
    db.commit()


def main():
    init_db()
    db: Session = SessionLocal()
    try:
        seed(db)
        print(
            f"Seed OK | products={len(PRODUCTS)} discounts={len(DISCOUNTS)} coupons={len(COUPONS)}"
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
