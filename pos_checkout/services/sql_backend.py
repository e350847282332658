import json
import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..core.errors import PersistenceError
from ..core.schemas import Coupon, DiscountRule, Product, SaleRecord, normalize_code
from ..models import catalog as catalog_models
from ..models import coupon as coupon_models
from ..models import sale as sale_models

log = logging.getLogger(__name__)


def _coupon_from_row(row: coupon_models.Coupon) -> Coupon:
    return Coupon(
        id=row.id,
        code=row.code,
        name=row.name or "",
        kind=row.type,
        value=row.value,
        min_amount=row.min_amount,
        max_discount=row.max_discount,
        start_date=row.start_date,
        end_date=row.end_date,
        usage_limit=row.usage_limit,
        used_count=row.used_count,
        per_customer_limit=row.per_customer_limit,
        active=(row.status or "active") == "active",
    )


def _discount_from_row(row: catalog_models.Discount) -> DiscountRule:
    return DiscountRule(id=row.id, name=row.name, kind=row.type, value=row.value)


class SqlBackend:
    """Catalog, discount/coupon directory and sale store on the local database."""

    def __init__(self, db: Session):
        self.db = db

    # --- catalog ---
    def get_product(self, product_id: str) -> Optional[Product]:
        row = self.db.get(catalog_models.Product, str(product_id))
        if row is None:
            return None
        return Product(
            id=row.id,
            name=row.name,
            price=row.price,
            stock_quantity=row.stock_quantity,
            category=row.category,
        )

    # --- directory ---
    def list_discounts(self) -> List[DiscountRule]:
        rows = self.db.scalars(
            select(catalog_models.Discount)
            .where(catalog_models.Discount.status == "active")
            .order_by(catalog_models.Discount.name)
        ).all()
        return [_discount_from_row(r) for r in rows]

    def get_discount(self, discount_id: str) -> Optional[DiscountRule]:
        row = self.db.get(catalog_models.Discount, str(discount_id))
        if row is None or (row.status or "active") != "active":
            return None
        return _discount_from_row(row)

    def get_coupon_by_code(self, code: str) -> Optional[Coupon]:
        row = self.db.scalars(
            select(coupon_models.Coupon).where(
                func.upper(coupon_models.Coupon.code) == normalize_code(code)
            )
        ).first()
        return _coupon_from_row(row) if row is not None else None

    def customer_usage_count(self, coupon_id: Optional[int], customer_id: str) -> int:
        if coupon_id is None:
            return 0
        return self.db.scalar(
            select(func.count(coupon_models.CouponUsage.id)).where(
                coupon_models.CouponUsage.coupon_id == coupon_id,
                coupon_models.CouponUsage.customer_id == str(customer_id),
            )
        ) or 0

    # --- sale store ---
    def submit_sale(self, record: SaleRecord) -> str:
        """
        Idempotente por sale_id: si la venta ya existe devuelve el mismo recibo
        sin duplicar lineas, stock ni uso de cupon.
        """
        prev = self.db.scalars(
            select(sale_models.Sale).where(sale_models.Sale.sale_key == record.sale_id)
        ).first()
        if prev is not None:
            log.info(f"[Sale: {record.sale_id}] Replay, receipt {prev.receipt_no}")
            return prev.receipt_no

        b = record.breakdown
        meta = record.metadata
        sale = sale_models.Sale(
            sale_key=record.sale_id,
            tenant_id=meta.tenant_id,
            location_id=meta.location_id,
            operator_id=meta.operator_id,
            customer_id=meta.customer_id,
            payment_method=record.payment_method.value,
            currency=meta.currency,
            subtotal=b.subtotal,
            discount_total=b.discount_total,
            coupon_code=record.coupon_code,
            coupon_amount=b.coupon_amount,
            tax_rate=record.tax_rate,
            tax_total=b.tax,
            total=b.total,
            tendered_cash=record.tendered_cash,
            change=record.change,
            discount_ids_json=json.dumps(list(record.discount_ids)),
            notes=meta.notes,
            created_at=record.created_at.replace(tzinfo=None),
        )
        for ln in record.lines:
            sale.lines.append(
                sale_models.SaleLine(
                    product_id=ln.product_id,
                    name=ln.name,
                    qty=ln.quantity,
                    unit_price=ln.unit_price,
                    line_total=ln.line_total,
                )
            )
        try:
            self.db.add(sale)
            self.db.flush()
            receipt_no = sale.receipt_no = f"RCP-{sale.id:06d}"

            # descontar inventario (solo productos con control de stock)
            for ln in record.lines:
                self.db.execute(
                    update(catalog_models.Product)
                    .where(
                        catalog_models.Product.id == ln.product_id,
                        catalog_models.Product.stock_quantity.is_not(None),
                    )
                    .values(stock_quantity=catalog_models.Product.stock_quantity - ln.quantity)
                )

            if record.coupon_id is not None:
                self._mark_coupon_used(record)

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise PersistenceError(str(e)) from e
        return receipt_no

    def _mark_coupon_used(self, record: SaleRecord):
        self.db.add(
            coupon_models.CouponUsage(
                coupon_id=record.coupon_id,
                customer_id=record.metadata.customer_id,
                sale_key=record.sale_id,
            )
        )
        self.db.execute(
            update(coupon_models.Coupon)
            .where(coupon_models.Coupon.id == record.coupon_id)
            .values(used_count=func.coalesce(coupon_models.Coupon.used_count, 0) + 1)
        )
