from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..db import Base


class Sale(Base):
    __tablename__ = "sale"
    id = Column(Integer, primary_key=True)
    sale_key = Column(String, unique=True, index=True, nullable=False)  # SaleRecord.sale_id
    receipt_no = Column(String, unique=True, index=True)
    tenant_id = Column(String)
    location_id = Column(String)
    operator_id = Column(String)
    customer_id = Column(String)
    payment_method = Column(String, nullable=False)  # cash | card | mobile_money | bank_transfer
    currency = Column(String, default="GHS")
    subtotal = Column(Numeric(12, 2), default=0)
    discount_total = Column(Numeric(12, 2), default=0)
    coupon_code = Column(String)
    coupon_amount = Column(Numeric(12, 2), default=0)
    tax_rate = Column(Numeric(6, 4), default=0)
    tax_total = Column(Numeric(12, 2), default=0)
    total = Column(Numeric(12, 2), default=0)
    tendered_cash = Column(Numeric(12, 2))
    change = Column(Numeric(12, 2), default=0)
    discount_ids_json = Column(String)
    notes = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)

    lines = relationship("SaleLine", back_populates="sale", cascade="all, delete-orphan")


class SaleLine(Base):
    __tablename__ = "sale_line"
    id = Column(Integer, primary_key=True)
    sale_id = Column(Integer, ForeignKey("sale.id"), nullable=False)
    product_id = Column(String, nullable=False)
    name = Column(String(120))
    qty = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    line_total = Column(Numeric(12, 2), default=0)

    sale = relationship("Sale", back_populates="lines")
