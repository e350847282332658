from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String

from ..db import Base


class Coupon(Base):
    __tablename__ = "coupon"
    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, index=True, nullable=False)
    name = Column(String(120))
    type = Column(String, nullable=False)  # 'percentage' | 'fixed'
    value = Column(Numeric(12, 2), nullable=False)
    min_amount = Column(Numeric(12, 2))
    max_discount = Column(Numeric(12, 2))
    start_date = Column(Date)
    end_date = Column(Date)
    usage_limit = Column(Integer)
    used_count = Column(Integer, default=0)
    per_customer_limit = Column(Integer)
    status = Column(String, default="active")  # active | inactive
    created_at = Column(DateTime, default=datetime.utcnow)


class CouponUsage(Base):
    __tablename__ = "coupon_usage"
    id = Column(Integer, primary_key=True)
    coupon_id = Column(Integer, ForeignKey("coupon.id"), nullable=False)
    customer_id = Column(String)
    sale_key = Column(String, index=True)
    used_at = Column(DateTime, default=datetime.utcnow)
