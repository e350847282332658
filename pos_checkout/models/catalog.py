from sqlalchemy import Column, Integer, Numeric, String

from ..db import Base


class Product(Base):
    __tablename__ = "product"
    id = Column(String(64), primary_key=True)
    name = Column(String(120), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    stock_quantity = Column(Integer)  # NULL = sin control de stock
    category = Column(String(80))


class Discount(Base):
    __tablename__ = "discount"
    id = Column(String(64), primary_key=True)
    name = Column(String(120), nullable=False)
    type = Column(String, nullable=False)  # 'percentage' | 'fixed'
    value = Column(Numeric(12, 2), nullable=False)
    status = Column(String, default="active")  # active | inactive
