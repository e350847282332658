from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.money import ZERO, money, to_decimal

RuleKind = Literal["percentage", "fixed"]

# spellings used by older coupon tables
_KIND_ALIASES = {"percent": "percentage", "amount": "fixed"}


class PaymentMethod(str, Enum):
    cash = "cash"
    card = "card"
    mobile_money = "mobile_money"
    bank_transfer = "bank_transfer"


def _normalize_kind(v):
    s = str(v or "").strip().lower()
    return _KIND_ALIASES.get(s, s)


def _check_rule_value(kind: str, value: Decimal):
    if value < 0:
        raise ValueError("value must be >= 0")
    if kind == "percentage" and value > 100:
        raise ValueError("percentage value must be between 0 and 100")


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: Decimal
    stock_quantity: Optional[int] = None
    category: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        return str(v)

    @field_validator("price", mode="before")
    @classmethod
    def _price_to_decimal(cls, v):
        return to_decimal(v)


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    unit_price: Decimal
    quantity: int = Field(default=1, ge=1)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class DiscountRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: RuleKind
    value: Decimal

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        return str(v)

    @field_validator("kind", mode="before")
    @classmethod
    def _kind(cls, v):
        return _normalize_kind(v)

    @field_validator("value", mode="before")
    @classmethod
    def _value_to_decimal(cls, v):
        return to_decimal(v)

    @model_validator(mode="after")
    def _value_range(self):
        _check_rule_value(self.kind, self.value)
        return self


class Coupon(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    code: str
    name: str = ""
    kind: RuleKind
    value: Decimal
    min_amount: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    usage_limit: Optional[int] = None
    used_count: int = 0
    per_customer_limit: Optional[int] = None
    active: bool = True

    @field_validator("code", mode="before")
    @classmethod
    def _code_upper(cls, v):
        return normalize_code(v)

    @field_validator("kind", mode="before")
    @classmethod
    def _kind(cls, v):
        return _normalize_kind(v)

    @field_validator("value", "min_amount", "max_discount", mode="before")
    @classmethod
    def _money_to_decimal(cls, v):
        if v is None:
            return v
        return to_decimal(v)

    @field_validator("used_count", mode="before")
    @classmethod
    def _used_count(cls, v):
        return int(v or 0)

    @model_validator(mode="after")
    def _value_range(self):
        _check_rule_value(self.kind, self.value)
        return self


def normalize_code(code) -> str:
    return (code or "").strip().upper()


class SaleBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal = ZERO
    discount_total: Decimal = ZERO
    coupon_amount: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    tax: Decimal = ZERO
    total: Decimal = ZERO


class SaleMetadata(BaseModel):
    """Who/where of a sale; passed explicitly instead of read from ambient state."""

    model_config = ConfigDict(frozen=True)

    tenant_id: Optional[str] = None
    location_id: Optional[str] = None
    operator_id: Optional[str] = None
    customer_id: Optional[str] = None
    currency: str = "GHS"
    notes: Optional[str] = None


class SaleLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class SaleRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    sale_id: str
    created_at: datetime
    lines: Tuple[SaleLine, ...]
    discount_ids: Tuple[str, ...] = ()
    coupon_id: Optional[int] = None
    coupon_code: Optional[str] = None
    payment_method: PaymentMethod
    tendered_cash: Optional[Decimal] = None
    change: Decimal = ZERO
    tax_rate: Decimal
    breakdown: SaleBreakdown
    metadata: SaleMetadata


class ReceiptLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class Receipt(BaseModel):
    """Everything a print/PDF/screen renderer needs, no recomputation required."""

    model_config = ConfigDict(frozen=True)

    receipt_id: str
    sale_id: str
    created_at: datetime
    lines: List[ReceiptLine]
    subtotal: Decimal
    discount_total: Decimal
    coupon_code: Optional[str] = None
    coupon_amount: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    payment_method: PaymentMethod
    tendered_cash: Optional[Decimal] = None
    change: Optional[Decimal] = None
    currency: str

    @classmethod
    def from_record(cls, record: SaleRecord, receipt_id: str) -> "Receipt":
        b = record.breakdown
        is_cash = record.payment_method == PaymentMethod.cash
        return cls(
            receipt_id=receipt_id,
            sale_id=record.sale_id,
            created_at=record.created_at,
            lines=[
                ReceiptLine(
                    description=ln.name,
                    quantity=ln.quantity,
                    unit_price=ln.unit_price,
                    line_total=ln.line_total,
                )
                for ln in record.lines
            ],
            subtotal=b.subtotal,
            discount_total=b.discount_total,
            coupon_code=record.coupon_code,
            coupon_amount=b.coupon_amount,
            tax_rate=record.tax_rate,
            tax=b.tax,
            total=b.total,
            payment_method=record.payment_method,
            tendered_cash=record.tendered_cash if is_cash else None,
            change=money(record.change) if is_cash else None,
            currency=record.metadata.currency,
        )
