from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.schemas import PaymentMethod, Receipt, SaleBreakdown, SaleMetadata
from ..db import get_db
from ..services.http_backend import BackendClient
from ..services.payment import PaymentOutcome
from ..services.sql_backend import SqlBackend
from ..services.terminal import TerminalSession, registry
from ..utils.money import to_decimal

router = APIRouter(prefix="/pos/terminal", tags=["pos", "terminal"])


def get_backend(db: Session = Depends(get_db)):
    if settings.directory_backend == "http":
        client = BackendClient()
        try:
            yield client
        finally:
            client.close()
    else:
        yield SqlBackend(db)


# ====== Schemas ======
class OpenBody(BaseModel):
    tenant_id: Optional[str] = None
    location_id: Optional[str] = None
    operator_id: Optional[str] = None
    customer_id: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None


class AddItemBody(BaseModel):
    product_id: str

    @field_validator("product_id", mode="before")
    @classmethod
    def _to_str(cls, v):
        return str(v)


class QuantityBody(BaseModel):
    quantity: int


class DiscountBody(BaseModel):
    discount_id: str

    @field_validator("discount_id", mode="before")
    @classmethod
    def _to_str(cls, v):
        return str(v)


class CustomerBody(BaseModel):
    customer_id: str

    @field_validator("customer_id", mode="before")
    @classmethod
    def _to_str(cls, v):
        return str(v)


class CouponBody(BaseModel):
    code: str
    at: Optional[datetime] = None


class PayBody(BaseModel):
    method: PaymentMethod = PaymentMethod.cash
    tendered_cash: Optional[Decimal] = None

    @field_validator("tendered_cash", mode="before")
    @classmethod
    def _to_decimal(cls, v):
        if v is None or v == "":
            return None
        return to_decimal(v)


class LineOut(BaseModel):
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class SessionState(BaseModel):
    session_id: str
    tax_rate: Decimal
    customer_id: Optional[str] = None
    lines: List[LineOut]
    discount_ids: List[str]
    coupon_code: Optional[str] = None
    pending_coupon: Optional[str] = None
    breakdown: SaleBreakdown


def _state(session: TerminalSession) -> SessionState:
    cart = session.cart
    return SessionState(
        session_id=session.session_id,
        tax_rate=session.tax_rate,
        customer_id=session.customer_id,
        lines=[
            LineOut(
                product_id=ln.product_id,
                name=ln.name,
                unit_price=ln.unit_price,
                quantity=ln.quantity,
                line_total=ln.line_total,
            )
            for ln in cart.lines
        ],
        discount_ids=[d.id for d in cart.discounts],
        coupon_code=cart.coupon.code if cart.coupon else None,
        pending_coupon=cart.pending_code,
        breakdown=session.breakdown,
    )


# ====== Endpoints ======
@router.post("/open", response_model=SessionState)
def open_session(body: Optional[OpenBody] = Body(default=None)):
    body = body or OpenBody()
    metadata = SaleMetadata(
        tenant_id=body.tenant_id,
        location_id=body.location_id,
        operator_id=body.operator_id,
        customer_id=body.customer_id,
        currency=settings.currency,
        notes=body.notes,
    )
    tax_rate = body.tax_rate if body.tax_rate is not None else settings.tax_rate
    return _state(registry.open(metadata, tax_rate))


@router.get("/{session_id}", response_model=SessionState)
def get_session(session_id: str):
    return _state(registry.get(session_id))


@router.delete("/{session_id}")
def close_session(session_id: str):
    registry.close(session_id)
    return {"closed": True, "session_id": session_id}


@router.post("/{session_id}/items", response_model=SessionState)
def add_item(session_id: str, body: AddItemBody, backend=Depends(get_backend)):
    session = registry.get(session_id)
    session.add_product(backend, body.product_id)
    return _state(session)


@router.put("/{session_id}/items/{product_id}", response_model=SessionState)
def set_quantity(session_id: str, product_id: str, body: QuantityBody, backend=Depends(get_backend)):
    session = registry.get(session_id)
    session.set_quantity(backend, product_id, body.quantity)
    return _state(session)


@router.delete("/{session_id}/items/{product_id}", response_model=SessionState)
def remove_item(session_id: str, product_id: str):
    session = registry.get(session_id)
    session.remove_item(product_id)
    return _state(session)


@router.post("/{session_id}/discounts", response_model=SessionState)
def apply_discount(session_id: str, body: DiscountBody, backend=Depends(get_backend)):
    session = registry.get(session_id)
    session.apply_discount(backend, body.discount_id)
    return _state(session)


@router.delete("/{session_id}/discounts/{discount_id}", response_model=SessionState)
def remove_discount(session_id: str, discount_id: str):
    session = registry.get(session_id)
    session.remove_discount(discount_id)
    return _state(session)


@router.put("/{session_id}/customer", response_model=SessionState)
def attach_customer(session_id: str, body: CustomerBody, backend=Depends(get_backend)):
    session = registry.get(session_id)
    session.attach_customer(backend, body.customer_id)
    return _state(session)


@router.delete("/{session_id}/customer", response_model=SessionState)
def detach_customer(session_id: str):
    session = registry.get(session_id)
    session.detach_customer()
    return _state(session)


@router.post("/{session_id}/coupon")
def apply_coupon(session_id: str, body: CouponBody, backend=Depends(get_backend)):
    session = registry.get(session_id)
    coupon = session.apply_coupon(backend, body.code, at=body.at)
    return {"applied": coupon is not None, "state": _state(session)}


@router.delete("/{session_id}/coupon", response_model=SessionState)
def clear_coupon(session_id: str):
    session = registry.get(session_id)
    session.clear_coupon()
    return _state(session)


@router.post("/{session_id}/checkout", response_model=PaymentOutcome)
def checkout(session_id: str, body: PayBody):
    """Preview of the payment: validates tender and returns the change, records nothing."""
    return registry.get(session_id).checkout(body.method, body.tendered_cash)


@router.post("/{session_id}/finalize", response_model=Receipt)
def finalize_sale(session_id: str, body: PayBody, backend=Depends(get_backend)):
    session = registry.get(session_id)
    return session.confirm(backend, body.method, body.tendered_cash).receipt


@router.post("/{session_id}/reset", response_model=SessionState)
def reset(session_id: str):
    session = registry.get(session_id)
    session.reset()
    return _state(session)
