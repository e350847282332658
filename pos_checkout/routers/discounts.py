from typing import List

from fastapi import APIRouter, Depends

from ..core.schemas import DiscountRule
from .terminal import get_backend

router = APIRouter(prefix="/pos/discounts", tags=["pos", "discounts"])


@router.get("", response_model=List[DiscountRule])
def list_discounts(backend=Depends(get_backend)):
    """Active discounts the cashier can pick from."""
    return backend.list_discounts()
