"""
REST client for a remote POS backend.

Implements the same collaborator contracts as ``SqlBackend`` (catalog,
discount/coupon directory, sale store) over HTTP. Every call is a single
request: errors are logged and re-raised, retries are left to the operator.
"""

import logging
from typing import List, Optional

import httpx

from ..core.config import settings
from ..core.errors import PersistenceError
from ..core.schemas import Coupon, DiscountRule, Product, SaleRecord, normalize_code

log = logging.getLogger(__name__)


def _unwrap(payload):
    # the backend answers {"success": true, "data": ...}; older endpoints send the bare object
    if isinstance(payload, dict) and "data" in payload and "success" in payload:
        return payload["data"]
    return payload


def _coupon_from_json(data: dict) -> Coupon:
    data = dict(data)
    if "kind" not in data and "type" in data:
        data["kind"] = data.pop("type")
    if "status" in data:
        data["active"] = data.pop("status") == "active"
    return Coupon.model_validate(data)


def _discount_from_json(data: dict) -> DiscountRule:
    data = dict(data)
    if "kind" not in data and "type" in data:
        data["kind"] = data.pop("type")
    return DiscountRule.model_validate(data)


class BackendClient:
    """
    Client for the POS backend REST API.
    Handles product lookup, discounts/coupons and sale submission.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, transport=None):
        """
        Args:
            base_url (str | None): Backend root URL, defaults to ``settings.backend_url``.
            timeout (float | None): Connect/read timeout in seconds.
            transport (httpx.BaseTransport | None): Custom transport (tests use MockTransport).
        """
        timeout = timeout if timeout is not None else settings.backend_timeout
        self.client = httpx.Client(
            base_url=base_url or settings.backend_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _get(self, path: str, **params):
        try:
            response = self.client.get(path, params=params or None)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return _unwrap(response.json())
        except httpx.HTTPError as e:
            log.error(f"GET {path} failed: {e}")
            raise

    # --- catalog ---
    def get_product(self, product_id: str) -> Optional[Product]:
        data = self._get(f"/api/products/{product_id}")
        return Product.model_validate(data) if data else None

    # --- directory ---
    def list_discounts(self) -> List[DiscountRule]:
        data = self._get("/api/discounts", status="active") or []
        return [_discount_from_json(d) for d in data]

    def get_discount(self, discount_id: str) -> Optional[DiscountRule]:
        data = self._get(f"/api/discounts/{discount_id}")
        if not data or data.get("status", "active") != "active":
            return None
        return _discount_from_json(data)

    def get_coupon_by_code(self, code: str) -> Optional[Coupon]:
        data = self._get("/api/coupons", code=normalize_code(code))
        if isinstance(data, list):
            data = data[0] if data else None
        return _coupon_from_json(data) if data else None

    def customer_usage_count(self, coupon_id: Optional[int], customer_id: str) -> int:
        if coupon_id is None:
            return 0
        data = self._get(f"/api/coupons/{coupon_id}/usage", customer_id=customer_id) or {}
        return int(data.get("count", 0))

    # --- sale store ---
    def submit_sale(self, record: SaleRecord) -> str:
        """
        Sends the sale to the backend.

        The sale id doubles as Idempotency-Key, so re-sending the same record
        after a lost response does not create a second sale.

        Raises:
            httpx.HTTPError: transport failure or 4xx/5xx answer.
            PersistenceError: the answer is not JSON or has no receipt id.
        """
        headers = {"Idempotency-Key": record.sale_id}
        try:
            response = self.client.post(
                "/api/sales", json=record.model_dump(mode="json"), headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(f"[Sale: {record.sale_id}] Backend rejected sale (HTTP {e.response.status_code})")
            raise
        except httpx.HTTPError as e:
            log.error(f"[Sale: {record.sale_id}] Backend unreachable: {e}")
            raise
        try:
            data = _unwrap(response.json())
        except ValueError as e:
            log.error(f"[Sale: {record.sale_id}] Backend answered with a non-JSON body")
            raise PersistenceError(f"unreadable answer from backend: {e}") from e
        receipt_id = (data.get("receipt_id") or data.get("id")) if isinstance(data, dict) else None
        if not receipt_id:
            log.error(f"[Sale: {record.sale_id}] Backend answer carries no receipt id: {data!r}")
            raise PersistenceError("backend answer carries no receipt id")
        return str(receipt_id)
