from sqlalchemy import func, select

from pos_checkout.models.catalog import Product
from pos_checkout.models.coupon import Coupon
from pos_checkout.models.sale import Sale

BASE = "/pos/terminal"


def _open(client, **body):
    r = client.post(f"{BASE}/open", json=body or None)
    assert r.status_code == 200, r.text
    return r.json()["session_id"]


def _add(client, sid, product_id):
    return client.post(f"{BASE}/{sid}/items", json={"product_id": product_id})


def test_happy_flow(client, db):
    sid = _open(client, operator_id="cashier-7", customer_id="cust-1")

    for _ in range(2):
        r = _add(client, sid, "P-001")
        assert r.status_code == 200, r.text
    r = client.post(f"{BASE}/{sid}/discounts", json={"discount_id": "D-10"})
    assert r.status_code == 200, r.text

    r = client.post(f"{BASE}/{sid}/coupon", json={"code": "fixed20"})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["applied"] is True
    assert data["state"]["coupon_code"] == "FIXED20"
    b = data["state"]["breakdown"]
    assert float(b["subtotal"]) == 200.0
    assert float(b["discount_total"]) == 20.0
    assert float(b["coupon_amount"]) == 20.0
    assert float(b["tax"]) == 24.0
    assert float(b["total"]) == 184.0

    r = client.post(f"{BASE}/{sid}/checkout", json={"method": "cash", "tendered_cash": "200"})
    assert r.status_code == 200, r.text
    assert float(r.json()["change"]) == 16.0

    r = client.post(f"{BASE}/{sid}/finalize", json={"method": "cash", "tendered_cash": 200})
    assert r.status_code == 200, r.text
    receipt = r.json()
    assert receipt["receipt_id"] == "RCP-000001"
    assert receipt["lines"][0]["description"] == "Rice 5kg"
    assert receipt["lines"][0]["quantity"] == 2
    assert float(receipt["total"]) == 184.0
    assert float(receipt["change"]) == 16.0
    assert receipt["currency"] == "GHS"

    r = client.get(f"{BASE}/{sid}")
    assert r.status_code == 200, r.text
    state = r.json()
    assert state["lines"] == [] and state["coupon_code"] is None
    assert float(state["breakdown"]["total"]) == 0.0

    assert db.scalar(select(func.count(Sale.id))) == 1
    assert db.get(Product, "P-001").stock_quantity == 48
    assert db.scalars(select(Coupon).where(Coupon.code == "FIXED20")).one().used_count == 1


def test_card_sale_has_no_change(client):
    sid = _open(client)
    _add(client, sid, "P-003")
    r = client.post(f"{BASE}/{sid}/finalize", json={"method": "card"})
    assert r.status_code == 200, r.text
    receipt = r.json()
    assert receipt["payment_method"] == "card"
    assert receipt["tendered_cash"] is None and receipt["change"] is None
    assert float(receipt["total"]) == 57.5


def test_error_codes(client):
    r = client.get(f"{BASE}/does-not-exist")
    assert r.status_code == 404
    assert r.json()["detail"] == "SESSION_NOT_FOUND"

    sid = _open(client)
    r = client.post(f"{BASE}/{sid}/finalize", json={"method": "card"})
    assert r.status_code == 400
    assert r.json()["detail"] == "EMPTY_CART"

    r = _add(client, sid, "P-404")
    assert r.status_code == 404
    assert r.json()["detail"] == "PRODUCT_NOT_FOUND"

    r = client.post(f"{BASE}/{sid}/discounts", json={"discount_id": "D-OLD"})
    assert r.status_code == 404
    assert r.json()["detail"] == "DISCOUNT_NOT_FOUND"

    _add(client, sid, "P-002")
    r = client.put(f"{BASE}/{sid}/items/P-002", json={"quantity": 0})
    assert r.status_code == 400
    assert r.json()["detail"] == "INVALID_QUANTITY"

    r = client.put(f"{BASE}/{sid}/items/P-002", json={"quantity": 4})
    assert r.status_code == 409
    assert r.json()["detail"] == "OUT_OF_STOCK"

    r = client.post(f"{BASE}/{sid}/coupon", json={"code": "BOGUS"})
    assert r.status_code == 404
    assert r.json()["detail"] == "COUPON_NOT_FOUND"

    r = client.post(f"{BASE}/{sid}/finalize", json={"method": "cash", "tendered_cash": "1"})
    assert r.status_code == 402
    assert r.json()["detail"] == "INSUFFICIENT_TENDER"

    # cart survives every error above
    r = client.get(f"{BASE}/{sid}")
    assert [ln["product_id"] for ln in r.json()["lines"]] == ["P-002"]


def test_coupon_below_minimum_leaves_totals(client):
    sid = _open(client)
    before = _add(client, sid, "P-002").json()["breakdown"]

    r = client.post(f"{BASE}/{sid}/coupon", json={"code": "FIXED20"})
    assert r.status_code == 400
    assert r.json()["detail"] == "COUPON_MIN_AMOUNT_NOT_MET"

    state = client.get(f"{BASE}/{sid}").json()
    assert state["breakdown"] == before
    assert state["coupon_code"] is None and state["pending_coupon"] is None


def test_discount_picker_lists_active_only(client):
    r = client.get("/pos/discounts")
    assert r.status_code == 200, r.text
    assert [d["id"] for d in r.json()] == ["D-5OFF", "D-10"]


def test_session_custom_tax_rate_and_close(client):
    sid = _open(client, tax_rate="0")
    b = _add(client, sid, "P-001").json()["breakdown"]
    assert float(b["tax"]) == 0.0 and float(b["total"]) == 100.0

    r = client.delete(f"{BASE}/{sid}")
    assert r.status_code == 200, r.text
    assert client.get(f"{BASE}/{sid}").status_code == 404


def test_customer_attached_per_sale(client, db):
    sid = _open(client)
    r = client.put(f"{BASE}/{sid}/customer", json={"customer_id": "cust-5"})
    assert r.status_code == 200, r.text
    assert r.json()["customer_id"] == "cust-5"

    _add(client, sid, "P-001")
    r = client.post(f"{BASE}/{sid}/finalize", json={"method": "card"})
    assert r.status_code == 200, r.text
    assert client.get(f"{BASE}/{sid}").json()["customer_id"] is None

    _add(client, sid, "P-001")
    r = client.post(f"{BASE}/{sid}/finalize", json={"method": "card"})
    assert r.status_code == 200, r.text

    customers = db.scalars(select(Sale.customer_id).order_by(Sale.id)).all()
    assert customers == ["cust-5", None]

    assert client.put(f"{BASE}/{sid}/customer", json={"customer_id": "cust-6"}).json()["customer_id"] == "cust-6"
    r = client.delete(f"{BASE}/{sid}/customer")
    assert r.status_code == 200, r.text
    assert r.json()["customer_id"] is None
