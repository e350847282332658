"""
Error taxonomy of the checkout core.

Every error is scoped to the current transaction: the cart and its applied
rules stay intact and the operator decides what to do next. ``code`` is the
stable identifier returned by the API, ``status_code`` the HTTP status used
when the error crosses the router layer.
"""


class CheckoutError(Exception):
    code = "CHECKOUT_ERROR"
    status_code = 400

    def __init__(self, message=None, **context):
        self.context = context
        super().__init__(message or self.code)


# --- input ---
class InvalidQuantity(CheckoutError):
    code = "INVALID_QUANTITY"


class EmptyCart(CheckoutError):
    code = "EMPTY_CART"


class ProductNotInCart(CheckoutError):
    code = "PRODUCT_NOT_IN_CART"
    status_code = 404


# --- lookups ---
class ProductNotFound(CheckoutError):
    code = "PRODUCT_NOT_FOUND"
    status_code = 404


class DiscountNotFound(CheckoutError):
    code = "DISCOUNT_NOT_FOUND"
    status_code = 404


class SessionNotFound(CheckoutError):
    code = "SESSION_NOT_FOUND"
    status_code = 404


class OutOfStock(CheckoutError):
    code = "OUT_OF_STOCK"
    status_code = 409


# --- coupon ---
class CouponError(CheckoutError):
    """Rejection of a coupon application; the transaction itself is unaffected."""

    code = "COUPON_INVALID"


class CouponNotFound(CouponError):
    code = "COUPON_NOT_FOUND"
    status_code = 404


class CouponExpired(CouponError):
    code = "COUPON_EXPIRED"


class CouponNotYetActive(CouponError):
    code = "COUPON_NOT_YET_VALID"


class CouponUsageLimitReached(CouponError):
    code = "COUPON_MAX_USES_REACHED"


class CouponPerCustomerLimitReached(CouponError):
    code = "COUPON_CUSTOMER_LIMIT_REACHED"


class CouponMinimumNotMet(CouponError):
    code = "COUPON_MIN_AMOUNT_NOT_MET"


# --- payment ---
class InsufficientTender(CheckoutError):
    code = "INSUFFICIENT_TENDER"
    status_code = 402


class UnsupportedPaymentMethod(CheckoutError):
    code = "UNSUPPORTED_PAYMENT_METHOD"


# --- persistence ---
class PersistenceError(Exception):
    """Raised by sale stores when a sale could not be recorded."""


class PersistenceFailed(CheckoutError):
    code = "PERSISTENCE_FAILED"
    status_code = 503
