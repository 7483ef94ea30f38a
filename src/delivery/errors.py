"""Error taxonomy for the order fulfillment pipeline.

Every error carries the HTTP status it maps to and a stable machine-readable
code. Messages of 4xx errors are returned verbatim to the caller; provider
details never end up in a message.
"""


class OrderingError(Exception):
    status_code = 500
    code = "INTERNAL"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# ---------------------------------------------------------------------------
# 400: bad or missing input
# ---------------------------------------------------------------------------
class InvalidRequest(OrderingError):
    status_code = 400
    code = "VALIDATION"


class EmptyCart(InvalidRequest):
    code = "ORDER001"

    def __init__(self, message: str = "Your cart is empty") -> None:
        super().__init__(message)


class InvalidDeliveryAddress(InvalidRequest):
    code = "ORDER002"

    def __init__(self, message: str = "Invalid delivery address") -> None:
        super().__init__(message)


class BelowMinimumOrder(InvalidRequest):
    code = "ORDER003"


class InvalidOrExpiredPromo(InvalidRequest):
    code = "PROMO001"

    def __init__(self, message: str = "Promo code is invalid or expired") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# 403 / 404
# ---------------------------------------------------------------------------
class AccessDenied(OrderingError):
    status_code = 403
    code = "FORBIDDEN"


class NotFound(OrderingError):
    status_code = 404
    code = "NOT_FOUND"


class OrderNotFound(NotFound):
    def __init__(self, message: str = "Order not found") -> None:
        super().__init__(message)


class ProductNotFound(NotFound):
    pass


class CustomerNotFound(NotFound):
    def __init__(self, message: str = "Customer not found") -> None:
        super().__init__(message)


class NoFulfillmentCenterAvailable(NotFound):
    code = "ORDER006"

    def __init__(self, message: str = "No fulfillment center available nearby") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# 409: the request conflicts with current state
# ---------------------------------------------------------------------------
class ConflictError(OrderingError):
    status_code = 409
    code = "CONFLICT"


class TransitionRejected(ConflictError):
    code = "ORDER007"


class InsufficientStock(ConflictError):
    code = "ORDER005"


class UsageLimitReached(ConflictError):
    code = "PROMO002"

    def __init__(self, message: str = "Promo code usage limit reached") -> None:
        super().__init__(message)


class AlreadyPaid(ConflictError):
    code = "PAY001"

    def __init__(self, message: str = "Order has already been paid") -> None:
        super().__init__(message)


class PaymentNotSuccessful(ConflictError):
    code = "PAY002"


# ---------------------------------------------------------------------------
# 502: an external collaborator failed
# ---------------------------------------------------------------------------
class DependencyError(OrderingError):
    status_code = 502
    code = "DEPENDENCY"


class PaymentProviderError(DependencyError):
    code = "PAY003"

    def __init__(self, message: str = "Payment provider is unavailable, please try again") -> None:
        super().__init__(message)
