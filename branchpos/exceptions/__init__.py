"""Custom exceptions for the point-of-sale application."""


class PosError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(PosError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_name, required, available=None):
        if available is None:
            message = f"Insufficient stock for {product_name}: {required} required"
        else:
            message = f"Insufficient stock for {product_name}: {required} required, {available} available"
        super().__init__(message, status_code=409, payload={'product': product_name})


class DuplicateSubmissionError(BusinessLogicError):
    """Raised when an order with the same idempotency key was already committed."""
    def __init__(self, order_id):
        super().__init__(f"This sale was already processed (order #{order_id})",
                         status_code=409, payload={'order_id': order_id})


class CheckoutError(PosError):
    """
    Raised when committing a cart fails.

    Wraps the underlying cause; business causes keep their status code so the
    caller sees a 409 for a stock shortfall and a 500 for an I/O failure.
    """
    def __init__(self, message="The sale could not be completed", cause=None):
        status_code = cause.status_code if isinstance(cause, PosError) else 500
        payload = cause.payload if isinstance(cause, PosError) else None
        super().__init__(message, status_code, payload)
        self.cause = cause


class UnauthorizedError(PosError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access", status_code=403):
        super().__init__(message, status_code)
