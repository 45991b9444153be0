"""Custom exceptions for the Lumicea storefront."""

class StoreError(Exception):
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

class BusinessLogicError(StoreError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(StoreError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, item_name, required, available):
        message = f"Not enough stock for {item_name}: {int(required)} requested, {int(available)} available"
        super().__init__(message, status_code=409)

class PaymentError(StoreError):
    """Raised when the payment gateway rejects or fails a charge."""
    def __init__(self, message="Payment processing failed", payload=None):
        super().__init__(message, 402, payload)

class UnauthorizedError(StoreError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)
