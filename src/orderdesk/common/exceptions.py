"""OrderDesk exception hierarchy.

Webhook delivery failures are deliberately absent: they are recorded as
``success=False`` on a delivery row and never raised.
"""


class OrderDeskError(Exception):
    """Base exception for all OrderDesk errors."""

    def __init__(self, message: str = "", code: str = "ORDERDESK_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(OrderDeskError):
    """Raised when a referenced order, subscription or delivery does not exist."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class InvalidTransitionError(OrderDeskError):
    """Raised when the requested order status is not reachable from the current one."""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition: {from_status} -> {to_status}",
            code="INVALID_TRANSITION",
        )


class ValidationError(OrderDeskError):
    """Raised for malformed input detected before anything is persisted."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, code="VALIDATION_ERROR")
