"""OrderDesk: order back office with signed webhook notifications."""

from orderdesk.orders.transitions import ALLOWED_TRANSITIONS, OrderStatus, can_transition
from orderdesk.webhooks.service import sign_payload, verify_signature

__all__ = [
    "ALLOWED_TRANSITIONS",
    "OrderStatus",
    "can_transition",
    "sign_payload",
    "verify_signature",
]
__version__ = "0.1.0"
