"""Order status machine.

The transition table is the only place that decides whether an order may move
from one status to another. Callers apply the mutation (and fire webhooks)
only after :func:`can_transition` says yes.
"""

import enum
from types import MappingProxyType
from typing import Mapping


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


ALLOWED_TRANSITIONS: Mapping[OrderStatus, frozenset[OrderStatus]] = MappingProxyType({
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
})

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

STATUS_EVENT_PREFIX = "order.status."

# PENDING is only ever an initial status, so it never produces an event.
ORDER_STATUS_EVENTS: frozenset[str] = frozenset(
    f"{STATUS_EVENT_PREFIX}{target.value}"
    for targets in ALLOWED_TRANSITIONS.values()
    for target in targets
)


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    """Return True if ``from_status -> to_status`` is a legal move.

    Raises ValueError for a value that is not an ``OrderStatus``.
    """
    return OrderStatus(to_status) in ALLOWED_TRANSITIONS[OrderStatus(from_status)]


def status_event(status: OrderStatus) -> str:
    """Webhook event name announcing that an order entered ``status``."""
    return f"{STATUS_EVENT_PREFIX}{OrderStatus(status).value}"
