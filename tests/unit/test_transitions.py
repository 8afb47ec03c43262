"""Tests for the order status machine."""

import itertools

import pytest

from orderdesk.orders.transitions import (
    ALLOWED_TRANSITIONS,
    ORDER_STATUS_EVENTS,
    TERMINAL_STATUSES,
    OrderStatus,
    can_transition,
    status_event,
)

S = OrderStatus

LEGAL = {
    (S.PENDING, S.CONFIRMED),
    (S.PENDING, S.CANCELLED),
    (S.CONFIRMED, S.PROCESSING),
    (S.CONFIRMED, S.CANCELLED),
    (S.PROCESSING, S.SHIPPED),
    (S.PROCESSING, S.CANCELLED),
    (S.SHIPPED, S.DELIVERED),
}


class TestCanTransition:
    @pytest.mark.parametrize(
        "from_status,to_status", list(itertools.product(OrderStatus, OrderStatus))
    )
    def test_every_pair(self, from_status, to_status):
        assert can_transition(from_status, to_status) == ((from_status, to_status) in LEGAL)

    @pytest.mark.parametrize("status", list(OrderStatus))
    def test_self_transition_rejected(self, status):
        assert can_transition(status, status) is False

    def test_accepts_plain_strings(self):
        assert can_transition("PENDING", "CONFIRMED") is True
        assert can_transition("CONFIRMED", "DELIVERED") is False

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError):
            can_transition("PENDING", "LOST")
        with pytest.raises(ValueError):
            can_transition("ARCHIVED", "PENDING")

    def test_no_way_back_to_pending(self):
        assert not any(can_transition(s, S.PENDING) for s in OrderStatus)

    def test_shipped_cannot_be_cancelled(self):
        assert can_transition(S.SHIPPED, S.CANCELLED) is False


class TestTable:
    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.DELIVERED, S.CANCELLED}
        for status in TERMINAL_STATUSES:
            assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ALLOWED_TRANSITIONS[S.DELIVERED] = frozenset({S.PENDING})


class TestEvents:
    def test_status_event_name(self):
        assert status_event(S.CONFIRMED) == "order.status.CONFIRMED"
        assert status_event("SHIPPED") == "order.status.SHIPPED"

    def test_event_vocabulary(self):
        assert ORDER_STATUS_EVENTS == {
            "order.status.CONFIRMED",
            "order.status.PROCESSING",
            "order.status.SHIPPED",
            "order.status.DELIVERED",
            "order.status.CANCELLED",
        }

    def test_pending_has_no_event(self):
        assert status_event(S.PENDING) not in ORDER_STATUS_EVENTS
