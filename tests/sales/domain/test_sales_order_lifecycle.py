"""Tests for SalesOrder hold, release, cancel, close and generic status changes."""

import pytest
from sales.order.events import (
    SalesOrderCancelled,
    SalesOrderClosed,
    SalesOrderHeld,
    SalesOrderReleased,
    SalesOrderStatusChanged,
)
from sales.order.exceptions import InvalidOrderError, InvalidStatusTransitionError
from sales.order.line import OrderLine
from sales.order.order import SalesOrder
from sales.order.status import LineStatus, OrderStatus


def _make_order(line_count=1, **overrides):
    lines = [
        OrderLine.create(line_num=num, item_sku_id=f"sku-{num:03d}", order_qty=10, uom_code="EA", unit_price=100.0)
        for num in range(1, line_count + 1)
    ]
    values = {"so_num": "SO260100001", "customer_id": "cust-001"}
    values.update(overrides)
    order = SalesOrder.create(lines=lines, **values)
    order._events.clear()
    return order


class TestHoldAndRelease:
    def test_hold_open_order(self):
        order = _make_order()
        order.hold()

        assert order.status == OrderStatus.ON_HOLD.value
        assert any(isinstance(e, SalesOrderHeld) for e in order._events)

    def test_release_held_order(self):
        order = _make_order()
        order.hold()
        order.release()

        assert order.status == OrderStatus.OPEN.value
        assert any(isinstance(e, SalesOrderReleased) for e in order._events)

    def test_release_requires_hold(self):
        order = _make_order()
        with pytest.raises(InvalidOrderError) as exc:
            order.release()
        assert "not on hold" in str(exc.value)

    def test_draft_order_cannot_be_held(self):
        order = _make_order(draft=True)
        with pytest.raises(InvalidStatusTransitionError):
            order.hold()

    def test_hold_twice_is_rejected(self):
        order = _make_order()
        order.hold()
        with pytest.raises(InvalidStatusTransitionError):
            order.hold()


class TestCancel:
    def test_cancel_cancels_every_active_line(self):
        order = _make_order(line_count=3)
        order.cancel(reason="Customer request")

        assert order.status == OrderStatus.CANCELLED.value
        assert all(line.status == LineStatus.CANCELLED.value for line in order.lines)
        assert order.pricing.open_amount == 0.0

        event = next(e for e in order._events if isinstance(e, SalesOrderCancelled))
        assert event.previous_status == "OPEN"
        assert event.reason == "Customer request"

    def test_cancel_held_order(self):
        order = _make_order()
        order.hold()
        order.cancel()
        assert order.status == OrderStatus.CANCELLED.value

    def test_cancel_closed_order_is_rejected(self):
        order = _make_order()
        order.close()

        with pytest.raises(InvalidOrderError) as exc:
            order.cancel()

        assert "Cannot cancel closed order" in str(exc.value)
        assert order.status == OrderStatus.CLOSED.value

    def test_cancel_twice_is_rejected(self):
        order = _make_order()
        order.cancel()
        with pytest.raises(InvalidStatusTransitionError):
            order.cancel()


class TestClose:
    def test_close_force_closes_open_lines(self):
        order = _make_order()
        assert order.line(1).open_qty == 10

        order.close()

        assert order.status == OrderStatus.CLOSED.value
        assert order.line(1).status == LineStatus.CLOSED.value
        assert order.pricing.open_amount == 0.0
        assert any(isinstance(e, SalesOrderClosed) for e in order._events)

    def test_close_requiring_shipment_refuses_open_lines(self):
        order = _make_order()

        with pytest.raises(InvalidOrderError) as exc:
            order.close(require_shipped=True)

        assert "Cannot close order with open lines" in str(exc.value)
        assert order.status == OrderStatus.OPEN.value
        assert order.line(1).status == LineStatus.OPEN.value

    def test_close_requiring_shipment_after_full_shipment(self):
        order = _make_order()
        order.ship_line(1, 10)
        assert order.status == OrderStatus.PARTIAL.value

        order.close(require_shipped=True)

        assert order.status == OrderStatus.CLOSED.value

    def test_close_leaves_cancelled_lines_cancelled(self):
        order = _make_order(line_count=2)
        order.line(2).cancel()
        order.close()
        assert order.line(1).status == LineStatus.CLOSED.value
        assert order.line(2).status == LineStatus.CANCELLED.value

    def test_held_order_cannot_be_closed(self):
        order = _make_order()
        order.hold()
        with pytest.raises(InvalidStatusTransitionError):
            order.close()
        assert order.line(1).status == LineStatus.OPEN.value

    def test_closed_order_accepts_no_transition(self):
        order = _make_order()
        order.close()
        for target in OrderStatus:
            if target == OrderStatus.CLOSED:
                continue
            with pytest.raises((InvalidStatusTransitionError, InvalidOrderError)):
                order.change_status(target)


class TestChangeStatus:
    def test_draft_to_open(self):
        order = _make_order(draft=True)
        order.change_status("OPEN")

        assert order.status == OrderStatus.OPEN.value
        event = next(e for e in order._events if isinstance(e, SalesOrderStatusChanged))
        assert event.previous_status == "DRAFT"
        assert event.new_status == "OPEN"

    def test_draft_cannot_skip_to_partial(self):
        order = _make_order(draft=True)
        with pytest.raises(InvalidStatusTransitionError):
            order.change_status(OrderStatus.PARTIAL)

    def test_change_to_cancelled_uses_cancel(self):
        order = _make_order()
        order.change_status(OrderStatus.CANCELLED)
        assert order.line(1).status == LineStatus.CANCELLED.value

    def test_change_to_open_from_hold_releases(self):
        order = _make_order()
        order.hold()
        order.change_status(OrderStatus.OPEN)
        assert any(isinstance(e, SalesOrderReleased) for e in order._events)

    def test_unknown_status_is_rejected(self):
        order = _make_order()
        with pytest.raises(ValueError):
            order.change_status("SHIPPED")
