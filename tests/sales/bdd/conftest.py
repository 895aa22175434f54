"""Shared BDD fixtures and step definitions for sales orders."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from sales.order.line import OrderLine
from sales.order.order import SalesOrder


@pytest.fixture()
def error():
    """Container for the validation error raised by the last action."""
    return {"exc": None}


def _lines(count, qty, price):
    return [
        OrderLine.create(line_num=num, item_sku_id=f"sku-{num:03d}", order_qty=qty, uom_code="EA", unit_price=price)
        for num in range(1, count + 1)
    ]


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse("an open sales order with {count:d} lines of {qty:d} units at {price:f}"),
    target_fixture="order",
)
@given(
    parsers.cfparse("an open sales order with {count:d} line of {qty:d} units at {price:f}"),
    target_fixture="order",
)
def open_order(count, qty, price):
    order = SalesOrder.create(so_num="SO260100001", customer_id="cust-001", lines=_lines(count, qty, price))
    order._events.clear()
    return order


@given("the order was closed", target_fixture="order")
def closed_order(order):
    order.close()
    order._events.clear()
    return order


@given("the order was put on hold", target_fixture="order")
def held_order(order):
    order.hold()
    order._events.clear()
    return order


@given(parsers.cfparse("a header discount of {percent:d} percent"), target_fixture="order")
def header_discount(order, percent):
    order.update_discount_percent(percent)
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the order action fails with "{message}"'))
def order_action_fails(error, message):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)
    assert message in str(error["exc"])


@then(parsers.cfparse('every line has status "{status}"'))
def every_line_has_status(order, status):
    assert all(line.status == status for line in order.lines)


@then(parsers.cfparse('line {line_num:d} has status "{status}"'))
def line_has_status(order, line_num, status):
    assert order.line(line_num).status == status


@then(parsers.cfparse("line {line_num:d} totals {amount:f}"))
def line_totals(order, line_num, amount):
    assert order.line(line_num).total_amount == pytest.approx(amount)


@then(parsers.cfparse("the order total is {amount:f}"))
def order_total_is(order, amount):
    assert order.pricing.order_total == pytest.approx(amount)


@then(parsers.cfparse("the open amount is {amount:f}"))
def open_amount_is(order, amount):
    assert order.pricing.open_amount == pytest.approx(amount)


@then(parsers.cfparse("the header discount is {amount:f}"))
def header_discount_is(order, amount):
    assert order.pricing.header_discount_amount == pytest.approx(amount)


@then(parsers.cfparse("the order has {count:d} line"))
@then(parsers.cfparse("the order has {count:d} lines"))
def order_has_lines(order, count):
    assert len(order.lines) == count
