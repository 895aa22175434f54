"""BDD tests for sales order pricing."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, when

scenarios("features/order_pricing.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("line {line_num:d} gets a discount of {percent:d} percent"))
def discount_by_percent(order, line_num, percent):
    order.update_line(line_num, discount_percent=percent)


@when(parsers.cfparse("line {line_num:d} gets a discount of {amount:f}"))
def discount_by_amount(order, line_num, amount):
    order.update_line(line_num, discount_amount=amount)


@when(parsers.cfparse("line {line_num:d} gets a discount of {percent:d} percent and {amount:f}"))
def discount_by_both(order, line_num, percent, amount, error):
    try:
        order.update_line(line_num, discount_percent=percent, discount_amount=amount)
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse("line {line_num:d} gets a tax of {percent:d} percent"))
def tax_by_percent(order, line_num, percent):
    order.update_line(line_num, tax_percent=percent)


@when(parsers.cfparse("line {line_num:d} is repriced at {price:f}"))
def reprice(order, line_num, price):
    order.update_line(line_num, unit_price=price)


@when(parsers.cfparse("line {line_num:d} is removed"))
def remove(order, line_num):
    order.remove_line(line_num)
