"""Domain events raised by the SalesOrder aggregate.

Events accumulate on the aggregate while a use case runs and are handed to
the domain's event handlers once the store has committed (see
``sales.order.dispatch``).
"""

from protean.fields import Date, DateTime, Float, Identifier, Integer, String, Text

from sales.domain import sales


@sales.event(part_of="SalesOrder")
class SalesOrderCreated:
    """A new sales order was captured with its initial lines."""

    __version__ = 1

    order_id = Identifier(required=True)
    so_num = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    line_count = Integer(default=0)
    order_total = Float(default=0.0)
    order_date = Date()
    created_at = DateTime(required=True)


@sales.event(part_of="SalesOrder")
class OrderLineAdded:
    __version__ = 1

    order_id = Identifier(required=True)
    line_id = Identifier(required=True)
    line_num = Integer(required=True)
    item_sku_id = Identifier(required=True)
    order_qty = Float(required=True)
    total_amount = Float(default=0.0)


@sales.event(part_of="SalesOrder")
class OrderLineUpdated:
    """Price, quantity, discount, tax or descriptive fields of a line changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    line_id = Identifier(required=True)
    line_num = Integer(required=True)
    changes = Text()  # JSON object of changed field names → new values
    total_amount = Float(default=0.0)


@sales.event(part_of="SalesOrder")
class OrderLineRemoved:
    __version__ = 1

    order_id = Identifier(required=True)
    line_id = Identifier(required=True)
    line_num = Integer(required=True)


@sales.event(part_of="SalesOrder")
class OrderLineShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    line_id = Identifier(required=True)
    line_num = Integer(required=True)
    quantity = Float(required=True)
    shipped_qty = Float(default=0.0)
    line_status = String(required=True, max_length=20)


@sales.event(part_of="SalesOrder")
class SalesOrderHeld:
    __version__ = 1

    order_id = Identifier(required=True)
    held_at = DateTime(required=True)


@sales.event(part_of="SalesOrder")
class SalesOrderReleased:
    __version__ = 1

    order_id = Identifier(required=True)
    released_at = DateTime(required=True)


@sales.event(part_of="SalesOrder")
class SalesOrderCancelled:
    """The order and all of its active lines were cancelled."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)


@sales.event(part_of="SalesOrder")
class SalesOrderClosed:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    closed_at = DateTime(required=True)


@sales.event(part_of="SalesOrder")
class SalesOrderStatusChanged:
    """Generic status change made outside the named lifecycle operations."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)
    changed_at = DateTime(required=True)


@sales.event(part_of="SalesOrder")
class SalesOrderRepriced:
    """Header discount or charges changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    header_discount_amount = Float(default=0.0)
    header_discount_percent = Float(default=0.0)
    total_charges = Float(default=0.0)
    order_total = Float(default=0.0)


@sales.event(part_of="SalesOrder")
class SalesOrderDetailsUpdated:
    """Dates, addresses or metadata changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    changes = Text(required=True)  # JSON object of changed field names → new values
    updated_at = DateTime(required=True)
