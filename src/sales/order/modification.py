"""Sales order header changes: command and handler.

Only the fields present on the command are applied. Discount and charge
changes reprice the order; dates, addresses and metadata do not.
"""

import json

import structlog
from protean import handle
from protean.fields import Date, Float, Identifier, String, Text

from sales.domain import sales
from sales.order import audit
from sales.order.order import SalesOrder
from sales.order.store import change_order

logger = structlog.get_logger(__name__)


@sales.command(part_of="SalesOrder")
class UpdateSalesOrder:
    order_id = Identifier(required=True)
    order_date = Date()
    request_date = Date()
    need_by_date = Date()
    header_discount_percent = Float()
    header_discount_amount = Float()
    total_charges = Float()
    billing_address_id = Identifier()
    shipping_address_id = Identifier()
    order_metadata = Text()  # JSON object, see OrderMetadata
    status = String(max_length=20)


def _apply_changes(order: SalesOrder, command) -> dict:
    changes = {}

    dates = {
        "order_date": command.order_date,
        "request_date": command.request_date,
        "need_by_date": command.need_by_date,
    }
    if any(value is not None for value in dates.values()):
        order.update_dates(**dates)
        changes.update({name: str(value) for name, value in dates.items() if value is not None})

    if command.header_discount_percent is not None or command.header_discount_amount is not None:
        order.update_discount(percent=command.header_discount_percent, amount=command.header_discount_amount)
        changes["header_discount_amount"] = order.pricing.header_discount_amount
        changes["header_discount_percent"] = order.pricing.header_discount_percent

    if command.total_charges is not None:
        order.update_charges(command.total_charges)
        changes["total_charges"] = order.pricing.total_charges

    if command.billing_address_id is not None or command.shipping_address_id is not None:
        order.update_addresses(
            billing_address_id=command.billing_address_id,
            shipping_address_id=command.shipping_address_id,
        )
        changes["addresses"] = {
            "billing_address_id": command.billing_address_id,
            "shipping_address_id": command.shipping_address_id,
        }

    if command.order_metadata:
        metadata = json.loads(command.order_metadata)
        order.update_metadata(**metadata)
        changes["metadata"] = metadata

    if command.status and command.status != order.status:
        order.change_status(command.status)
        changes["status"] = command.status

    return changes


@sales.command_handler(part_of=SalesOrder)
class UpdateSalesOrderHandler:
    @handle(UpdateSalesOrder)
    def update_sales_order(self, command):
        saved, changes = change_order(command.order_id, lambda order: _apply_changes(order, command))
        if changes:
            audit.order_updated(saved, changes)
        logger.info("Sales order updated", order_id=str(saved.id), fields=sorted(changes))
