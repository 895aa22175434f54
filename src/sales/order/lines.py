"""Order line management: commands and handler."""

import structlog
from protean import handle
from protean.fields import Date, Float, Identifier, Integer, String, Text

from sales.domain import sales
from sales.order.line import OrderLine
from sales.order.order import SalesOrder
from sales.order.store import change_order

logger = structlog.get_logger(__name__)


@sales.command(part_of="SalesOrder")
class AddOrderLine:
    order_id = Identifier(required=True)
    line_num = Integer()  # Next free number when omitted
    item_sku_id = Identifier(required=True)
    description = String(max_length=500)
    order_qty = Float(required=True)
    uom_code = String(required=True, max_length=20)
    unit_price = Float(default=0.0)
    discount_percent = Float()
    discount_amount = Float()
    tax_percent = Float()
    tax_amount = Float()
    need_by_date = Date()
    warehouse_code = String(max_length=50)
    line_note = Text()


@sales.command(part_of="SalesOrder")
class UpdateOrderLine:
    order_id = Identifier(required=True)
    line_num = Integer(required=True)
    unit_price = Float()
    order_qty = Float()
    discount_percent = Float()
    discount_amount = Float()
    tax_percent = Float()
    tax_amount = Float()
    description = String(max_length=500)
    need_by_date = Date()
    warehouse_code = String(max_length=50)
    line_note = Text()


@sales.command(part_of="SalesOrder")
class RemoveOrderLine:
    order_id = Identifier(required=True)
    line_num = Integer(required=True)


@sales.command(part_of="SalesOrder")
class ShipOrderLine:
    order_id = Identifier(required=True)
    line_num = Integer(required=True)
    quantity = Float(required=True)  # Negative values correct an earlier shipment


@sales.command_handler(part_of=SalesOrder)
class OrderLinesHandler:
    @handle(AddOrderLine)
    def add_order_line(self, command):
        def _add(order):
            line = OrderLine.create(
                line_num=order.next_line_num() if command.line_num is None else command.line_num,
                item_sku_id=command.item_sku_id,
                description=command.description,
                order_qty=command.order_qty,
                uom_code=command.uom_code,
                unit_price=command.unit_price or 0.0,
                discount_percent=command.discount_percent,
                discount_amount=command.discount_amount,
                tax_percent=command.tax_percent,
                tax_amount=command.tax_amount,
                need_by_date=command.need_by_date,
                warehouse_code=command.warehouse_code,
                line_note=command.line_note,
            )
            return order.add_line(line).line_num

        saved, line_num = change_order(command.order_id, _add)
        logger.info("Order line added", order_id=str(saved.id), line_num=line_num)
        return line_num

    @handle(UpdateOrderLine)
    def update_order_line(self, command):
        change_order(
            command.order_id,
            lambda order: order.update_line(
                command.line_num,
                unit_price=command.unit_price,
                order_qty=command.order_qty,
                discount_percent=command.discount_percent,
                discount_amount=command.discount_amount,
                tax_percent=command.tax_percent,
                tax_amount=command.tax_amount,
                description=command.description,
                need_by_date=command.need_by_date,
                warehouse_code=command.warehouse_code,
                line_note=command.line_note,
            ),
        )

    @handle(RemoveOrderLine)
    def remove_order_line(self, command):
        change_order(command.order_id, lambda order: order.remove_line(command.line_num))
        logger.info("Order line removed", order_id=str(command.order_id), line_num=command.line_num)

    @handle(ShipOrderLine)
    def ship_order_line(self, command):
        change_order(command.order_id, lambda order: order.ship_line(command.line_num, command.quantity))
