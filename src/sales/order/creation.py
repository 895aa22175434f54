"""Sales order creation: command and handler."""

import json
from datetime import date

import structlog
from protean import handle
from protean.fields import Boolean, Date, Float, Identifier, String, Text

from sales.domain import sales
from sales.order.dispatch import dispatch_events
from sales.order.exceptions import InvalidOrderError
from sales.order.line import OrderLine
from sales.order.numbering import SalesOrderNumberGenerator
from sales.order.order import OrderAddresses, OrderMetadata, SalesOrder
from sales.persistence.repository import order_repository
from sales.utils.logging import add_context, clear_context
from sales.utils.settings import default_currency

logger = structlog.get_logger(__name__)

_LINE_FIELDS = (
    "item_sku_id",
    "description",
    "order_qty",
    "uom_code",
    "unit_price",
    "discount_percent",
    "discount_amount",
    "tax_percent",
    "tax_amount",
    "warehouse_code",
    "line_note",
)


@sales.command(part_of="SalesOrder")
class CreateSalesOrder:
    customer_id = Identifier(required=True)
    so_num = String(max_length=30)  # Generated when omitted
    order_date = Date()
    request_date = Date()
    need_by_date = Date()
    lines = Text()  # JSON array of line objects
    header_discount_percent = Float()
    header_discount_amount = Float()
    total_charges = Float()
    billing_address_id = Identifier()
    shipping_address_id = Identifier()
    order_metadata = Text()  # JSON object, see OrderMetadata
    draft = Boolean(default=False)
    created_by = String(max_length=100)


def _parse_date(value):
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _build_line(data: dict, default_line_num: int) -> OrderLine:
    values = {name: data.get(name) for name in _LINE_FIELDS if data.get(name) is not None}
    return OrderLine.create(
        line_num=default_line_num if data.get("line_num") is None else data["line_num"],
        need_by_date=_parse_date(data.get("need_by_date")),
        **values,
    )


@sales.command_handler(part_of=SalesOrder)
class CreateSalesOrderHandler:
    @handle(CreateSalesOrder)
    def create_sales_order(self, command):
        lines_data = json.loads(command.lines) if command.lines else []
        lines = [_build_line(data, index) for index, data in enumerate(lines_data, start=1)]

        metadata = json.loads(command.order_metadata) if command.order_metadata else {}
        if not metadata.get("currency_code"):
            metadata["currency_code"] = default_currency()

        def _create(repository):
            so_num = command.so_num or SalesOrderNumberGenerator(repository).generate()
            add_context(so_num=so_num)
            if repository.find_by_so_num(so_num) is not None:
                raise InvalidOrderError(f"Sales order number {so_num} already exists", field="so_num")

            order = SalesOrder.create(
                so_num=so_num,
                customer_id=command.customer_id,
                lines=lines,
                order_date=command.order_date,
                request_date=command.request_date,
                need_by_date=command.need_by_date,
                draft=bool(command.draft),
                header_discount_percent=command.header_discount_percent,
                header_discount_amount=command.header_discount_amount,
                total_charges=command.total_charges or 0.0,
                addresses=OrderAddresses(
                    billing_address_id=command.billing_address_id,
                    shipping_address_id=command.shipping_address_id,
                ),
                order_metadata=OrderMetadata().update(**metadata),
                created_by=command.created_by,
            )
            return order, repository.create(order)

        try:
            order, saved = order_repository().transaction(_create)
            add_context(order_id=str(saved.id))

            dispatch_events(order)
            logger.info("Sales order created", order_total=saved.pricing.order_total, line_count=len(saved.lines))
            return str(saved.id)
        finally:
            clear_context()
