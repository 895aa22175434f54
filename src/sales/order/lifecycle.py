"""Sales order lifecycle: hold, release, cancel, close and delete."""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String

from sales.domain import sales
from sales.order import audit
from sales.order.order import SalesOrder
from sales.order.store import change_order
from sales.persistence.repository import order_repository
from sales.utils.settings import close_requires_shipped

logger = structlog.get_logger(__name__)


@sales.command(part_of="SalesOrder")
class HoldSalesOrder:
    order_id = Identifier(required=True)


@sales.command(part_of="SalesOrder")
class ReleaseSalesOrder:
    order_id = Identifier(required=True)


@sales.command(part_of="SalesOrder")
class CancelSalesOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@sales.command(part_of="SalesOrder")
class CloseSalesOrder:
    order_id = Identifier(required=True)
    require_shipped = Boolean()  # Falls back to SALES_CLOSE_REQUIRES_SHIPPED


@sales.command(part_of="SalesOrder")
class DeleteSalesOrder:
    order_id = Identifier(required=True)


@sales.command_handler(part_of=SalesOrder)
class SalesOrderLifecycleHandler:
    @handle(HoldSalesOrder)
    def hold_sales_order(self, command):
        change_order(command.order_id, lambda order: order.hold())

    @handle(ReleaseSalesOrder)
    def release_sales_order(self, command):
        change_order(command.order_id, lambda order: order.release())

    @handle(CancelSalesOrder)
    def cancel_sales_order(self, command):
        saved, _ = change_order(command.order_id, lambda order: order.cancel(reason=command.reason))
        logger.info("Sales order cancelled", order_id=str(saved.id), so_num=saved.so_num, reason=command.reason)

    @handle(CloseSalesOrder)
    def close_sales_order(self, command):
        require_shipped = command.require_shipped
        if require_shipped is None:
            require_shipped = close_requires_shipped()

        saved, _ = change_order(command.order_id, lambda order: order.close(require_shipped=require_shipped))
        logger.info("Sales order closed", order_id=str(saved.id), so_num=saved.so_num)

    @handle(DeleteSalesOrder)
    def delete_sales_order(self, command):
        def _delete(repository):
            order = repository.get(command.order_id)
            repository.delete(order.record_id)
            return order

        order = order_repository().transaction(_delete)
        audit.order_deleted(order)
        return str(order.id)
