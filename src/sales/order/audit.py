"""Structured audit trail for sales order changes.

Entries go to the ``sales.audit`` logger with the entity, its id, the action
and whatever changed. Lifecycle entries are written by an event handler;
header edits, line synchronisation and deletes are recorded by the use cases
that perform them.
"""

import structlog
from protean import handle

from sales.domain import sales
from sales.order.events import (
    SalesOrderCancelled,
    SalesOrderClosed,
    SalesOrderCreated,
    SalesOrderHeld,
    SalesOrderReleased,
    SalesOrderStatusChanged,
)
from sales.order.order import SalesOrder
from sales.order.status import OrderStatus

audit_logger = structlog.get_logger("sales.audit")

ENTITY = "SalesOrder"


def _record(action: str, order_id, **details) -> None:
    audit_logger.info("audit", entity=ENTITY, entity_id=str(order_id), action=action, **details)


def _status_changed(order_id, previous_status: str, new_status: str, **details) -> None:
    _record("status_changed", order_id, changes={"status": [previous_status, new_status]}, **details)


def order_updated(order, changes: dict) -> None:
    _record("updated", order.id, so_num=order.so_num, changes=changes)


def lines_synced(order, summary: dict) -> None:
    _record("lines_synced", order.id, so_num=order.so_num, changes=summary)


def order_deleted(order) -> None:
    _record("deleted", order.id, so_num=order.so_num, record_id=order.record_id)


@sales.event_handler(part_of=SalesOrder)
class SalesOrderAuditTrail:
    """Records order creation and every status change."""

    @handle(SalesOrderCreated)
    def on_created(self, event: SalesOrderCreated) -> None:
        _record(
            "created",
            event.order_id,
            so_num=event.so_num,
            customer_id=str(event.customer_id),
            status=event.status,
            line_count=event.line_count,
            order_total=event.order_total,
        )

    @handle(SalesOrderHeld)
    def on_held(self, event: SalesOrderHeld) -> None:
        _status_changed(event.order_id, OrderStatus.OPEN.value, OrderStatus.ON_HOLD.value)

    @handle(SalesOrderReleased)
    def on_released(self, event: SalesOrderReleased) -> None:
        _status_changed(event.order_id, OrderStatus.ON_HOLD.value, OrderStatus.OPEN.value)

    @handle(SalesOrderCancelled)
    def on_cancelled(self, event: SalesOrderCancelled) -> None:
        _status_changed(event.order_id, event.previous_status, OrderStatus.CANCELLED.value, reason=event.reason)

    @handle(SalesOrderClosed)
    def on_closed(self, event: SalesOrderClosed) -> None:
        _status_changed(event.order_id, event.previous_status, OrderStatus.CLOSED.value)

    @handle(SalesOrderStatusChanged)
    def on_status_changed(self, event: SalesOrderStatusChanged) -> None:
        _status_changed(event.order_id, event.previous_status, event.new_status)
