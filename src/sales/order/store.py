"""Load → mutate → save flow shared by the sales order command handlers."""

from collections.abc import Callable
from typing import Any

from sales.order import audit
from sales.order.dispatch import dispatch_events
from sales.order.order import SalesOrder
from sales.persistence.repository import order_repository
from sales.persistence.sync import LineChangeSet
from sales.utils.logging import add_context, clear_context


def change_order(order_id: str, mutate: Callable[[SalesOrder], Any]) -> tuple[SalesOrder, Any]:
    """Apply ``mutate`` to a stored order and persist the result in one transaction.

    Events raised by the mutation are dispatched only after the commit.
    Returns the reloaded order and whatever ``mutate`` returned.
    """
    add_context(order_id=str(order_id))
    try:

        def _work(repository):
            order = repository.get(order_id)
            add_context(so_num=order.so_num)
            result = mutate(order)
            changes = LineChangeSet.from_lines(order.lines_for_persistence())
            saved = repository.update(order.record_id, order)
            return order, saved, changes, result

        order, saved, changes, result = order_repository().transaction(_work)

        dispatch_events(order)
        if not changes.is_empty:
            audit.lines_synced(saved, changes.summary())

        return saved, result
    finally:
        clear_context()
