"""Delivery of sales order domain events to the domain's event handlers.

Sales orders are saved by the SQLAlchemy store rather than a Protean unit of
work, so events are drained from the aggregate here once the store has
committed and handed to every ``@sales.event_handler`` registered for them.
Delivery is fire-and-forget: a failing handler is logged and the use case
still succeeds.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.sync_dispatch import dispatch_events_sync

logger = structlog.get_logger(__name__)


def dispatch_events(order) -> list:
    """Drain ``order``'s pending events and deliver them. Returns the drained events."""
    events = list(order._events)
    order._events.clear()
    if not events:
        return events

    event_types = [type(event).__name__ for event in events]
    logger.debug("Dispatching sales order events", order_id=str(order.id), event_types=event_types)

    try:
        dispatch_events_sync(events, current_domain.handlers_for)
    except Exception:
        logger.exception("Sales order event handler failed", order_id=str(order.id), event_types=event_types)

    return events
