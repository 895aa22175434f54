"""Order and line status values, and the order lifecycle state machine.

State Machine:
    DRAFT   → OPEN, CANCELLED
    OPEN    → ON_HOLD, PARTIAL, CLOSED, CANCELLED
    ON_HOLD → OPEN, CANCELLED
    PARTIAL → CLOSED, CANCELLED
    CLOSED, CANCELLED are terminal
"""

from enum import Enum

from sales.order.exceptions import InvalidStatusTransitionError


class OrderStatus(Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    ON_HOLD = "ON_HOLD"
    PARTIAL = "PARTIAL"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in _VALID_TRANSITIONS[self]

    def transition_to(self, target: "OrderStatus") -> "OrderStatus":
        """Return ``target`` if the edge exists, otherwise raise."""
        if not self.can_transition_to(target):
            raise InvalidStatusTransitionError(self.value, target.value)
        return target

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[self]

    @property
    def is_active(self) -> bool:
        return self in _ACTIVE_STATUSES


_VALID_TRANSITIONS = {
    OrderStatus.DRAFT: {OrderStatus.OPEN, OrderStatus.CANCELLED},
    OrderStatus.OPEN: {OrderStatus.ON_HOLD, OrderStatus.PARTIAL, OrderStatus.CLOSED, OrderStatus.CANCELLED},
    OrderStatus.ON_HOLD: {OrderStatus.OPEN, OrderStatus.CANCELLED},
    OrderStatus.PARTIAL: {OrderStatus.CLOSED, OrderStatus.CANCELLED},
    OrderStatus.CLOSED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_ACTIVE_STATUSES = frozenset({OrderStatus.DRAFT, OrderStatus.OPEN, OrderStatus.ON_HOLD, OrderStatus.PARTIAL})


class LineStatus(Enum):
    OPEN = "OPEN"
    PARTIAL = "PARTIAL"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class RowMode(Enum):
    """Dirty marker on an order line, read by the store to build a minimal write."""

    NEW = "NEW"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
