"""Sales order domain errors.

All of them are Protean validation errors carrying a ``{field: [message]}``
dictionary, so callers may catch the specific type or ``ValidationError``.
"""

from protean.exceptions import ValidationError


class SalesOrderError(ValidationError):
    """Base class for sales order validation failures."""

    default_field = "order"

    def __init__(self, message, field=None):
        if isinstance(message, dict):
            messages = message
        else:
            messages = {field or self.default_field: [message]}
        super().__init__(messages)

    @property
    def message(self) -> str:
        return "; ".join(msg for msgs in self.messages.values() for msg in msgs)

    def __str__(self) -> str:
        return self.message


class InvalidOrderError(SalesOrderError):
    """Structural problem with an order header."""


class InvalidOrderLineError(SalesOrderError):
    default_field = "line"


class InvalidQuantityError(SalesOrderError):
    default_field = "quantity"


class InvalidAmountError(SalesOrderError):
    """Negative amount, percent outside 0-100, or percent/amount mismatch."""

    default_field = "amount"


class InvalidStatusTransitionError(SalesOrderError):
    default_field = "status"

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition from {current} to {target}")
