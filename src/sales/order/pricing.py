"""Pricing arithmetic for sales orders.

``resolve_pricing_component`` reconciles a (percent, amount) pair against a
base amount; it is used identically for discounts and taxes, on lines and on
the order header. ``OrderPricing`` is the header-level money summary.
"""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float

from sales.domain import sales
from sales.order.exceptions import InvalidAmountError

AMOUNT_TOLERANCE = 0.02


def money(value: float) -> float:
    """Round away float noise; keeps caller-supplied cents intact."""
    value = round(float(value), 6)
    return 0.0 if value == 0 else value


def resolve_pricing_component(
    base: float,
    percent: float | None = None,
    amount: float | None = None,
    field_name: str = "Amount",
) -> tuple[float, float]:
    """Resolve a percent/amount pair against ``base``.

    Returns ``(percent, amount)``. When both are supplied they must agree
    within ``AMOUNT_TOLERANCE``; the supplied amount is then kept as-is.
    """
    key = field_name.lower()
    base = float(base)
    if base < 0:
        raise InvalidAmountError(f"{field_name} base cannot be negative: {base}", field=key)

    if percent is not None and amount is not None:
        percent, amount = float(percent), float(amount)
        expected = base * percent / 100
        if abs(expected - amount) > AMOUNT_TOLERANCE:
            raise InvalidAmountError(
                f"{field_name} percent {percent} and amount {amount} do not match: "
                f"expected amount {money(expected)}",
                field=key,
            )
    elif percent is not None:
        percent = float(percent)
        amount = base * percent / 100
    elif amount is not None:
        amount = float(amount)
        percent = amount / base * 100 if base > 0 else 0.0
    else:
        percent, amount = 0.0, 0.0

    if percent < 0 or percent > 100:
        raise InvalidAmountError(f"{field_name} percent must be between 0 and 100: {percent}", field=key)
    if amount < 0:
        raise InvalidAmountError(f"{field_name} amount cannot be negative: {amount}", field=key)

    return money(percent), money(amount)


@sales.value_object(part_of="SalesOrder")
class OrderPricing:
    """Header-level money summary of a sales order.

    Line totals already include line discounts and taxes, so the order total
    only subtracts the header discount on top of them.
    """

    total_line_amount = Float(default=0.0, min_value=0.0)
    header_discount_amount = Float(default=0.0, min_value=0.0)
    header_discount_percent = Float(default=0.0, min_value=0.0, max_value=100.0)
    line_discount_amount = Float(default=0.0, min_value=0.0)
    total_discount = Float(default=0.0, min_value=0.0)
    total_tax = Float(default=0.0, min_value=0.0)
    total_charges = Float(default=0.0, min_value=0.0)
    order_total = Float(default=0.0, min_value=0.0)
    open_line_amount = Float(default=0.0, min_value=0.0)
    open_amount = Float(default=0.0, min_value=0.0)

    @invariant.post
    def header_discount_cannot_exceed_discount_base(self):
        if self.header_discount_amount > self.discount_base + AMOUNT_TOLERANCE:
            raise ValidationError(
                {"header_discount_amount": [f"Discount {self.header_discount_amount} exceeds {self.discount_base}"]}
            )

    @property
    def discount_base(self) -> float:
        """Line totals before tax; the amount a header discount applies to."""
        return money(max((self.total_line_amount or 0.0) - (self.total_tax or 0.0), 0.0))

    @classmethod
    def derive(
        cls,
        total_line_amount: float = 0.0,
        total_tax: float = 0.0,
        line_discount_amount: float = 0.0,
        open_line_amount: float = 0.0,
        header_discount_amount: float = 0.0,
        header_discount_percent: float = 0.0,
        total_charges: float = 0.0,
    ) -> "OrderPricing":
        """Build a pricing value with every derived field filled in."""
        total_line_amount = money(total_line_amount)
        header_discount_amount = money(header_discount_amount)
        order_total = money(max(total_line_amount - header_discount_amount, 0.0) + total_charges)

        if total_line_amount > 0:
            share = min(max(open_line_amount / total_line_amount, 0.0), 1.0)
            open_amount = money(order_total * share)
        else:
            open_amount = 0.0

        return cls(
            total_line_amount=total_line_amount,
            header_discount_amount=header_discount_amount,
            header_discount_percent=money(header_discount_percent),
            line_discount_amount=money(line_discount_amount),
            total_discount=money(header_discount_amount + line_discount_amount),
            total_tax=money(total_tax),
            total_charges=money(total_charges),
            order_total=order_total,
            open_line_amount=money(open_line_amount),
            open_amount=open_amount,
        )

    def recalculate(
        self,
        line_total: float,
        line_tax: float,
        line_discount: float,
        open_line_amount: float = 0.0,
    ) -> "OrderPricing":
        """Rebuild the summary from new line sums.

        A header discount percent is reapplied to the new base; a plain
        amount is kept but never allowed to exceed it.
        """
        base = max(money(line_total) - money(line_tax), 0.0)
        if self.header_discount_percent:
            header_amount = base * self.header_discount_percent / 100
        else:
            header_amount = min(self.header_discount_amount or 0.0, base)

        return self.derive(
            total_line_amount=line_total,
            total_tax=line_tax,
            line_discount_amount=line_discount,
            open_line_amount=open_line_amount,
            header_discount_amount=header_amount,
            header_discount_percent=self.header_discount_percent or 0.0,
            total_charges=self.total_charges or 0.0,
        )

    def apply_discount(self, percent: float | None = None, amount: float | None = None) -> "OrderPricing":
        """Resolve a header discount against the current discount base."""
        base = self.discount_base
        percent, amount = resolve_pricing_component(base, percent, amount, "Header discount")
        if amount > base:
            raise InvalidAmountError(
                f"Header discount amount must be between 0 and {base}: {amount}", field="header discount"
            )
        return self._with(header_discount_amount=amount, header_discount_percent=percent)

    def set_discount_amount(self, amount: float) -> "OrderPricing":
        return self.apply_discount(amount=amount)

    def set_discount_percent(self, percent: float) -> "OrderPricing":
        return self.apply_discount(percent=percent)

    def set_charges(self, amount: float) -> "OrderPricing":
        amount = float(amount)
        if amount < 0:
            raise InvalidAmountError(f"Total charges cannot be negative: {amount}", field="total_charges")
        return self._with(total_charges=amount)

    def _with(self, **changes) -> "OrderPricing":
        values = {
            "total_line_amount": self.total_line_amount or 0.0,
            "total_tax": self.total_tax or 0.0,
            "line_discount_amount": self.line_discount_amount or 0.0,
            "open_line_amount": self.open_line_amount or 0.0,
            "header_discount_amount": self.header_discount_amount or 0.0,
            "header_discount_percent": self.header_discount_percent or 0.0,
            "total_charges": self.total_charges or 0.0,
        }
        values.update(changes)
        return self.derive(**values)
