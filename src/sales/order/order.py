"""SalesOrder aggregate (CQRS): a customer's sales order and its lines.

The aggregate is mutated in place for the duration of one use case. Every
structural change (lines added, removed, repriced, shipped) recomputes the
header pricing from the active lines, so pricing is never set on its own.

Lines carry a row mode (NEW / UPDATED / DELETED) that the store reads to
write only the rows that changed. Removing a persisted line only flags it
DELETED; ``lines`` hides such rows while ``lines_for_persistence`` keeps them.

State Machine:
    DRAFT   → OPEN, CANCELLED
    OPEN    → ON_HOLD, PARTIAL, CLOSED, CANCELLED
    ON_HOLD → OPEN, CANCELLED
    PARTIAL → CLOSED, CANCELLED
"""

import json
from datetime import UTC, date, datetime

from protean.fields import Date, DateTime, HasMany, Identifier, Integer, String, Text, ValueObject

from sales.domain import sales
from sales.order.events import (
    OrderLineAdded,
    OrderLineRemoved,
    OrderLineShipped,
    OrderLineUpdated,
    SalesOrderCancelled,
    SalesOrderClosed,
    SalesOrderCreated,
    SalesOrderDetailsUpdated,
    SalesOrderHeld,
    SalesOrderReleased,
    SalesOrderRepriced,
    SalesOrderStatusChanged,
)
from sales.order.exceptions import InvalidOrderError, InvalidOrderLineError
from sales.order.line import OrderLine
from sales.order.pricing import OrderPricing
from sales.order.status import LineStatus, OrderStatus

METADATA_FIELDS = (
    "channel",
    "fob_code",
    "ship_via_code",
    "payment_term_code",
    "currency_code",
    "customer_po_num",
    "header_note",
    "internal_note",
)


@sales.value_object(part_of="SalesOrder")
class OrderAddresses:
    billing_address_id = Identifier()
    shipping_address_id = Identifier()

    def update(self, billing_address_id=None, shipping_address_id=None) -> "OrderAddresses":
        return OrderAddresses(
            billing_address_id=billing_address_id if billing_address_id is not None else self.billing_address_id,
            shipping_address_id=shipping_address_id if shipping_address_id is not None else self.shipping_address_id,
        )


@sales.value_object(part_of="SalesOrder")
class OrderMetadata:
    """Commercial details of an order: channel, shipping, payment and notes."""

    channel = String(max_length=50)
    fob_code = String(max_length=20)
    ship_via_code = String(max_length=20)
    payment_term_code = String(max_length=20)
    currency_code = String(max_length=3)
    customer_po_num = String(max_length=50)
    header_note = Text()
    internal_note = Text()

    def values(self) -> dict:
        return {name: getattr(self, name) for name in METADATA_FIELDS}

    def update(self, **changes) -> "OrderMetadata":
        """Return a copy with every non-None change applied."""
        unknown = sorted(set(changes) - set(METADATA_FIELDS))
        if unknown:
            raise InvalidOrderError(f"Unknown metadata fields: {', '.join(unknown)}", field="metadata")
        values = self.values()
        values.update({name: value for name, value in changes.items() if value is not None})
        return OrderMetadata(**values)

    def update_shipping_details(self, fob_code=None, ship_via_code=None) -> "OrderMetadata":
        return self.update(fob_code=fob_code, ship_via_code=ship_via_code)

    def update_notes(self, header_note=None, internal_note=None) -> "OrderMetadata":
        return self.update(header_note=header_note, internal_note=internal_note)


@sales.aggregate
class SalesOrder:
    record_id = Integer()  # Storage key, None until persisted
    so_num = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    order_date = Date()
    request_date = Date()
    need_by_date = Date()
    status = String(choices=OrderStatus, default=OrderStatus.OPEN.value)
    pricing = ValueObject(OrderPricing)
    addresses = ValueObject(OrderAddresses)
    order_metadata = ValueObject(OrderMetadata)
    order_lines = HasMany(OrderLine)
    created_by = String(max_length=100)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        so_num: str,
        customer_id: str,
        lines: list[OrderLine] | None = None,
        order_date: date | None = None,
        request_date: date | None = None,
        need_by_date: date | None = None,
        draft: bool = False,
        header_discount_percent: float | None = None,
        header_discount_amount: float | None = None,
        total_charges: float = 0.0,
        addresses: OrderAddresses | None = None,
        order_metadata: OrderMetadata | None = None,
        created_by: str | None = None,
    ) -> "SalesOrder":
        """Create a new order with its initial lines and computed pricing."""
        if not so_num or not str(so_num).strip():
            raise InvalidOrderError("Sales order number is required", field="so_num")
        if customer_id is None or str(customer_id).strip() == "":
            raise InvalidOrderError("Customer is required", field="customer_id")

        lines = list(lines or [])
        line_nums = [line.line_num for line in lines]
        duplicates = sorted({num for num in line_nums if line_nums.count(num) > 1})
        if duplicates:
            raise InvalidOrderLineError(f"Duplicate line numbers: {duplicates}", field="line_num")

        now = datetime.now(UTC)
        status = OrderStatus.DRAFT if draft else OrderStatus.OPEN
        order = cls(
            so_num=str(so_num).strip(),
            customer_id=customer_id,
            order_date=order_date or now.date(),
            request_date=request_date,
            need_by_date=need_by_date,
            status=status.value,
            pricing=OrderPricing.derive(total_charges=total_charges or 0.0),
            addresses=addresses or OrderAddresses(),
            order_metadata=order_metadata or OrderMetadata(),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            line.mark_new()
            order.add_order_lines(line)

        order._recalculate_pricing()
        if header_discount_percent is not None or header_discount_amount is not None:
            order.pricing = order.pricing.apply_discount(header_discount_percent, header_discount_amount)

        order.raise_(
            SalesOrderCreated(
                order_id=str(order.id),
                so_num=order.so_num,
                customer_id=str(customer_id),
                status=order.status,
                line_count=len(lines),
                order_total=order.pricing.order_total,
                order_date=order.order_date,
                created_at=now,
            )
        )
        return order

    @classmethod
    def from_persistence(cls, record: dict) -> "SalesOrder":
        """Rebuild a stored order. Pricing is recomputed from the stored lines."""
        values = {
            "record_id": record.get("id"),
            "so_num": record["so_num"],
            "customer_id": record["customer_id"],
            "order_date": record.get("order_date"),
            "request_date": record.get("request_date"),
            "need_by_date": record.get("need_by_date"),
            "status": record.get("order_status") or OrderStatus.OPEN.value,
            "pricing": OrderPricing.derive(
                total_line_amount=record.get("total_line_amount") or 0.0,
                total_tax=record.get("total_tax") or 0.0,
                header_discount_amount=record.get("header_discount_amount") or 0.0,
                header_discount_percent=record.get("header_discount_percent") or 0.0,
                total_charges=record.get("total_charges") or 0.0,
            ),
            "addresses": OrderAddresses(
                billing_address_id=record.get("billing_address_id"),
                shipping_address_id=record.get("shipping_address_id"),
            ),
            "order_metadata": OrderMetadata(**{name: record.get(name) for name in METADATA_FIELDS}),
            "created_by": record.get("created_by"),
            "created_at": record.get("created_at"),
            "updated_at": record.get("updated_at"),
        }
        if record.get("public_id"):
            values["id"] = record["public_id"]

        order = cls(**values)
        for line_record in sorted(record.get("lines") or [], key=lambda r: r["line_num"]):
            order.add_order_lines(OrderLine.from_persistence(line_record))
        order._recalculate_pricing()
        return order

    def to_persistence(self) -> dict:
        pricing = self._pricing()
        addresses = self.addresses or OrderAddresses()
        return {
            "id": self.record_id,
            "public_id": str(self.id),
            "so_num": self.so_num,
            "customer_id": str(self.customer_id),
            "order_date": self.order_date,
            "request_date": self.request_date,
            "need_by_date": self.need_by_date,
            "order_status": self.status,
            "header_discount_amount": pricing.header_discount_amount,
            "header_discount_percent": pricing.header_discount_percent,
            "total_line_amount": pricing.total_line_amount,
            "total_discount": pricing.total_discount,
            "total_tax": pricing.total_tax,
            "total_charges": pricing.total_charges,
            "order_total": pricing.order_total,
            "open_amount": pricing.open_amount,
            "billing_address_id": _optional_str(addresses.billing_address_id),
            "shipping_address_id": _optional_str(addresses.shipping_address_id),
            **self._metadata().values(),
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "lines": [line.to_persistence() for line in self.lines],
        }

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list[OrderLine]:
        """Active lines; rows flagged DELETED are hidden."""
        return [line for line in self.order_lines if not line.is_deleted]

    def lines_for_persistence(self) -> list[OrderLine]:
        return list(self.order_lines)

    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def line(self, line_num: int) -> OrderLine:
        line = next((ln for ln in self.lines if ln.line_num == int(line_num)), None)
        if line is None:
            raise InvalidOrderLineError(f"Line {line_num} not found on order {self.so_num}", field="line_num")
        return line

    def next_line_num(self) -> int:
        return max((line.line_num for line in self.order_lines), default=0) + 1

    # -------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------
    def add_line(self, line: OrderLine) -> OrderLine:
        self._assert_editable()
        if any(existing.line_num == line.line_num for existing in self.lines):
            raise InvalidOrderLineError(f"Line number {line.line_num} already exists", field="line_num")

        if line.record_id is None:
            line.mark_new()
        self.add_order_lines(line)
        self._recalculate_pricing()
        self._touch()

        self.raise_(
            OrderLineAdded(
                order_id=str(self.id),
                line_id=str(line.id),
                line_num=line.line_num,
                item_sku_id=str(line.item_sku_id),
                order_qty=line.order_qty,
                total_amount=line.total_amount,
            )
        )
        return line

    def update_line(
        self,
        line_num: int,
        unit_price: float | None = None,
        order_qty: float | None = None,
        discount_percent: float | None = None,
        discount_amount: float | None = None,
        tax_percent: float | None = None,
        tax_amount: float | None = None,
        description: str | None = None,
        need_by_date: date | None = None,
        warehouse_code: str | None = None,
        line_note: str | None = None,
    ) -> OrderLine:
        """Change pricing and descriptive fields of one line in a single step."""
        self._assert_editable()
        line = self.line(line_num)
        if line.status in (LineStatus.CLOSED.value, LineStatus.CANCELLED.value):
            raise InvalidOrderLineError(f"Line {line_num} is {line.status} and cannot be changed", field="line_num")

        changes = {
            name: value
            for name, value in {
                "unit_price": unit_price,
                "order_qty": order_qty,
                "discount_percent": discount_percent,
                "discount_amount": discount_amount,
                "tax_percent": tax_percent,
                "tax_amount": tax_amount,
                "description": description,
                "need_by_date": need_by_date,
                "warehouse_code": warehouse_code,
                "line_note": line_note,
            }.items()
            if value is not None
        }
        if not changes:
            return line

        line.reprice(
            order_qty=order_qty,
            unit_price=unit_price,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            tax_percent=tax_percent,
            tax_amount=tax_amount,
        )
        line.update_details(
            description=description,
            need_by_date=need_by_date,
            warehouse_code=warehouse_code,
            line_note=line_note,
        )
        self._recalculate_pricing()
        self._touch()

        self.raise_(
            OrderLineUpdated(
                order_id=str(self.id),
                line_id=str(line.id),
                line_num=line.line_num,
                changes=json.dumps(changes, default=str),
                total_amount=line.total_amount,
            )
        )
        return line

    def remove_line(self, line_num: int) -> OrderLine:
        """Remove a line: unsaved lines vanish, saved ones are flagged DELETED."""
        self._assert_editable()
        line = self.line(line_num)

        if line.record_id is None:
            self.remove_order_lines(line)
        else:
            line.mark_deleted()

        self._recalculate_pricing()
        self._touch()
        self.raise_(OrderLineRemoved(order_id=str(self.id), line_id=str(line.id), line_num=line.line_num))
        return line

    def ship_line(self, line_num: int, quantity: float) -> OrderLine:
        """Record shipped quantity on a line; the first shipment makes the order PARTIAL."""
        current = self.order_status
        if current not in (OrderStatus.OPEN, OrderStatus.PARTIAL):
            raise InvalidOrderError(f"Cannot ship lines of a {current.value} order", field="status")

        line = self.line(line_num)
        if line.status == LineStatus.CANCELLED.value:
            raise InvalidOrderLineError(f"Line {line_num} is cancelled", field="line_num")

        line.add_shipped_qty(quantity)
        self._recalculate_pricing()
        now = self._touch()

        self.raise_(
            OrderLineShipped(
                order_id=str(self.id),
                line_id=str(line.id),
                line_num=line.line_num,
                quantity=quantity,
                shipped_qty=line.shipped_qty,
                line_status=line.status,
            )
        )

        if current == OrderStatus.OPEN and any((ln.shipped_qty or 0) > 0 for ln in self.lines):
            self.status = current.transition_to(OrderStatus.PARTIAL).value
            self.raise_(
                SalesOrderStatusChanged(
                    order_id=str(self.id),
                    previous_status=current.value,
                    new_status=self.status,
                    changed_at=now,
                )
            )
        return line

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def hold(self) -> None:
        self.status = self.order_status.transition_to(OrderStatus.ON_HOLD).value
        now = self._touch()
        self.raise_(SalesOrderHeld(order_id=str(self.id), held_at=now))

    def release(self) -> None:
        if self.order_status != OrderStatus.ON_HOLD:
            raise InvalidOrderError("Order is not on hold", field="status")
        self.status = OrderStatus.OPEN.value
        now = self._touch()
        self.raise_(SalesOrderReleased(order_id=str(self.id), released_at=now))

    def cancel(self, reason: str | None = None) -> None:
        """Cancel the order and every active line."""
        current = self.order_status
        if current == OrderStatus.CLOSED:
            raise InvalidOrderError("Cannot cancel closed order", field="status")
        current.transition_to(OrderStatus.CANCELLED)

        for line in self.lines:
            line.cancel()
        self.status = OrderStatus.CANCELLED.value
        self._recalculate_pricing()
        now = self._touch()

        self.raise_(
            SalesOrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                cancelled_at=now,
            )
        )

    def close(self, require_shipped: bool = False) -> None:
        """Close the order.

        By default every active line is force-closed. With ``require_shipped``
        the order is refused while any active line still has open quantity.
        """
        current = self.order_status
        current.transition_to(OrderStatus.CLOSED)

        if require_shipped:
            open_lines = [line.line_num for line in self.lines if line.open_qty > 0]
            if open_lines:
                raise InvalidOrderError(f"Cannot close order with open lines: {open_lines}", field="status")

        for line in self.lines:
            line.close()
        self.status = OrderStatus.CLOSED.value
        self._recalculate_pricing()
        now = self._touch()

        self.raise_(SalesOrderClosed(order_id=str(self.id), previous_status=current.value, closed_at=now))

    def change_status(self, target: OrderStatus | str, require_shipped: bool = False) -> None:
        """Move to ``target`` through the matching lifecycle operation."""
        target = OrderStatus(target)
        if target == OrderStatus.CANCELLED:
            return self.cancel()
        if target == OrderStatus.CLOSED:
            return self.close(require_shipped=require_shipped)
        if target == OrderStatus.ON_HOLD:
            return self.hold()
        if target == OrderStatus.OPEN and self.order_status == OrderStatus.ON_HOLD:
            return self.release()

        current = self.order_status
        self.status = current.transition_to(target).value
        now = self._touch()
        self.raise_(
            SalesOrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Header pricing
    # -------------------------------------------------------------------
    def update_discount(self, percent: float | None = None, amount: float | None = None) -> None:
        """Set the header discount from a percent, an amount, or a matching pair."""
        self._assert_editable()
        self.pricing = self._pricing().apply_discount(percent, amount)
        self._repriced()

    def update_discount_amount(self, amount: float) -> None:
        self._assert_editable()
        self.pricing = self._pricing().set_discount_amount(amount)
        self._repriced()

    def update_discount_percent(self, percent: float) -> None:
        self._assert_editable()
        self.pricing = self._pricing().set_discount_percent(percent)
        self._repriced()

    def update_charges(self, amount: float) -> None:
        self._assert_editable()
        self.pricing = self._pricing().set_charges(amount)
        self._repriced()

    # -------------------------------------------------------------------
    # Details
    # -------------------------------------------------------------------
    def update_addresses(self, billing_address_id=None, shipping_address_id=None) -> None:
        current = self.addresses or OrderAddresses()
        self.addresses = current.update(billing_address_id=billing_address_id, shipping_address_id=shipping_address_id)
        self._details_updated(billing_address_id=billing_address_id, shipping_address_id=shipping_address_id)

    def update_metadata(self, **changes) -> None:
        self.order_metadata = self._metadata().update(**changes)
        self._details_updated(**changes)

    def update_shipping_details(self, fob_code=None, ship_via_code=None) -> None:
        self.order_metadata = self._metadata().update_shipping_details(fob_code=fob_code, ship_via_code=ship_via_code)
        self._details_updated(fob_code=fob_code, ship_via_code=ship_via_code)

    def update_notes(self, header_note=None, internal_note=None) -> None:
        self.order_metadata = self._metadata().update_notes(header_note=header_note, internal_note=internal_note)
        self._details_updated(header_note=header_note, internal_note=internal_note)

    def update_dates(self, order_date=None, request_date=None, need_by_date=None) -> None:
        changes = {"order_date": order_date, "request_date": request_date, "need_by_date": need_by_date}
        for name, value in changes.items():
            if value is not None:
                setattr(self, name, value)
        self._details_updated(**changes)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _assert_editable(self) -> None:
        if self.order_status.is_terminal:
            raise InvalidOrderError(f"Cannot modify a {self.status} order", field="status")

    def _pricing(self) -> OrderPricing:
        return self.pricing or OrderPricing.derive()

    def _metadata(self) -> OrderMetadata:
        return self.order_metadata or OrderMetadata()

    def _recalculate_pricing(self) -> None:
        active = self.lines
        self.pricing = self._pricing().recalculate(
            line_total=sum(line.total_amount for line in active),
            line_tax=sum(line.tax_amount for line in active),
            line_discount=sum(line.discount_amount for line in active),
            open_line_amount=sum(line.open_amount for line in active),
        )

    def _touch(self) -> datetime:
        now = datetime.now(UTC)
        self.updated_at = now
        return now

    def _repriced(self) -> None:
        self._touch()
        pricing = self.pricing
        self.raise_(
            SalesOrderRepriced(
                order_id=str(self.id),
                header_discount_amount=pricing.header_discount_amount,
                header_discount_percent=pricing.header_discount_percent,
                total_charges=pricing.total_charges,
                order_total=pricing.order_total,
            )
        )

    def _details_updated(self, **changes) -> None:
        changes = {name: value for name, value in changes.items() if value is not None}
        now = self._touch()
        self.raise_(
            SalesOrderDetailsUpdated(
                order_id=str(self.id),
                changes=json.dumps(changes, default=str),
                updated_at=now,
            )
        )


def _optional_str(value):
    return None if value is None else str(value)
