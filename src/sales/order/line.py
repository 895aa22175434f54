"""OrderLine entity: one priced, shippable line of a sales order.

A line owns its own arithmetic: discount is resolved against the subtotal,
tax against the taxable amount (subtotal − discount), and the total is
always recomputed, never trusted from the caller or from storage.
"""

from datetime import UTC, datetime

from protean.fields import Date, DateTime, Float, Identifier, Integer, String, Text

from sales.domain import sales
from sales.order.exceptions import InvalidAmountError, InvalidOrderLineError, InvalidQuantityError
from sales.order.pricing import money, resolve_pricing_component
from sales.order.status import LineStatus, RowMode


def _validate_line(line_num, item_sku_id, order_qty, unit_price, uom_code):
    if line_num is None or int(line_num) <= 0:
        raise InvalidOrderLineError(f"Line number must be greater than 0: {line_num}", field="line_num")
    if item_sku_id is None or str(item_sku_id).strip() == "":
        raise InvalidOrderLineError("Item SKU is required", field="item_sku_id")
    if not uom_code or not str(uom_code).strip():
        raise InvalidOrderLineError("Unit of measure is required", field="uom_code")
    if order_qty is None or order_qty <= 0:
        raise InvalidQuantityError(f"Order quantity must be greater than 0: {order_qty}", field="order_qty")
    if unit_price is None or unit_price < 0:
        raise InvalidAmountError(f"Unit price cannot be negative: {unit_price}", field="unit_price")


@sales.entity(part_of="SalesOrder")
class OrderLine:
    record_id = Integer()  # Storage key, None until persisted
    line_num = Integer(required=True)
    item_sku_id = Identifier(required=True)
    description = String(max_length=500)
    order_qty = Float(required=True)
    shipped_qty = Float(default=0.0)
    uom_code = String(required=True, max_length=20)
    unit_price = Float(default=0.0)
    discount_percent = Float(default=0.0)
    discount_amount = Float(default=0.0)
    tax_percent = Float(default=0.0)
    tax_amount = Float(default=0.0)
    total_amount = Float(default=0.0)
    need_by_date = Date()
    status = String(choices=LineStatus, default=LineStatus.OPEN.value)
    warehouse_code = String(max_length=50)
    line_note = Text()
    row_mode = String(choices=RowMode)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        line_num: int,
        item_sku_id: str,
        order_qty: float,
        uom_code: str,
        unit_price: float = 0.0,
        discount_percent: float | None = None,
        discount_amount: float | None = None,
        tax_percent: float | None = None,
        tax_amount: float | None = None,
        description: str | None = None,
        need_by_date=None,
        warehouse_code: str | None = None,
        line_note: str | None = None,
    ) -> "OrderLine":
        """Create a new, unsaved line. Totals are computed here."""
        _validate_line(line_num, item_sku_id, order_qty, unit_price, uom_code)
        pricing = _price(order_qty, unit_price, discount_percent, discount_amount, tax_percent, tax_amount)

        now = datetime.now(UTC)
        return cls(
            line_num=int(line_num),
            item_sku_id=item_sku_id,
            description=description,
            order_qty=order_qty,
            shipped_qty=0.0,
            uom_code=uom_code,
            unit_price=unit_price,
            need_by_date=need_by_date,
            status=LineStatus.OPEN.value,
            warehouse_code=warehouse_code,
            line_note=line_note,
            row_mode=RowMode.NEW.value,
            created_at=now,
            updated_at=now,
            **pricing,
        )

    @classmethod
    def from_persistence(cls, record: dict) -> "OrderLine":
        """Rebuild a stored line; the stored total is recomputed, not trusted."""
        _validate_line(
            record.get("line_num"),
            record.get("item_sku_id"),
            record.get("order_qty"),
            record.get("unit_price"),
            record.get("uom_code"),
        )
        pricing = _price(
            record["order_qty"],
            record["unit_price"],
            record.get("discount_percent"),
            record.get("discount_amount"),
            record.get("tax_percent"),
            record.get("tax_amount"),
        )
        values = {
            "record_id": record.get("id"),
            "line_num": record["line_num"],
            "item_sku_id": record["item_sku_id"],
            "description": record.get("description"),
            "order_qty": record["order_qty"],
            "shipped_qty": record.get("shipped_qty") or 0.0,
            "uom_code": record["uom_code"],
            "unit_price": record["unit_price"],
            "need_by_date": record.get("need_by_date"),
            "status": record.get("status") or LineStatus.OPEN.value,
            "warehouse_code": record.get("warehouse_code"),
            "line_note": record.get("line_note"),
            "created_at": record.get("created_at"),
            "updated_at": record.get("updated_at"),
            **pricing,
        }
        if record.get("public_id"):
            values["id"] = record["public_id"]
        return cls(**values)

    def to_persistence(self) -> dict:
        return {
            "id": self.record_id,
            "public_id": str(self.id),
            "line_num": self.line_num,
            "item_sku_id": str(self.item_sku_id),
            "description": self.description,
            "order_qty": self.order_qty,
            "shipped_qty": self.shipped_qty,
            "uom_code": self.uom_code,
            "unit_price": self.unit_price,
            "discount_percent": self.discount_percent,
            "discount_amount": self.discount_amount,
            "tax_percent": self.tax_percent,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "need_by_date": self.need_by_date,
            "status": self.status,
            "warehouse_code": self.warehouse_code,
            "line_note": self.line_note,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    # -------------------------------------------------------------------
    # Derived amounts
    # -------------------------------------------------------------------
    @property
    def subtotal(self) -> float:
        return money(self.order_qty * self.unit_price)

    @property
    def taxable_amount(self) -> float:
        return money(max(self.subtotal - self.discount_amount, 0.0))

    @property
    def open_qty(self) -> float:
        if self.status not in (LineStatus.OPEN.value, LineStatus.PARTIAL.value):
            return 0.0
        return money(max(self.order_qty - (self.shipped_qty or 0.0), 0.0))

    @property
    def open_amount(self) -> float:
        if not self.order_qty:
            return 0.0
        return money(self.total_amount * self.open_qty / self.order_qty)

    @property
    def is_deleted(self) -> bool:
        return self.row_mode == RowMode.DELETED.value

    # -------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------
    def update_unit_price(self, unit_price: float) -> None:
        """Change the price; discount and tax percentages stay fixed."""
        if unit_price is None or unit_price < 0:
            raise InvalidAmountError(f"Unit price cannot be negative: {unit_price}", field="unit_price")
        self.reprice(unit_price=unit_price)

    def update_quantity(self, order_qty: float) -> None:
        """Change the ordered quantity; discount and tax percentages stay fixed."""
        if order_qty is None or order_qty <= 0:
            raise InvalidQuantityError(f"Order quantity must be greater than 0: {order_qty}", field="order_qty")
        self.reprice(order_qty=order_qty)

    def update_discount(self, percent: float | None = None, amount: float | None = None) -> None:
        """Resolve a new discount; tax follows the new taxable amount."""
        if percent is None and amount is None:
            percent = 0.0
        self.reprice(discount_percent=percent, discount_amount=amount)

    def update_tax(self, percent: float | None = None, amount: float | None = None) -> None:
        if percent is None and amount is None:
            percent = 0.0
        self.reprice(tax_percent=percent, tax_amount=amount)

    def reprice(
        self,
        order_qty: float | None = None,
        unit_price: float | None = None,
        discount_percent: float | None = None,
        discount_amount: float | None = None,
        tax_percent: float | None = None,
        tax_amount: float | None = None,
    ) -> None:
        """Apply any combination of pricing changes in one validated step.

        Omitted inputs keep their current value. When the subtotal moves,
        discount and tax keep their percentages and their amounts are
        re-derived; otherwise the stored amounts are kept as they are.
        """
        qty = self.order_qty if order_qty is None else order_qty
        price = self.unit_price if unit_price is None else unit_price
        if qty <= 0:
            raise InvalidQuantityError(f"Order quantity must be greater than 0: {qty}", field="order_qty")
        if price < 0:
            raise InvalidAmountError(f"Unit price cannot be negative: {price}", field="unit_price")

        base_changed = qty != self.order_qty or price != self.unit_price
        discount_given = discount_percent is not None or discount_amount is not None
        if not discount_given:
            discount_percent = self.discount_percent
            discount_amount = None if base_changed else self.discount_amount
        if tax_percent is None and tax_amount is None:
            tax_percent = self.tax_percent
            tax_amount = None if base_changed or discount_given else self.tax_amount

        pricing = _price(qty, price, discount_percent, discount_amount, tax_percent, tax_amount)
        qty_changed = qty != self.order_qty
        self.order_qty = qty
        self.unit_price = price
        self._apply(pricing)
        if qty_changed:
            self._sync_shipment_status()

    def add_shipped_qty(self, quantity: float) -> None:
        """Record a shipment (or a correction when ``quantity`` is negative)."""
        shipped = money((self.shipped_qty or 0.0) + quantity)
        if shipped < 0:
            raise InvalidQuantityError(f"Shipped quantity cannot be negative: {shipped}", field="shipped_qty")

        self.shipped_qty = shipped
        self._sync_shipment_status()
        self._touch()

    def update_details(self, description=None, need_by_date=None, warehouse_code=None, line_note=None) -> None:
        changes = {
            "description": description,
            "need_by_date": need_by_date,
            "warehouse_code": warehouse_code,
            "line_note": line_note,
        }
        for name, value in changes.items():
            if value is not None:
                setattr(self, name, value)
        self._touch()

    def cancel(self) -> None:
        self.status = LineStatus.CANCELLED.value
        self._touch()

    def close(self) -> None:
        """Force the line closed; cancelled lines stay cancelled."""
        if self.status != LineStatus.CANCELLED.value:
            self.status = LineStatus.CLOSED.value
            self._touch()

    # -------------------------------------------------------------------
    # Row mode
    # -------------------------------------------------------------------
    def mark_new(self) -> None:
        self.row_mode = RowMode.NEW.value

    def mark_deleted(self) -> None:
        self.row_mode = RowMode.DELETED.value

    def _sync_shipment_status(self) -> None:
        shipped = self.shipped_qty or 0.0
        current = LineStatus(self.status)
        if shipped >= self.order_qty:
            if current != LineStatus.CANCELLED:
                self.status = LineStatus.CLOSED.value
        elif shipped > 0:
            if current == LineStatus.OPEN:
                self.status = LineStatus.PARTIAL.value
        elif current == LineStatus.PARTIAL:
            self.status = LineStatus.OPEN.value

    def _touch(self) -> None:
        if self.row_mode is None:
            self.row_mode = RowMode.UPDATED.value
        self.updated_at = datetime.now(UTC)

    def _apply(self, values: dict) -> None:
        for name, value in values.items():
            setattr(self, name, value)
        self._touch()


def _price(order_qty, unit_price, discount_percent, discount_amount, tax_percent, tax_amount) -> dict:
    """Compute every derived money field of a line without touching it."""
    subtotal = money(order_qty * unit_price)
    discount_percent, discount_amount = resolve_pricing_component(
        subtotal, discount_percent, discount_amount, "Discount"
    )
    if discount_amount > subtotal:
        raise InvalidAmountError(
            f"Discount amount must be between 0 and {subtotal}: {discount_amount}", field="discount"
        )
    taxable = money(max(subtotal - discount_amount, 0.0))
    tax_percent, tax_amount = resolve_pricing_component(taxable, tax_percent, tax_amount, "Tax")
    return {
        "discount_percent": discount_percent,
        "discount_amount": discount_amount,
        "tax_percent": tax_percent,
        "tax_amount": tax_amount,
        "total_amount": money(subtotal - discount_amount + tax_amount),
    }
