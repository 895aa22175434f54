"""Tests for the OrderLine entity: construction, repricing and shipping."""

import pytest
from sales.order.exceptions import InvalidAmountError, InvalidOrderLineError, InvalidQuantityError
from sales.order.line import OrderLine
from sales.order.status import LineStatus, RowMode


def _make_line(**overrides):
    defaults = {
        "line_num": 1,
        "item_sku_id": "sku-001",
        "order_qty": 10,
        "uom_code": "EA",
        "unit_price": 100.0,
    }
    defaults.update(overrides)
    return OrderLine.create(**defaults)


def _assert_total_invariant(line):
    expected = line.order_qty * line.unit_price - line.discount_amount + line.tax_amount
    assert line.total_amount == pytest.approx(expected, abs=1e-2)


class TestOrderLineCreation:
    def test_plain_line_total(self):
        line = _make_line()
        assert line.subtotal == 1000.0
        assert line.total_amount == 1000.0
        _assert_total_invariant(line)

    def test_discount_percent_derives_amount(self):
        line = _make_line(discount_percent=10)
        assert line.discount_amount == 100.0
        assert line.total_amount == 900.0

    def test_tax_is_applied_to_taxable_amount(self):
        line = _make_line(discount_amount=100, tax_percent=10)
        assert line.discount_percent == 10.0
        assert line.taxable_amount == 900.0
        assert line.tax_amount == 90.0
        assert line.total_amount == 990.0
        _assert_total_invariant(line)

    def test_conflicting_discount_pair_is_rejected(self):
        with pytest.raises(InvalidAmountError):
            _make_line(discount_percent=10, discount_amount=500)

    def test_new_line_is_open_and_tagged_new(self):
        line = _make_line()
        assert line.status == LineStatus.OPEN.value
        assert line.row_mode == RowMode.NEW.value
        assert line.record_id is None
        assert line.shipped_qty == 0.0
        assert line.id is not None

    @pytest.mark.parametrize("line_num", [0, -1])
    def test_line_num_must_be_positive(self, line_num):
        with pytest.raises(InvalidOrderLineError):
            _make_line(line_num=line_num)

    def test_item_sku_is_required(self):
        with pytest.raises(InvalidOrderLineError):
            _make_line(item_sku_id=None)

    def test_uom_is_required(self):
        with pytest.raises(InvalidOrderLineError):
            _make_line(uom_code="")

    @pytest.mark.parametrize("qty", [0, -3])
    def test_quantity_must_be_positive(self, qty):
        with pytest.raises(InvalidQuantityError):
            _make_line(order_qty=qty)

    def test_unit_price_cannot_be_negative(self):
        with pytest.raises(InvalidAmountError):
            _make_line(unit_price=-1)

    def test_zero_price_is_allowed(self):
        line = _make_line(unit_price=0, tax_percent=10)
        assert line.total_amount == 0.0

    def test_discount_amount_above_subtotal_is_rejected(self):
        with pytest.raises(InvalidAmountError) as exc:
            _make_line(unit_price=0, discount_amount=5)
        assert "discount" in exc.value.messages

    def test_discount_update_above_subtotal_is_rejected(self):
        line = _make_line(order_qty=1, unit_price=10.0)
        with pytest.raises(InvalidAmountError):
            line.update_discount(amount=10.5)
        assert line.total_amount == 10.0


class TestOrderLineRepricing:
    def test_price_change_keeps_percentages(self):
        line = _make_line(discount_percent=10, tax_percent=5)
        line.update_unit_price(200)

        assert line.discount_percent == 10.0
        assert line.discount_amount == 200.0
        assert line.tax_amount == 90.0
        assert line.total_amount == 1890.0
        _assert_total_invariant(line)

    def test_quantity_change_keeps_percentages(self):
        line = _make_line(discount_percent=10)
        line.update_quantity(20)

        assert line.discount_amount == 200.0
        assert line.total_amount == 1800.0

    def test_invalid_quantity_update_leaves_line_untouched(self):
        line = _make_line()
        with pytest.raises(InvalidQuantityError):
            line.update_quantity(0)
        assert line.order_qty == 10
        assert line.row_mode == RowMode.NEW.value

    def test_negative_price_update_is_rejected(self):
        line = _make_line()
        with pytest.raises(InvalidAmountError):
            line.update_unit_price(-10)
        assert line.unit_price == 100.0

    def test_discount_update_recomputes_tax(self):
        line = _make_line(tax_percent=10)
        assert line.tax_amount == 100.0

        line.update_discount(amount=100)

        assert line.discount_percent == 10.0
        assert line.tax_amount == 90.0
        assert line.total_amount == 990.0

    def test_clearing_discount(self):
        line = _make_line(discount_percent=10)
        line.update_discount()
        assert line.discount_amount == 0.0
        assert line.total_amount == 1000.0

    def test_tax_update_only_changes_tax_and_total(self):
        line = _make_line(discount_percent=10)
        line.update_tax(percent=20)

        assert line.discount_amount == 100.0
        assert line.tax_amount == 180.0
        assert line.total_amount == 1080.0

    def test_failed_tax_update_keeps_previous_values(self):
        line = _make_line(tax_percent=10)
        with pytest.raises(InvalidAmountError):
            line.update_tax(percent=10, amount=50)
        assert line.tax_amount == 100.0
        assert line.total_amount == 1100.0

    def test_unchanged_base_keeps_supplied_rounded_amounts(self):
        line = _make_line(order_qty=3, unit_price=33.33, discount_percent=10, discount_amount=10.0)
        line.update_tax(percent=5)
        assert line.discount_amount == 10.0

    def test_combined_reprice(self):
        line = _make_line()
        line.reprice(order_qty=5, unit_price=50, discount_percent=20, tax_percent=10)

        assert line.subtotal == 250.0
        assert line.discount_amount == 50.0
        assert line.tax_amount == 20.0
        assert line.total_amount == 220.0
        _assert_total_invariant(line)


class TestOrderLineRowMode:
    def test_mutating_a_stored_line_marks_it_updated(self):
        line = _make_line()
        line.row_mode = None

        line.update_unit_price(90)

        assert line.row_mode == RowMode.UPDATED.value

    def test_new_line_stays_new_when_mutated(self):
        line = _make_line()
        line.update_quantity(3)
        assert line.row_mode == RowMode.NEW.value

    def test_deleted_line_stays_deleted_when_mutated(self):
        line = _make_line()
        line.mark_deleted()
        line.cancel()
        assert line.row_mode == RowMode.DELETED.value
        assert line.is_deleted


class TestOrderLineShipping:
    def test_partial_shipment(self):
        line = _make_line()
        line.add_shipped_qty(4)

        assert line.shipped_qty == 4
        assert line.status == LineStatus.PARTIAL.value
        assert line.open_qty == 6
        assert line.open_amount == 600.0

    def test_full_shipment_closes_line(self):
        line = _make_line()
        line.add_shipped_qty(4)
        line.add_shipped_qty(6)

        assert line.status == LineStatus.CLOSED.value
        assert line.open_qty == 0

    def test_over_shipment_closes_line(self):
        line = _make_line()
        line.add_shipped_qty(12)
        assert line.status == LineStatus.CLOSED.value

    def test_correction_back_to_zero_reopens_partial_line(self):
        line = _make_line()
        line.add_shipped_qty(4)
        line.add_shipped_qty(-4)

        assert line.shipped_qty == 0
        assert line.status == LineStatus.OPEN.value

    def test_shipped_cannot_go_negative(self):
        line = _make_line()
        with pytest.raises(InvalidQuantityError):
            line.add_shipped_qty(-1)
        assert line.shipped_qty == 0

    def test_cancelled_line_is_not_closed_by_shipping(self):
        line = _make_line()
        line.cancel()
        line.add_shipped_qty(10)

        assert line.status == LineStatus.CANCELLED.value
        assert line.open_qty == 0

    def test_closed_line_is_not_reopened_by_correction(self):
        line = _make_line()
        line.add_shipped_qty(10)
        line.add_shipped_qty(-10)
        assert line.status == LineStatus.CLOSED.value

    def test_lowering_quantity_to_shipped_closes_line(self):
        line = _make_line()
        line.add_shipped_qty(5)
        line.update_quantity(5)

        assert line.status == LineStatus.CLOSED.value
        assert line.open_qty == 0

    def test_raising_quantity_keeps_partial_line_partial(self):
        line = _make_line()
        line.add_shipped_qty(5)
        line.update_quantity(20)

        assert line.status == LineStatus.PARTIAL.value
        assert line.open_qty == 15

    def test_close_does_not_override_cancel(self):
        line = _make_line()
        line.cancel()
        line.close()
        assert line.status == LineStatus.CANCELLED.value


class TestOrderLinePersistence:
    def test_round_trip_recomputes_total(self):
        line = _make_line(discount_percent=10, tax_percent=10, description="Widget")
        record = line.to_persistence()
        record["id"] = 7
        record["total_amount"] = 12345.0  # drifted value in storage

        restored = OrderLine.from_persistence(record)

        assert restored.record_id == 7
        assert str(restored.id) == str(line.id)
        assert restored.total_amount == line.total_amount
        assert restored.description == "Widget"
        assert restored.row_mode is None
