from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import make_batch, make_order, make_variant
from pos_terminal import cart
from pos_terminal.errors import InsufficientStockError, InvalidAmountError
from pos_terminal.models import Customer, DiningTable, OrderType, Steward


def test_same_variant_and_batch_merges_quantity_and_discount(variant, batch):
    order = cart.add_item(make_order(), variant, Decimal("2"), Decimal("1.00"), batch)
    order = cart.add_item(order, variant, Decimal("1"), Decimal("0.50"), batch)

    assert len(order.lines) == 1
    assert order.lines[0].quantity == Decimal("3")
    assert order.lines[0].discount == Decimal("1.50")


def test_same_variant_from_another_batch_is_a_separate_line(variant, batch):
    other = make_batch(variant, code="B-002", quantity="4")
    order = cart.add_item(make_order(), variant, Decimal("1"), Decimal("0"), batch)
    order = cart.add_item(order, variant, Decimal("1"), Decimal("0"), other)

    assert [line.batch.batch_code for line in order.lines] == ["B-001", "B-002"]


def test_add_item_does_not_touch_the_original_order(variant, batch):
    original = make_order()
    cart.add_item(original, variant, Decimal("1"), Decimal("0"), batch)
    assert original.lines == ()


def test_add_above_batch_stock_is_rejected(variant, batch):
    order = make_order()
    with pytest.raises(InsufficientStockError) as excinfo:
        cart.add_item(order, variant, Decimal("6"), Decimal("0"), batch)
    assert excinfo.value.available == Decimal("5")
    assert order.lines == ()


def test_merge_above_batch_stock_leaves_cart_unchanged(variant, batch):
    order = cart.add_item(make_order(), variant, Decimal("4"), Decimal("0"), batch)
    with pytest.raises(InsufficientStockError):
        cart.add_item(order, variant, Decimal("2"), Decimal("0"), batch)
    assert order.lines[0].quantity == Decimal("4")


@pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
def test_add_requires_positive_quantity(variant, batch, quantity):
    with pytest.raises(InvalidAmountError):
        cart.add_item(make_order(), variant, quantity, Decimal("0"), batch)


def test_line_discount_cannot_exceed_line_value(variant, batch):
    with pytest.raises(InvalidAmountError):
        cart.add_item(make_order(), variant, Decimal("1"), Decimal("10.01"), batch)


def test_line_discount_cannot_be_negative(variant, batch):
    with pytest.raises(InvalidAmountError):
        cart.add_item(make_order(), variant, Decimal("1"), Decimal("-1"), batch)


@pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-3")])
def test_update_quantity_to_zero_or_less_removes_line(variant, batch, quantity):
    order = cart.add_item(make_order(), variant, Decimal("2"), Decimal("0"), batch)
    order = cart.update_quantity(order, variant.variant_id, batch.batch_code, quantity)
    assert order.is_empty


def test_update_quantity_is_checked_against_batch_ceiling(variant, batch):
    order = cart.add_item(make_order(), variant, Decimal("2"), Decimal("0"), batch)
    with pytest.raises(InsufficientStockError):
        cart.update_quantity(order, variant.variant_id, batch.batch_code, Decimal("6"))
    updated = cart.update_quantity(order, variant.variant_id, batch.batch_code, Decimal("5"))
    assert updated.lines[0].quantity == Decimal("5")


def test_lowering_quantity_caps_line_discount(variant, batch):
    order = cart.add_item(make_order(), variant, Decimal("3"), Decimal("25.00"), batch)

    order = cart.step_quantity(order, variant.variant_id, batch.batch_code, Decimal("-1"))
    assert order.lines[0].discount == Decimal("20.00")

    order = cart.step_quantity(order, variant.variant_id, batch.batch_code, Decimal("-1"))
    line = order.lines[0]
    assert line.quantity == Decimal("1")
    assert line.discount == Decimal("10.00")
    assert line.discount <= line.gross


def test_raising_quantity_keeps_line_discount(variant, batch):
    order = cart.add_item(make_order(), variant, Decimal("1"), Decimal("5.00"), batch)
    order = cart.update_quantity(order, variant.variant_id, batch.batch_code, Decimal("4"))
    assert order.lines[0].discount == Decimal("5.00")


def test_update_quantity_of_unknown_line_is_a_no_op(variant, batch):
    order = cart.add_item(make_order(), variant, Decimal("2"), Decimal("0"), batch)
    assert cart.update_quantity(order, "999", "B-001", Decimal("3")) == order


def test_step_quantity_stops_at_ceiling_and_removes_at_zero(variant):
    batch = make_batch(variant, quantity="2")
    order = cart.add_item(make_order(), variant, Decimal("1"), Decimal("0"), batch)

    order = cart.step_quantity(order, variant.variant_id, batch.batch_code, Decimal("1"))
    assert order.lines[0].quantity == Decimal("2")
    with pytest.raises(InsufficientStockError):
        cart.step_quantity(order, variant.variant_id, batch.batch_code, Decimal("1"))

    order = cart.step_quantity(order, variant.variant_id, batch.batch_code, Decimal("-1"))
    order = cart.step_quantity(order, variant.variant_id, batch.batch_code, Decimal("-1"))
    assert order.is_empty


def test_remove_item_keeps_other_lines(variant, batch):
    hoodie = make_variant("12", price="25.00", name="Hoodie")
    order = cart.add_item(make_order(), variant, Decimal("1"), Decimal("0"), batch)
    order = cart.add_item(order, hoodie, Decimal("1"), Decimal("0"), make_batch(hoodie))

    order = cart.remove_item(order, variant.variant_id, batch.batch_code)
    assert [line.variant.name for line in order.lines] == ["Hoodie"]


def test_negative_order_discount_and_service_charge_are_rejected():
    with pytest.raises(InvalidAmountError):
        cart.set_order_discount(make_order(), Decimal("-0.01"))
    with pytest.raises(InvalidAmountError):
        cart.set_service_charge(make_order(), Decimal("-1"))


def test_set_customer():
    customer = Customer(customer_id="21", name="Nimal Perera")
    assert cart.set_customer(make_order(), customer).customer == customer


def test_dine_in_details_rename_order_after_table():
    table = DiningTable(table_id="3", name="Table 3")
    steward = Steward(steward_id="9", name="Kamal Silva")
    order = cart.update_details(make_order(), OrderType.DINE_IN, table, steward)

    assert order.name == "Table 3"
    assert order.steward == steward


def test_switching_away_from_dine_in_drops_table_and_steward():
    table = DiningTable(table_id="3", name="Table 3")
    order = cart.update_details(make_order(), OrderType.DINE_IN, table, Steward("9", "Kamal"))
    order = cart.update_details(order, OrderType.DELIVERY, table)

    assert order.table is None
    assert order.steward is None
    assert order.name == "Delivery #1"


def test_item_count(variant, batch):
    order = cart.add_item(make_order(), variant, Decimal("3"), Decimal("0"), batch)
    assert cart.item_count(order) == Decimal("3")
    assert cart.item_count(make_order()) == Decimal("0")
