"""Cart operations. Each returns a new OrderState and leaves its input alone."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from pos_terminal.errors import InsufficientStockError, InvalidAmountError
from pos_terminal.models import (
    ZERO,
    CartLine,
    Customer,
    DiningTable,
    OrderState,
    OrderType,
    ProductVariant,
    StockBatch,
    Steward,
)


def order_name(order_type: OrderType, sequence: int, table: DiningTable | None = None) -> str:
    if order_type is OrderType.DINE_IN and table is not None:
        return table.name
    return f"{order_type.value} #{sequence}"


def _check_ceiling(batch: StockBatch, quantity: Decimal) -> None:
    if quantity > batch.quantity:
        raise InsufficientStockError(batch.batch_code, quantity, batch.quantity)


def _check_line_discount(variant: ProductVariant, quantity: Decimal, discount: Decimal) -> None:
    if discount < 0:
        raise InvalidAmountError("Discount cannot be negative")
    if discount > variant.unit_price * quantity:
        raise InvalidAmountError(f"Discount {discount} exceeds line value {variant.unit_price * quantity}")


def add_item(
    order: OrderState,
    variant: ProductVariant,
    quantity: Decimal,
    discount: Decimal,
    batch: StockBatch,
) -> OrderState:
    """Add a variant from a batch, merging into an existing line for the same batch."""
    if quantity <= 0:
        raise InvalidAmountError("Quantity must be greater than zero")

    existing = order.find_line(variant.variant_id, batch.batch_code)
    if existing is None:
        _check_ceiling(batch, quantity)
        _check_line_discount(variant, quantity, discount)
        return replace(order, lines=order.lines + (CartLine(variant, batch, quantity, discount),))

    merged_quantity = existing.quantity + quantity
    merged_discount = existing.discount + discount
    _check_ceiling(existing.batch, merged_quantity)
    _check_line_discount(variant, merged_quantity, merged_discount)
    merged = replace(existing, quantity=merged_quantity, discount=merged_discount)
    return replace(order, lines=tuple(merged if line is existing else line for line in order.lines))


def update_quantity(order: OrderState, variant_id: str, batch_code: str, new_quantity: Decimal) -> OrderState:
    """Set a line's quantity; zero or less removes the line."""
    if new_quantity <= 0:
        return remove_item(order, variant_id, batch_code)

    line = order.find_line(variant_id, batch_code)
    if line is None:
        return order
    _check_ceiling(line.batch, new_quantity)
    # A line discount never exceeds the line value.
    discount = min(line.discount, line.unit_price * new_quantity)
    updated = replace(line, quantity=new_quantity, discount=discount)
    return replace(order, lines=tuple(updated if item is line else item for item in order.lines))


def step_quantity(order: OrderState, variant_id: str, batch_code: str, delta: Decimal) -> OrderState:
    line = order.find_line(variant_id, batch_code)
    if line is None:
        return order
    return update_quantity(order, variant_id, batch_code, line.quantity + delta)


def remove_item(order: OrderState, variant_id: str, batch_code: str) -> OrderState:
    return replace(order, lines=tuple(line for line in order.lines if line.key != (variant_id, batch_code)))


def set_order_discount(order: OrderState, amount: Decimal) -> OrderState:
    if amount < 0:
        raise InvalidAmountError("Order discount cannot be negative")
    return replace(order, discount=amount)


def set_service_charge(order: OrderState, amount: Decimal) -> OrderState:
    if amount < 0:
        raise InvalidAmountError("Service charge cannot be negative")
    return replace(order, service_charge=amount)


def set_customer(order: OrderState, customer: Customer) -> OrderState:
    return replace(order, customer=customer)


def update_details(
    order: OrderState,
    order_type: OrderType,
    table: DiningTable | None = None,
    steward: Steward | None = None,
) -> OrderState:
    """Change fulfillment type; table and steward only stick for dine-in orders."""
    if order_type is not OrderType.DINE_IN:
        table = None
        steward = None
    return replace(
        order,
        order_type=order_type,
        table=table,
        steward=steward,
        name=order_name(order_type, order.sequence, table),
    )


def item_count(order: OrderState) -> Decimal:
    return sum((line.quantity for line in order.lines), ZERO)
