"""Order totals."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pos_terminal.config import CURRENCY_SYMBOL, TAX_RATE
from pos_terminal.models import ZERO, OrderState, OrderTotals

CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_totals(order: OrderState, tax_rate: Decimal = TAX_RATE) -> OrderTotals:
    """
    Price an order.

    Tax applies to the amount left after line discounts; service charge and
    the order-level discount are added and subtracted afterwards. Nothing is
    clamped, so an oversized discount yields a negative total.
    """
    subtotal = sum((line.gross for line in order.lines), ZERO)
    item_discounts = sum((line.discount for line in order.lines), ZERO)
    after_item_discounts = subtotal - item_discounts
    tax = to_money(after_item_discounts * tax_rate)
    total = after_item_discounts + tax + order.service_charge - order.discount
    return OrderTotals(
        subtotal=to_money(subtotal),
        item_discounts=to_money(item_discounts),
        after_item_discounts=to_money(after_item_discounts),
        tax=tax,
        service_charge=to_money(order.service_charge),
        order_discount=to_money(order.discount),
        total=to_money(total),
    )


def change_due(total: Decimal, tendered: Decimal) -> Decimal:
    return to_money(max(ZERO, tendered - total))


def format_money(value: Decimal) -> str:
    return f"{CURRENCY_SYMBOL}{value:.2f}"
