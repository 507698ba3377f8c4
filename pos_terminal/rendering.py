"""Rich text helpers for the terminal panes."""

from __future__ import annotations

from rich.text import Text

from pos_terminal.models import CartLine, OrderState, OrderTotals, OrderType, ProductVariant, StockBatch
from pos_terminal.pricing import format_money as money

_BADGE_STYLES: dict[OrderType, str] = {
    OrderType.TAKE_AWAY: "bold #0b1f0f on #5fbf72",
    OrderType.DELIVERY: "bold #ffffff on #2f6db5",
    OrderType.DINE_IN: "bold #ffffff on #b23a48",
}


def badge_style(order_type: OrderType) -> str:
    """Return a consistent badge style for an order type."""
    return _BADGE_STYLES[order_type]


def format_order_label(order: OrderState) -> Text:
    """Order name with a colored fulfillment badge."""
    text = Text()
    text.append(f" {order.order_type.value} ", style=badge_style(order.order_type))
    text.append(f" {order.name}")
    if order.steward is not None:
        text.append(f"  ({order.steward.name})", style="dim")
    return text


def format_held_order(order: OrderState, total) -> Text:
    text = format_order_label(order)
    text.append(f"  {len(order.lines)} lines  {money(total)}", style="dim")
    return text


def format_cart_line(line: CartLine) -> Text:
    text = Text()
    text.append(line.variant.name, style="bold")
    text.append(f"  [{line.batch.batch_code}]", style="dim")
    text.append(f"\n      {line.quantity} x {money(line.unit_price)} = {money(line.gross)}")
    if line.discount > 0:
        text.append(f"  -{money(line.discount)}", style="#ffb3b3")
    return text


def format_product(product: ProductVariant) -> Text:
    text = Text()
    text.append(product.name)
    text.append(f"  {money(product.unit_price)}", style="dim")
    return text


def format_batch(batch: StockBatch) -> str:
    expiry = batch.expire_date or "no expiry"
    return f"{batch.batch_code or '(no code)'}  exp {expiry}  avail {batch.quantity}"


def format_totals(totals: OrderTotals) -> Text:
    rows = [
        ("Subtotal", money(totals.subtotal)),
        ("Item discounts", f"-{money(totals.item_discounts)}"),
        ("Tax", money(totals.tax)),
        ("Service charge", money(totals.service_charge)),
        ("Order discount", f"-{money(totals.order_discount)}"),
    ]
    text = Text()
    for label, value in rows:
        text.append(f"{label:<16}{value:>12}\n")
    style = "bold #ffb3b3" if totals.total < 0 else "bold"
    text.append(f"{'Total':<16}{money(totals.total):>12}", style=style)
    return text
