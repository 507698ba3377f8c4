"""Thermal printing of customer receipts and kitchen order tickets."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator

from pos_terminal.config import (
    CASHIER_NAME,
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_TAIL_SPACER_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from pos_terminal.errors import EmptyOrderError, PrinterUnavailableError
from pos_terminal.models import CheckoutMode, OrderState, Receipt
from pos_terminal.pricing import format_money as money

logger = logging.getLogger(__name__)

# Characters per line at PRINTER_FONT_SIZE on a 58mm roll.
RECEIPT_LINE_CHARS = 28

# Layout marker for a horizontal rule between ticket sections.
RULE = "__RULE__"

_ROW_PADDING_PX = 10
_RULE_ROW_PX = 14
_RULE_THICKNESS_PX = 3
_FONT_ENV = "POS_PRINTER_FONT_PATH"
_SYSTEM_FONTS = (
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/liberation/LiberationMono-Regular.ttf",
)


def _two_columns(left: str, right: str, width: int = RECEIPT_LINE_CHARS) -> str:
    space = width - len(right) - 1
    if len(left) > space:
        left = left[: max(0, space - 1)] + "~"
    return f"{left:<{space}} {right}"


def receipt_lines(receipt: Receipt, cashier_name: str = CASHIER_NAME) -> list[str]:
    """Layout of a customer receipt, one printed line per entry."""
    totals = receipt.totals
    lines = [
        f"Receipt# {receipt.invoice_number}",
        f"Order: {receipt.order_name}",
        f"Cashier: {cashier_name}",
    ]
    if receipt.customer_name:
        lines.append(f"Customer: {receipt.customer_name}")
    lines.append(RULE)

    for line in receipt.lines:
        lines.append(line.variant.name)
        lines.append(_two_columns(f"  {line.quantity} x {line.unit_price:.2f}", f"{line.gross:.2f}"))
        if line.discount > 0:
            lines.append(_two_columns("  discount", f"-{line.discount:.2f}"))

    lines.append(RULE)
    lines.append(_two_columns("Subtotal", money(totals.subtotal)))
    if totals.item_discounts > 0:
        lines.append(_two_columns("Item discounts", f"-{money(totals.item_discounts)}"))
    lines.append(_two_columns("Tax", money(totals.tax)))
    if totals.service_charge > 0:
        lines.append(_two_columns("Service charge", money(totals.service_charge)))
    if totals.order_discount > 0:
        lines.append(_two_columns("Discount", f"-{money(totals.order_discount)}"))
    lines.append(_two_columns("TOTAL", money(totals.total)))

    if receipt.mode is CheckoutMode.PAY and receipt.payment_method is not None:
        lines.append(_two_columns(receipt.payment_method.value, money(receipt.tendered)))
        lines.append(_two_columns("Change", money(receipt.change_due)))
    else:
        lines.append("NOT PAID")
    return lines


def kitchen_ticket_lines(order: OrderState, cashier_name: str = CASHIER_NAME) -> list[str]:
    """Layout of a kitchen order ticket: what to prepare, no prices."""
    lines = [f"KOT {order.name}", f"{order.order_type.value}"]
    if order.steward is not None:
        lines.append(f"Steward: {order.steward.name}")
    lines.append(f"Cashier: {cashier_name}")
    lines.append(RULE)
    for line in order.lines:
        lines.append(_two_columns(line.variant.name, f"x{line.quantity}"))
    return lines



def _font_candidates() -> Iterator[str]:
    override = os.environ.get(_FONT_ENV, "").strip()
    if override:
        yield override
    yield PRINTER_FONT_PATH
    yield from _SYSTEM_FONTS


def resolve_printer_font_path() -> str:
    """First existing font of: $POS_PRINTER_FONT_PATH, PRINTER_FONT_PATH, common system fonts."""
    tried = list(dict.fromkeys(path for path in _font_candidates() if path))
    for path in tried:
        if Path(path).is_file():
            return path
    raise PrinterUnavailableError(f"No usable printer font; set {_FONT_ENV}. Tried: {', '.join(tried)}")


def printer_status() -> str:
    """One-line readiness report for the startup log."""
    try:
        import escpos.printer  # noqa: F401
        import PIL  # noqa: F401
    except ImportError as exc:
        return f"printer libraries missing: {exc}"
    try:
        return f"printer font {resolve_printer_font_path()}"
    except PrinterUnavailableError as exc:
        return str(exc)


def render_ticket(lines: list[str], font: object) -> object:
    """Draw a whole ticket onto one 1-bit canvas, rules included, with a tail for the cutter."""
    from PIL import Image, ImageDraw

    row_px = PRINTER_FONT_SIZE + _ROW_PADDING_PX
    heights = [_RULE_ROW_PX if line == RULE else row_px for line in lines]
    canvas = Image.new("1", (PRINTER_WIDTH_PX, sum(heights) + PRINTER_TAIL_SPACER_PX), color=1)
    draw = ImageDraw.Draw(canvas)

    top = 0
    for line, height in zip(lines, heights):
        if line == RULE:
            rule_top = top + (height - _RULE_THICKNESS_PX) // 2
            draw.rectangle((0, rule_top, PRINTER_WIDTH_PX - 1, rule_top + _RULE_THICKNESS_PX - 1), fill=0)
        else:
            left, upper, _, lower = draw.textbbox((0, 0), line, font=font)
            # Centre the glyph box in the row; subtracting `upper` keeps descenders on the canvas.
            draw.text((PRINTER_LEFT_INDENT_PX, top + (height - (lower - upper)) // 2 - upper), line, font=font, fill=0)
        top += height
    return canvas


def _print_lines(lines: list[str]) -> None:
    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except ImportError as exc:
        raise PrinterUnavailableError(f"Printer dependencies unavailable: {exc}") from exc

    font_path = resolve_printer_font_path()
    try:
        ticket = render_ticket(lines, ImageFont.truetype(font_path, PRINTER_FONT_SIZE))
        device = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
        device.image(ticket)
        device.cut()
    except Exception as exc:
        raise PrinterUnavailableError(f"Printing failed: {exc}") from exc


def print_receipt(receipt: Receipt) -> None:
    """Print a customer receipt and cut the ticket."""
    _print_lines(receipt_lines(receipt))
    logger.info(f"receipt_printed invoice={receipt.invoice_number}")


def print_kitchen_ticket(order: OrderState) -> None:
    """Send the current cart to the kitchen printer."""
    if order.is_empty:
        raise EmptyOrderError("Cannot send an empty order to the kitchen")
    _print_lines(kitchen_ticket_lines(order))
    logger.info(f"kot_printed order={order.order_id} lines={len(order.lines)}")
