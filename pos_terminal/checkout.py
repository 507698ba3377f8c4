"""Invoice submission for paid and pending orders."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Callable

from pos_terminal.api import ErpClient
from pos_terminal.config import CASHIER_ID, LOCATION_ID
from pos_terminal.errors import ApiError, CheckoutSubmissionError, EmptyOrderError, PrinterUnavailableError
from pos_terminal.models import ZERO, CheckoutMode, OrderState, OrderTotals, PaymentMethod, Receipt
from pos_terminal.pricing import change_due, compute_totals, to_money
from pos_terminal.registry import OrderRegistry

logger = logging.getLogger(__name__)


def _num(value: Decimal) -> float:
    return float(value)


def build_invoice_payload(
    order: OrderState,
    totals: OrderTotals,
    mode: CheckoutMode,
    company_id: str,
    location_id: str,
    cashier_id: str,
    payment_method: PaymentMethod | None = None,
    tendered: Decimal = ZERO,
    now: datetime | None = None,
) -> dict:
    """Serialize an order into the backend's POS invoice schema."""
    now = now or datetime.now()
    paid = mode is CheckoutMode.PAY
    discount_amount = totals.item_discounts + totals.order_discount
    discount_percentage = to_money(discount_amount / totals.subtotal * 100) if totals.subtotal > 0 else ZERO
    table_id = order.table.table_id if order.table is not None else "0"
    steward_id = order.steward.steward_id if order.steward is not None else ""
    return {
        "invoice_date": now.strftime("%Y-%m-%d"),
        "current_time": now.strftime("%Y-%m-%d %H:%M:%S"),
        "inv_amount": _num(totals.subtotal),
        "grand_total": _num(totals.total),
        "discount_amount": _num(discount_amount),
        "discount_percentage": _num(discount_percentage),
        "tax_amount": _num(totals.tax),
        "service_charge": _num(totals.service_charge),
        "customer_code": order.customer.customer_id,
        "tendered_amount": _num(tendered) if paid else 0,
        "close_type": payment_method.value if paid and payment_method is not None else "",
        "invoice_status": mode.value,
        "payment_status": "Paid" if paid else "Pending",
        "order_type": order.order_type.value,
        "location_id": location_id,
        "table_id": table_id,
        "steward_id": steward_id,
        "order_ready_status": 1,
        "created_by": cashier_id,
        "is_active": 1,
        "cost_value": _num(sum((line.variant.cost_price * line.quantity for line in order.lines), ZERO)),
        "remark": order.remark,
        "ref_hold": None,
        "company_id": company_id,
        "items": [
            {
                "user_id": cashier_id,
                "product_id": line.variant.product_id,
                "product_variant_id": line.variant.variant_id,
                "patch_code": line.batch.batch_code,
                "item_price": _num(line.unit_price),
                "item_discount": _num(line.discount),
                "quantity": _num(line.quantity),
                "cost_price": _num(line.variant.cost_price),
                "customer_id": order.customer.customer_id,
                "table_id": table_id,
                "is_active": 1,
                "hold_status": 0 if paid else 1,
                "printed_status": 0,
                "company_id": company_id,
            }
            for line in order.lines
        ],
    }


class CheckoutCoordinator:
    """
    Turn a registry order into a backend invoice.

    Submission is all-or-nothing: if the backend rejects or cannot be
    reached, the order stays in the registry exactly as it was. On success
    the order leaves the registry, and paid receipts go to `print_view`.
    """

    def __init__(
        self,
        client: ErpClient,
        registry: OrderRegistry,
        location_id: str = LOCATION_ID,
        cashier_id: str = CASHIER_ID,
        print_view: Callable[[Receipt], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.client = client
        self.registry = registry
        self.location_id = location_id
        self.cashier_id = cashier_id
        self.print_view = print_view
        self.clock = clock

    def submit(
        self,
        order_id: str,
        mode: CheckoutMode,
        payment_method: PaymentMethod | None = None,
        tendered: Decimal | None = None,
    ) -> Receipt:
        order = self.registry.get(order_id)
        if order.is_empty:
            raise EmptyOrderError("Cart is empty")
        totals = compute_totals(order)

        if mode is CheckoutMode.PAY:
            if totals.total < 0:
                raise CheckoutSubmissionError("Total is negative; reduce the discount before payment")
            payment_method = payment_method or PaymentMethod.CASH
            tendered = totals.total if tendered is None else tendered
            if tendered < totals.total:
                raise CheckoutSubmissionError(f"Tendered {tendered} is less than total {totals.total}")
        else:
            payment_method = None
            tendered = ZERO

        payload = build_invoice_payload(
            order,
            totals,
            mode,
            company_id=self.client.company_id,
            location_id=self.location_id,
            cashier_id=self.cashier_id,
            payment_method=payment_method,
            tendered=tendered,
            now=self.clock(),
        )
        logger.info(f"checkout_submit order={order_id} mode={mode.name} total={totals.total}")
        try:
            result = self.client.create_pos_invoice(payload)
        except ApiError as exc:
            logger.warning(f"checkout_failed order={order_id} error={exc.message!r}")
            raise CheckoutSubmissionError(exc.message) from exc

        result = result if isinstance(result, dict) else {}
        receipt = Receipt(
            invoice_id=str(result.get("invoice_id", "")),
            invoice_number=str(result.get("invoice_number", "")),
            mode=mode,
            order_name=order.name,
            customer_name=order.customer.name,
            totals=totals,
            payment_method=payment_method,
            tendered=tendered,
            change_due=change_due(totals.total, tendered) if mode is CheckoutMode.PAY else ZERO,
            lines=order.lines,
        )
        self.registry.checkout_success(order_id)
        logger.info(f"checkout_done order={order_id} invoice={receipt.invoice_number}")

        if mode is CheckoutMode.PAY and self.print_view is not None:
            try:
                self.print_view(receipt)
            except PrinterUnavailableError as exc:
                # The invoice exists on the backend; only the paper copy is missing.
                logger.warning(f"receipt_print_failed invoice={receipt.invoice_number} error={exc}")
                receipt = replace(receipt, print_error=str(exc))
        return receipt
