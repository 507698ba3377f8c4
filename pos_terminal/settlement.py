"""Payments against invoices that were saved as pending."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from pos_terminal.api import ErpClient
from pos_terminal.catalog import parse_amount
from pos_terminal.errors import ApiError, InvalidAmountError, SettlementError
from pos_terminal.models import InvoiceBalance, PaymentMethod, PendingInvoice

logger = logging.getLogger(__name__)


def pending_invoices_for(client: ErpClient, customer_code: str) -> list[PendingInvoice]:
    try:
        rows = client.pending_invoices(customer_code)
    except ApiError as exc:
        raise SettlementError(f"Could not fetch invoices for this customer: {exc.message}") from exc
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise SettlementError("Unexpected pending invoice response")
    try:
        return [
            PendingInvoice(
                invoice_number=str(row.get("invoice_number", "")),
                invoice_date=str(row.get("invoice_date", "")),
                grand_total=parse_amount(row.get("grand_total")),
                customer_code=str(row.get("customer_code", customer_code)),
            )
            for row in rows
        ]
    except (AttributeError, TypeError) as exc:
        raise SettlementError("Malformed pending invoice response") from exc


def fetch_balance(client: ErpClient, invoice: PendingInvoice) -> InvoiceBalance:
    try:
        data = client.invoice_balance(invoice.customer_code, invoice.invoice_number)
    except ApiError as exc:
        raise SettlementError(f"Could not fetch invoice balance: {exc.message}") from exc
    if not isinstance(data, dict):
        raise SettlementError(f"Unexpected balance response for {invoice.invoice_number}")
    return InvoiceBalance(
        invoice_number=invoice.invoice_number,
        customer_id=str(data.get("customer_id", invoice.customer_code)),
        grand_total=parse_amount(data.get("grand_total")),
        total_paid=parse_amount(data.get("total_paid_amount")),
        balance=parse_amount(data.get("balance")),
    )


def build_receipt_payload(
    invoice: PendingInvoice,
    amount: Decimal,
    method: PaymentMethod,
    company_id: str,
    location_id: str,
    cashier_id: str,
    today: date | None = None,
) -> dict:
    today = today or date.today()
    return {
        "type": method.receipt_type_code,
        "is_active": 1,
        "date": today.strftime("%Y-%m-%d"),
        "amount": float(amount),
        "created_by": cashier_id,
        "ref_id": invoice.invoice_number,
        "location_id": location_id,
        "customer_id": invoice.customer_code,
        "today_invoice": invoice.invoice_number,
        "company_id": company_id,
    }


def settle_invoice(
    client: ErpClient,
    invoice: PendingInvoice,
    amount: Decimal,
    method: PaymentMethod,
    location_id: str,
    cashier_id: str,
    today: date | None = None,
) -> dict:
    """Record a payment receipt against a pending invoice."""
    if amount <= 0:
        raise InvalidAmountError("Payment amount must be greater than zero")
    payload = build_receipt_payload(invoice, amount, method, client.company_id, location_id, cashier_id, today)
    try:
        result = client.create_receipt(payload)
    except ApiError as exc:
        raise SettlementError(exc.message or "Failed to create receipt.") from exc
    logger.info(f"receipt_created invoice={invoice.invoice_number} amount={amount} method={method.name}")
    return result if isinstance(result, dict) else {}
