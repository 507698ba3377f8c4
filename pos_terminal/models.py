"""Domain models for the POS terminal."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from pos_terminal.config import WALK_IN_CUSTOMER_ID, WALK_IN_CUSTOMER_NAME

ZERO = Decimal("0")


class OrderType(Enum):
    """How an order leaves the counter."""

    TAKE_AWAY = "Take Away"
    DELIVERY = "Delivery"
    DINE_IN = "Dine-In"


class PaymentMethod(Enum):
    """Tender types accepted at the payment dialog."""

    CASH = "Cash"
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"

    @property
    def receipt_type_code(self) -> str:
        """Code the backend expects in the receipt `type` field."""
        return _RECEIPT_TYPE_CODES[self]


_RECEIPT_TYPE_CODES: dict[PaymentMethod, str] = {
    PaymentMethod.CASH: "0",
    PaymentMethod.CARD: "1",
    PaymentMethod.BANK_TRANSFER: "2",
}


class CheckoutMode(Enum):
    """Invoice status sent at checkout: paid now, or saved as pending."""

    PAY = 1
    HOLD = 2


@dataclass(frozen=True)
class ProductVariant:
    """A sellable unit from the backend catalog."""

    product_id: str
    variant_id: str
    sku: str
    name: str
    unit_price: Decimal
    cost_price: Decimal = ZERO
    category: str = ""
    brand_id: str | None = None


@dataclass(frozen=True)
class StockBatch:
    """Stock lot snapshot taken when an item is about to be added."""

    product_id: str
    variant_id: str
    batch_code: str
    quantity: Decimal
    expire_date: str | None = None


@dataclass(frozen=True)
class StockSnapshot:
    """Result of a stock lookup for one variant at one location."""

    total_stock: Decimal
    batches: tuple[StockBatch, ...] = ()


@dataclass(frozen=True)
class CartLine:
    """One cart row: a variant taken from one specific batch."""

    variant: ProductVariant
    batch: StockBatch
    quantity: Decimal
    discount: Decimal = ZERO

    @property
    def key(self) -> tuple[str, str]:
        return (self.variant.variant_id, self.batch.batch_code)

    @property
    def unit_price(self) -> Decimal:
        return self.variant.unit_price

    @property
    def available(self) -> Decimal:
        """Batch availability recorded when the line was first added."""
        return self.batch.quantity

    @property
    def gross(self) -> Decimal:
        return self.variant.unit_price * self.quantity


@dataclass(frozen=True)
class Customer:
    customer_id: str
    name: str
    phone: str = ""


WALK_IN_CUSTOMER = Customer(customer_id=WALK_IN_CUSTOMER_ID, name=WALK_IN_CUSTOMER_NAME)


@dataclass(frozen=True)
class Steward:
    steward_id: str
    name: str
    role: str = ""


@dataclass(frozen=True)
class DiningTable:
    table_id: str
    name: str


@dataclass(frozen=True)
class Brand:
    brand_id: str
    name: str


@dataclass(frozen=True)
class Collection:
    collection_id: str
    title: str


@dataclass(frozen=True)
class Location:
    """A store location that has point-of-sale enabled."""

    location_id: str
    name: str


@dataclass(frozen=True)
class OrderState:
    """One open customer order. Replaced, never mutated, on every edit."""

    order_id: str
    name: str
    sequence: int
    order_type: OrderType = OrderType.TAKE_AWAY
    lines: tuple[CartLine, ...] = ()
    customer: Customer = WALK_IN_CUSTOMER
    discount: Decimal = ZERO
    service_charge: Decimal = ZERO
    table: DiningTable | None = None
    steward: Steward | None = None
    remark: str = ""

    def find_line(self, variant_id: str, batch_code: str) -> CartLine | None:
        for line in self.lines:
            if line.key == (variant_id, batch_code):
                return line
        return None

    @property
    def is_empty(self) -> bool:
        return not self.lines


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    item_discounts: Decimal
    after_item_discounts: Decimal
    tax: Decimal
    service_charge: Decimal
    order_discount: Decimal
    total: Decimal


@dataclass(frozen=True)
class Receipt:
    """Backend acknowledgement of a created invoice."""

    invoice_id: str
    invoice_number: str
    mode: CheckoutMode
    order_name: str
    totals: OrderTotals
    customer_name: str = ""
    payment_method: PaymentMethod | None = None
    tendered: Decimal = ZERO
    change_due: Decimal = ZERO
    lines: tuple[CartLine, ...] = field(default_factory=tuple)
    print_error: str = ""


@dataclass(frozen=True)
class PendingInvoice:
    invoice_number: str
    invoice_date: str
    grand_total: Decimal
    customer_code: str


@dataclass(frozen=True)
class InvoiceBalance:
    invoice_number: str
    customer_id: str
    grand_total: Decimal
    total_paid: Decimal
    balance: Decimal
