from __future__ import annotations

from decimal import Decimal

import pytest

from pos_terminal.errors import ApiError
from pos_terminal.models import OrderState, ProductVariant, StockBatch


def make_variant(variant_id: str = "11", price: str = "10.00", name: str = "Cotton Tee - Red - M") -> ProductVariant:
    return ProductVariant(
        product_id="7",
        variant_id=variant_id,
        sku=f"TEE-{variant_id}",
        name=name,
        unit_price=Decimal(price),
        cost_price=Decimal("4.00"),
    )


def make_batch(variant: ProductVariant, code: str = "B-001", quantity: str = "5") -> StockBatch:
    return StockBatch(
        product_id=variant.product_id,
        variant_id=variant.variant_id,
        batch_code=code,
        quantity=Decimal(quantity),
        expire_date="2027-01-31",
    )


def make_order(**overrides) -> OrderState:
    fields = {"order_id": "o1", "name": "Take Away #1", "sequence": 1}
    fields.update(overrides)
    return OrderState(**fields)


class StubClient:
    """Stands in for ErpClient; records calls and replays canned responses."""

    def __init__(self, responses: dict | None = None, company_id: str = "1") -> None:
        self.company_id = company_id
        self.responses = responses or {}
        self.calls: list[tuple[str, tuple]] = []

    def _answer(self, name: str, *args):
        self.calls.append((name, args))
        response = self.responses.get(name)
        if isinstance(response, Exception):
            raise response
        return response

    def products_with_variants(self):
        return self._answer("products_with_variants")

    def stock_summary(self, product_id, variant_id, location_id):
        return self._answer("stock_summary", product_id, variant_id, location_id)

    def create_pos_invoice(self, payload):
        return self._answer("create_pos_invoice", payload)

    def customers(self):
        return self._answer("customers")

    def tables(self):
        return self._answer("tables")

    def stewards(self):
        return self._answer("stewards")

    def pending_invoices(self, customer_code):
        return self._answer("pending_invoices", customer_code)

    def invoice_balance(self, customer_code, invoice_number):
        return self._answer("invoice_balance", customer_code, invoice_number)

    def create_receipt(self, payload):
        return self._answer("create_receipt", payload)

    def brands(self):
        return self._answer("brands")

    def collections(self):
        return self._answer("collections")

    def collection_products(self, collection_id):
        return self._answer("collection_products", collection_id)

    def locations(self):
        return self._answer("locations")


@pytest.fixture
def variant() -> ProductVariant:
    return make_variant()


@pytest.fixture
def batch(variant) -> StockBatch:
    return make_batch(variant)


@pytest.fixture
def server_down() -> ApiError:
    return ApiError(500, "Internal server error")
