"""Catalog and reference data loaded from the backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable

from pos_terminal.api import ErpClient
from pos_terminal.errors import ApiError, CatalogFetchError
from pos_terminal.models import (
    WALK_IN_CUSTOMER,
    ZERO,
    Brand,
    Collection,
    Customer,
    DiningTable,
    Location,
    ProductVariant,
    Steward,
)

logger = logging.getLogger(__name__)


def parse_amount(value: object) -> Decimal:
    """Parse a backend number or numeric string; anything unusable becomes 0."""
    if value is None or value == "":
        return ZERO
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def _variant_name(product_name: str, variant: dict) -> str:
    parts = [product_name]
    for key in ("color", "size"):
        if variant.get(key):
            parts.append(str(variant[key]))
    return " - ".join(parts)


def flatten_products(data: dict) -> list[ProductVariant]:
    """Turn `/products/with-variants` into one entry per sellable variant."""
    variants: list[ProductVariant] = []
    for entry in data.get("products") or []:
        product = entry.get("product") or {}
        product_id = str(product.get("id", ""))
        name = str(product.get("name", ""))
        common = {
            "product_id": product_id,
            "unit_price": parse_amount(product.get("price")),
            "cost_price": parse_amount(product.get("cost_price")),
            "category": str(product.get("category") or ""),
            "brand_id": str(product["brand_id"]) if product.get("brand_id") is not None else None,
        }
        raw_variants = entry.get("variants") or []
        if not raw_variants:
            # Products without variants still sell as a single unit.
            variants.append(ProductVariant(variant_id=product_id, sku=f"SKU-{product_id}", name=name, **common))
            continue
        for raw in raw_variants:
            variants.append(
                ProductVariant(
                    variant_id=str(raw.get("id", "")),
                    sku=str(raw.get("sku") or ""),
                    name=_variant_name(name, raw),
                    **common,
                )
            )
    return variants


def _fetch(what: str, call: Callable[[], Any]) -> Any:
    try:
        return call()
    except ApiError as exc:
        raise CatalogFetchError(f"Could not fetch {what}: {exc.message}") from exc


def _parse(what: str, parser: Callable[[Any], list], data: Any) -> list:
    """Run a row parser, turning an unexpected response shape into CatalogFetchError."""
    try:
        return parser(data)
    except (AttributeError, TypeError) as exc:
        raise CatalogFetchError(f"Malformed {what} response") from exc


def load_products(client: ErpClient) -> list[ProductVariant]:
    data = _fetch("products", client.products_with_variants)
    products = _parse("products", flatten_products, data if isinstance(data, dict) else {})
    logger.info(f"Loaded {len(products)} sellable variants")
    return products


def customers_from(rows: Iterable[dict]) -> list[Customer]:
    """Backend customers, always preceded by the walk-in customer."""
    customers = [WALK_IN_CUSTOMER]
    for row in rows:
        name = f"{row.get('customer_first_name', '')} {row.get('customer_last_name', '')}".strip()
        customers.append(
            Customer(customer_id=str(row.get("customer_id", "")), name=name, phone=str(row.get("phone_number") or ""))
        )
    return customers


def stewards_from(data: dict) -> list[Steward]:
    return [
        Steward(
            steward_id=str(row.get("id", "")),
            name=f"{row.get('first_name', '')} {row.get('last_name', '')}".strip(),
            role=str(row.get("acc_type") or ""),
        )
        for row in data.get("data") or []
    ]


def tables_from(rows: Iterable[dict]) -> list[DiningTable]:
    return [DiningTable(table_id=str(row.get("id", "")), name=str(row.get("table_name", ""))) for row in rows]


def brands_from(rows: Iterable[dict]) -> list[Brand]:
    return [Brand(brand_id=str(row.get("id", "")), name=str(row.get("name", ""))) for row in rows]


def collections_from(rows: Iterable[dict]) -> list[Collection]:
    return [Collection(collection_id=str(row.get("id", "")), title=str(row.get("title", ""))) for row in rows]


def pos_locations_from(rows: Iterable[dict]) -> list[Location]:
    """Locations flagged for point-of-sale use (`pos_status` "1")."""
    return [
        Location(location_id=str(row.get("location_id", "")), name=str(row.get("location_name", "")))
        for row in rows
        if str(row.get("pos_status", "")) == "1"
    ]


def load_customers(client: ErpClient) -> list[Customer]:
    return _parse("customer", customers_from, _fetch("customers", client.customers) or [])


def load_tables(client: ErpClient) -> list[DiningTable]:
    return _parse("table", tables_from, _fetch("tables", client.tables) or [])


def load_stewards(client: ErpClient) -> list[Steward]:
    return _parse("steward", stewards_from, _fetch("stewards", client.stewards) or {})


def load_brands(client: ErpClient) -> list[Brand]:
    return _parse("brand", brands_from, _fetch("brands", client.brands) or [])


def load_collections(client: ErpClient) -> list[Collection]:
    return _parse("collection", collections_from, _fetch("collections", client.collections) or [])


def load_pos_locations(client: ErpClient) -> list[Location]:
    return _parse("location", pos_locations_from, _fetch("locations", client.locations) or [])


def load_collection_product_ids(client: ErpClient, collection_id: str) -> set[str]:
    """Product ids linked to a collection, fetched when the collection is first selected."""
    rows = _fetch("collection products", lambda: client.collection_products(collection_id)) or []
    return set(_parse("collection product", lambda data: [str(row.get("product_id", "")) for row in data], rows))


@dataclass(frozen=True)
class ReferenceData:
    """Everything the terminal loads once at startup."""

    products: list[ProductVariant]
    customers: list[Customer] = field(default_factory=lambda: [WALK_IN_CUSTOMER])
    brands: list[Brand] = field(default_factory=list)
    collections: list[Collection] = field(default_factory=list)
    locations: list[Location] = field(default_factory=list)


def load_reference_data(client: ErpClient) -> ReferenceData:
    """
    Load the catalog and the lists behind the sidebar filters.

    Products are required and their failure raises CatalogFetchError. The
    other lists fall back to their defaults so the terminal can still sell.
    """
    products = load_products(client)
    optional = {
        "customers": load_customers,
        "brands": load_brands,
        "collections": load_collections,
        "locations": load_pos_locations,
    }
    loaded = {}
    for name, loader in optional.items():
        try:
            loaded[name] = loader(client)
        except CatalogFetchError as exc:
            logger.warning(f"{name}_unavailable error={exc}")
    return ReferenceData(products=products, **loaded)


def categories(products: Iterable[ProductVariant]) -> list[str]:
    return sorted({product.category for product in products if product.category})


def filter_products(
    products: list[ProductVariant],
    query: str = "",
    category: str | None = None,
    brand_id: str | None = None,
    product_ids: set[str] | None = None,
) -> list[ProductVariant]:
    """Apply the sidebar filter (category, brand or collection) then the name search."""
    source = products
    if category:
        source = [item for item in source if item.category == category]
    if brand_id:
        source = [item for item in source if item.brand_id == brand_id]
    if product_ids is not None:
        source = [item for item in source if item.product_id in product_ids]
    if not query:
        return source
    q = query.lower()
    return [item for item in source if q in item.name.lower() or q in item.sku.lower()]
