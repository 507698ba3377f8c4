"""Stock batch lookup for the add-to-cart dialog."""

from __future__ import annotations

import logging

from pos_terminal.api import ErpClient
from pos_terminal.catalog import parse_amount
from pos_terminal.errors import ApiError, StockFetchError
from pos_terminal.models import ZERO, ProductVariant, StockBatch, StockSnapshot

logger = logging.getLogger(__name__)


class StockBatchResolver:
    """
    Resolve sellable batches of a variant at a location.

    Batches come back in the backend's order, which is soonest expiry first,
    so the first one is the default FIFO pick. A snapshot is taken once per
    dialog and is not refreshed while the dialog is open.
    """

    def __init__(self, client: ErpClient) -> None:
        self.client = client

    def resolve(self, variant: ProductVariant, location_id: str) -> StockSnapshot:
        try:
            data = self.client.stock_summary(variant.product_id, variant.variant_id, location_id)
        except ApiError as exc:
            raise StockFetchError(f"Could not retrieve stock for {variant.name}: {exc.message}") from exc

        if not isinstance(data, dict):
            raise StockFetchError(f"Unexpected stock response for {variant.name}")

        try:
            totals = data.get("total_stock") or []
            total_stock = parse_amount(totals[0].get("stock_balance")) if totals else ZERO
            batches = tuple(
                batch
                for batch in (self._batch_from(variant, row) for row in data.get("grouped_by_expire_date") or [])
                if batch.quantity > 0
            )
        except (AttributeError, TypeError) as exc:
            raise StockFetchError(f"Malformed stock response for {variant.name}") from exc

        logger.info(
            f"stock variant={variant.variant_id} location={location_id} total={total_stock} batches={len(batches)}"
        )
        return StockSnapshot(total_stock=total_stock, batches=batches)

    @staticmethod
    def _batch_from(variant: ProductVariant, row: dict) -> StockBatch:
        return StockBatch(
            product_id=str(row.get("product_id", variant.product_id)),
            variant_id=str(row.get("product_variant_id", variant.variant_id)),
            batch_code=str(row.get("patch_code") or ""),
            quantity=parse_amount(row.get("stock_balance")),
            expire_date=row.get("expire_date") or None,
        )


def default_batch(snapshot: StockSnapshot) -> StockBatch | None:
    """First remaining batch, or None when nothing is in stock."""
    if not snapshot.batches:
        return None
    return snapshot.batches[0]
