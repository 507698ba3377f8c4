from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import StubClient
from pos_terminal.errors import ApiError, StockFetchError
from pos_terminal.models import StockSnapshot
from pos_terminal.stock import StockBatchResolver, default_batch

SUMMARY = {
    "total_stock": [{"stock_balance": "9"}],
    "grouped_by_expire_date": [
        {"patch_code": "B-001", "stock_balance": "5", "expire_date": "2026-12-01"},
        {"patch_code": "B-000", "stock_balance": "0", "expire_date": "2026-06-01"},
        {"patch_code": "B-002", "stock_balance": "4", "expire_date": None},
    ],
}


def test_resolve_keeps_batches_in_stock(variant):
    client = StubClient({"stock_summary": SUMMARY})
    snapshot = StockBatchResolver(client).resolve(variant, "2")

    assert snapshot.total_stock == Decimal("9")
    assert [b.batch_code for b in snapshot.batches] == ["B-001", "B-002"]
    assert snapshot.batches[0].quantity == Decimal("5")
    assert snapshot.batches[1].expire_date is None
    assert client.calls == [("stock_summary", ("7", "11", "2"))]


def test_default_batch_is_first(variant):
    snapshot = StockBatchResolver(StubClient({"stock_summary": SUMMARY})).resolve(variant, "2")
    assert default_batch(snapshot).batch_code == "B-001"
    assert default_batch(StockSnapshot(total_stock=Decimal("0"))) is None


def test_empty_summary_means_no_stock(variant):
    snapshot = StockBatchResolver(StubClient({"stock_summary": {}})).resolve(variant, "2")
    assert snapshot.total_stock == Decimal("0")
    assert snapshot.batches == ()


def test_api_failure_becomes_stock_fetch_error(variant):
    client = StubClient({"stock_summary": ApiError(500, "boom")})
    with pytest.raises(StockFetchError, match="boom"):
        StockBatchResolver(client).resolve(variant, "2")


@pytest.mark.parametrize("body", [[], {"total_stock": ["bad"]}])
def test_malformed_response(variant, body):
    with pytest.raises(StockFetchError):
        StockBatchResolver(StubClient({"stock_summary": body})).resolve(variant, "2")
