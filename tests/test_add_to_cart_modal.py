from __future__ import annotations

import asyncio
import threading
from decimal import Decimal

from textual.app import App

from conftest import StubClient, make_order, make_variant
from pos_terminal import cart
from pos_terminal.add_to_cart_modal import AddToCartModal
from pos_terminal.errors import ApiError
from pos_terminal.stock import StockBatchResolver

STOCK = {
    "total_stock": [{"stock_balance": "7"}],
    "grouped_by_expire_date": [
        {"patch_code": "B-001", "stock_balance": "2", "expire_date": "2026-11-01"},
        {"patch_code": "B-002", "stock_balance": "5", "expire_date": "2027-02-01"},
    ],
}


class CartHost:
    """Holds one order and adds to it the way the terminal does."""

    def __init__(self) -> None:
        self.order = make_order()

    def add(self, product, quantity, discount, batch) -> None:
        self.order = cart.add_item(self.order, product, quantity, discount, batch)


class BlockingStockClient(StubClient):
    def __init__(self) -> None:
        super().__init__({"stock_summary": STOCK})
        self.release = threading.Event()

    def stock_summary(self, product_id, variant_id, location_id):
        self.release.wait(timeout=5)
        return super().stock_summary(product_id, variant_id, location_id)


async def _open(app, pilot, client, host, results=None):
    modal = AddToCartModal(make_variant(), StockBatchResolver(client), "2", host.add)
    await app.push_screen(modal, results.append if results is not None else None)
    await app.workers.wait_for_complete()
    await pilot.pause()
    return modal


def test_stock_failure_blocks_adding():
    async def scenario():
        host = CartHost()
        app = App()
        async with app.run_test() as pilot:
            client = StubClient({"stock_summary": ApiError(500, "Internal server error")})
            modal = await _open(app, pilot, client, host)

            assert modal.snapshot.total_stock == Decimal("0")
            assert "Could not retrieve stock" in modal.error

            await pilot.press("enter")
            assert app.screen is modal
            assert host.order.lines == ()

    asyncio.run(scenario())


def test_first_batch_is_preselected():
    async def scenario():
        host = CartHost()
        results = []
        app = App()
        async with app.run_test() as pilot:
            modal = await _open(app, pilot, StubClient({"stock_summary": STOCK}), host, results)

            assert modal.selected_batch().batch_code == "B-001"
            await pilot.press("enter")
            await pilot.pause()

        assert results == [True]
        [line] = host.order.lines
        assert line.batch.batch_code == "B-001"
        assert line.quantity == Decimal("1")

    asyncio.run(scenario())


def test_cashier_can_pick_another_batch():
    async def scenario():
        host = CartHost()
        app = App()
        async with app.run_test() as pilot:
            await _open(app, pilot, StubClient({"stock_summary": STOCK}), host)

            await pilot.press("down", "4", "tab", "2", "enter")
            await pilot.pause()

        [line] = host.order.lines
        assert line.batch.batch_code == "B-002"
        assert line.quantity == Decimal("4")
        assert line.discount == Decimal("2")

    asyncio.run(scenario())


def test_quantity_above_batch_is_shown_in_dialog():
    async def scenario():
        host = CartHost()
        app = App()
        async with app.run_test() as pilot:
            modal = await _open(app, pilot, StubClient({"stock_summary": STOCK}), host)

            # B-001 only holds two units.
            await pilot.press("3", "enter")
            await pilot.pause()

            assert app.screen is modal
            assert "Only 2 units available in batch B-001" in modal.error
            assert host.order.lines == ()

    asyncio.run(scenario())


def test_stock_arriving_after_close_is_dropped():
    async def scenario():
        host = CartHost()
        client = BlockingStockClient()
        app = App()
        async with app.run_test() as pilot:
            modal = AddToCartModal(make_variant(), StockBatchResolver(client), "2", host.add)
            await app.push_screen(modal)
            await pilot.pause()
            assert modal.loading

            await pilot.press("q")
            await pilot.pause()
            assert app.screen is not modal

            client.release.set()
            await pilot.pause(0.3)

            assert modal.snapshot is None
            assert modal.loading
            assert host.order.lines == ()

    asyncio.run(scenario())
