from __future__ import annotations

import asyncio
from decimal import Decimal

from conftest import StubClient
from pos_terminal.choice_modal import ChoiceModal
from pos_terminal.errors import ApiError
from pos_terminal.models import OrderType, StockBatch
from pos_terminal.pos_app import PosApp

PRODUCTS = {
    "products": [
        {
            "product": {"id": 7, "name": "Cotton Tee", "price": "10.00"},
            "variants": [{"id": 11, "sku": "TEE-R", "color": "Red"}],
        },
        {"product": {"id": 8, "name": "Hoodie", "price": "25.00", "brand_id": 3}, "variants": []},
    ]
}


def _app(**responses) -> PosApp:
    responses.setdefault("products_with_variants", PRODUCTS)
    responses.setdefault("customers", [])
    return PosApp(client=StubClient(responses), receipt_printer=None)


async def _loaded(app, pilot) -> None:
    await app.workers.wait_for_complete()
    await pilot.pause()


def test_catalog_loads_and_search_filters():
    async def scenario():
        app = _app()
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            assert len(app.products) == 2
            await pilot.press("h", "o", "o")
            await pilot.pause()
            assert app.query_text == "hoo"
            assert [p.name for p in app._filtered_results()] == ["Hoodie"]
            await pilot.press("backspace")
            assert app.query_text == "ho"

    asyncio.run(scenario())


def test_catalog_failure_is_reported_not_raised():
    async def scenario():
        app = _app(products_with_variants=ApiError(None, "Could not reach the server"))
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            assert app.products == []
            assert "Could not fetch data" in app.system_status

    asyncio.run(scenario())


def test_stepper_and_local_hold():
    async def scenario():
        app = _app()
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            tee = app.products[0]
            batch = StockBatch(tee.product_id, tee.variant_id, "B-001", Decimal("2"))
            app._add_to_current(tee, Decimal("1"), Decimal("0"), batch)

            await pilot.press("plus")
            assert app.registry.current.lines[0].quantity == Decimal("2")

            # Batch only holds two units.
            await pilot.press("plus")
            assert app.registry.current.lines[0].quantity == Decimal("2")
            assert "Only 2 units available" in app.system_status

            held_id = app.registry.current_id
            await pilot.press("ctrl+t")
            assert app.registry.current is not None
            assert app.registry.current_id != held_id
            assert [order.order_id for order in app.registry.held_orders()] == [held_id]

    asyncio.run(scenario())


def test_failed_pending_save_keeps_order():
    async def scenario():
        app = _app(create_pos_invoice=ApiError(503, "Service unavailable"))
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            hoodie = app.products[1]
            app._add_to_current(hoodie, Decimal("1"), Decimal("0"), StockBatch("8", "8", "", Decimal("3")))
            order_id = app.registry.current_id

            await pilot.press("ctrl+s")

            assert app.registry.current_id == order_id
            assert len(app.registry.current.lines) == 1
            assert "Service unavailable" in app.system_status

    asyncio.run(scenario())


def test_brand_and_collection_filters_cycle():
    async def scenario():
        app = _app(
            brands=[{"id": 3, "name": "Acme"}],
            collections=[{"id": 12, "title": "Summer"}],
            collection_products=[{"product_id": 7}],
        )
        async with app.run_test() as pilot:
            await _loaded(app, pilot)

            await pilot.press("ctrl+b")
            assert [p.name for p in app._filtered_results()] == ["Hoodie"]
            assert app.system_status == "Filter: Brand Acme"

            # Picking a collection replaces the brand filter.
            await pilot.press("ctrl+l")
            assert app.brand is None
            assert [p.name for p in app._filtered_results()] == ["Cotton Tee - Red"]

            await pilot.press("ctrl+l")
            assert app.collection is None
            assert len(app._filtered_results()) == 2

            await pilot.press("ctrl+l")
            assert [p.name for p in app._filtered_results()] == ["Cotton Tee - Red"]
            fetches = [call for call in app.client.calls if call[0] == "collection_products"]
            assert fetches == [("collection_products", ("12",))]

    asyncio.run(scenario())


def test_collection_fetch_failure_shows_no_products():
    async def scenario():
        app = _app(collections=[{"id": 12, "title": "Summer"}], collection_products=ApiError(500, "down"))
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            await pilot.press("ctrl+l")

            assert app._filtered_results() == []
            assert "Could not load products for this collection" in app.system_status

    asyncio.run(scenario())


def test_cashier_picks_a_pos_location():
    async def scenario():
        app = _app(
            locations=[
                {"location_id": "1", "location_name": "Warehouse", "pos_status": "0"},
                {"location_id": "2", "location_name": "Downtown Store", "pos_status": "1"},
                {"location_id": "3", "location_name": "Mall Kiosk", "pos_status": "1"},
            ]
        )
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            assert isinstance(app.screen, ChoiceModal)

            await pilot.press("down", "enter")
            await pilot.pause()
            assert app.location_id == "3"
            assert app.checkout.location_id == "3"
            assert app.sub_title == "Mall Kiosk"

    asyncio.run(scenario())


def test_single_pos_location_is_selected_automatically():
    async def scenario():
        app = _app(locations=[{"location_id": "2", "location_name": "Downtown Store", "pos_status": "1"}])
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            assert not isinstance(app.screen, ChoiceModal)
            assert app.location_id == "2"

    asyncio.run(scenario())


def test_explicit_location_skips_the_picker():
    async def scenario():
        responses = {
            "products_with_variants": PRODUCTS,
            "locations": [{"location_id": "2", "location_name": "Downtown Store", "pos_status": "1"}],
        }
        app = PosApp(client=StubClient(responses), location_id="9", receipt_printer=None)
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            assert app.location_id == "9"

    asyncio.run(scenario())


def test_malformed_tables_reply_is_reported():
    async def scenario():
        app = _app(tables={"message": "Unauthorized"}, stewards={"data": []})
        async with app.run_test() as pilot:
            await _loaded(app, pilot)
            orders_before = len(app.registry)

            await pilot.press("ctrl+n")
            await pilot.pause()
            assert isinstance(app.screen, ChoiceModal)
            dine_in = [value for _, value in app.screen.options].index(OrderType.DINE_IN)
            await pilot.press(*["down"] * dine_in, "enter")
            await pilot.pause()

            assert not isinstance(app.screen, ChoiceModal)
            assert "Could not fetch POS data" in app.system_status
            assert len(app.registry) == orders_before

    asyncio.run(scenario())
