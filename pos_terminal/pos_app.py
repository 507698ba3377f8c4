"""Main Textual app class."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Header, Static
from textual.worker import get_current_worker

from pos_terminal import cart, settlement
from pos_terminal.add_to_cart_modal import AddToCartModal
from pos_terminal.amount_modal import AmountModal
from pos_terminal.api import ErpClient
from pos_terminal.catalog import (
    ReferenceData,
    categories,
    filter_products,
    load_collection_product_ids,
    load_reference_data,
    load_stewards,
    load_tables,
)
from pos_terminal.checkout import CheckoutCoordinator
from pos_terminal.choice_modal import ChoiceModal
from pos_terminal.config import CASHIER_ID, LOCATION_ID
from pos_terminal.errors import PosError
from pos_terminal.models import (
    WALK_IN_CUSTOMER,
    Brand,
    CheckoutMode,
    Collection,
    Customer,
    DiningTable,
    Location,
    OrderType,
    PaymentMethod,
    PendingInvoice,
    ProductVariant,
    Receipt,
    Steward,
)
from pos_terminal.payment_modal import PaymentChoice, PaymentModal
from pos_terminal.pricing import compute_totals, format_money
from pos_terminal.printer import print_kitchen_ticket, print_receipt, printer_status
from pos_terminal.registry import OrderRegistry
from pos_terminal.rendering import (
    format_cart_line,
    format_held_order,
    format_order_label,
    format_product,
    format_totals,
)
from pos_terminal.stock import StockBatchResolver

logger = logging.getLogger(__name__)


class PosApp(App):
    """A Textual point-of-sale terminal with several open orders at once."""

    TITLE = "POS Terminal"
    SUB_TITLE = "Sales"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #order-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #search-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #results {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #order-title {
        text-style: bold;
        margin-bottom: 1;
    }

    #cart-lines {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #totals {
        height: auto;
        padding: 0 1;
    }
    """

    query_text = reactive("")
    selected_index = reactive(0)
    line_selected_index = reactive(None)

    BINDINGS = [
        ("tab", "cycle_results(1)", "Next product"),
        ("down", "cycle_results(1)", "Next product"),
        ("up", "cycle_results(-1)", "Previous product"),
        ("enter", "open_add_dialog", "Add product"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("ctrl+p", "pay", "Pay", priority=True),
        Binding("ctrl+s", "save_pending", "Save pending", priority=True),
        Binding("ctrl+n", "new_order", "New order", priority=True),
        Binding("ctrl+o", "held_orders", "Held orders", priority=True),
        Binding("ctrl+t", "hold_order", "Hold", priority=True),
        Binding("ctrl+k", "kitchen_ticket", "KOT", priority=True),
        Binding("ctrl+r", "settle_pending", "Settle invoice", priority=True),
        Binding("ctrl+u", "choose_customer", "Customer", priority=True),
        Binding("ctrl+e", "edit_details", "Order details", priority=True),
        Binding("ctrl+x", "clear_order", "Clear", priority=True),
        Binding("ctrl+g", "cycle_category", "Category", priority=True),
        Binding("ctrl+b", "cycle_brand", "Brand", priority=True),
        Binding("ctrl+l", "cycle_collection", "Collection", priority=True),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        client: ErpClient | None = None,
        location_id: str | None = None,
        cashier_id: str = CASHIER_ID,
        receipt_printer: Callable[[Receipt], None] | None = print_receipt,
    ) -> None:
        super().__init__()
        self.client = client if client is not None else ErpClient()
        # Without an explicit location the cashier picks one of the POS locations.
        self.location_fixed = location_id is not None
        self.location_id = location_id or LOCATION_ID
        self.cashier_id = cashier_id
        self.registry = OrderRegistry()
        self.resolver = StockBatchResolver(self.client)
        self.checkout = CheckoutCoordinator(
            self.client,
            self.registry,
            location_id=self.location_id,
            cashier_id=cashier_id,
            print_view=receipt_printer,
        )
        self.products: list[ProductVariant] = []
        self.customers: list[Customer] = [WALK_IN_CUSTOMER]
        self.brands: list[Brand] = []
        self.collections: list[Collection] = []
        self.collection_products: dict[str, set[str]] = {}
        self.category: str | None = None
        self.brand: Brand | None = None
        self.collection: Collection | None = None
        self.system_status = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="order-pane"):
                yield Static(id="order-title")
                yield Static("(cart is empty)", id="cart-lines")
                yield Static(id="totals")
            with Vertical(id="search-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")

    def on_mount(self) -> None:
        self.system_status = "Loading catalog..."
        self._refresh_all()
        printer_msg = printer_status()
        logger.info(f"on_mount printer_status={printer_msg!r}")
        self._load_reference_data()

    @work(thread=True, exclusive=True, group="reference")
    def _load_reference_data(self) -> None:
        worker = get_current_worker()
        try:
            data = load_reference_data(self.client)
        except PosError as exc:
            if not worker.is_cancelled:
                self.call_from_thread(self._reference_failed, str(exc))
            return
        if not worker.is_cancelled:
            self.call_from_thread(self._reference_loaded, data)

    def _reference_failed(self, message: str) -> None:
        self.products = []
        self._notify_error(f"Could not fetch data from the server: {message}")

    def _reference_loaded(self, data: ReferenceData) -> None:
        self.products = data.products
        self.customers = data.customers
        self.brands = data.brands
        self.collections = data.collections
        self.system_status = f"{len(self.products)} products ready"
        self._refresh_all()
        if self.location_fixed or not data.locations:
            return
        if len(data.locations) == 1:
            self._set_location(data.locations[0])
            return
        options = [(location.name, location) for location in data.locations]
        self.push_screen(ChoiceModal("Select POS Location", options), self._set_location)

    def _set_location(self, location: Location | None) -> None:
        if location is None:
            return
        self.location_id = location.location_id
        self.checkout.location_id = location.location_id
        self.sub_title = location.name
        logger.info(f"location_selected id={location.location_id} name={location.name!r}")
        self.system_status = f"{len(self.products)} products ready at {location.name}"
        self._refresh_search()

    # -- keyboard ---------------------------------------------------------

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        # Open dialogs own the keyboard; app actions wait until they close.
        if isinstance(self.screen, ModalScreen) and action != "quit":
            return False
        return True

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, ModalScreen):
            return

        if event.key in {"+", "plus"} or event.character == "+":
            self._step_selected_line(Decimal("1"))
            event.stop()
            return

        if event.key in {"-", "minus"} or event.character == "-":
            self._step_selected_line(Decimal("-1"))
            event.stop()
            return

        if event.key == "pageup" or event.key == "pagedown":
            self._move_line_selection(1 if event.key == "pagedown" else -1)
            event.stop()
            return

        if event.key == "delete":
            self._remove_selected_line()
            event.stop()
            return

        if event.character == "%":
            self._prompt_amount("Order Discount", "Discount amount", cart.set_order_discount)
            event.stop()
            return

        if event.character == "$":
            self._prompt_amount("Service Charge", "Service charge amount", cart.set_service_charge)
            event.stop()
            return

        if not event.is_printable or not event.character or len(event.character) != 1:
            return
        if not (event.character.isalnum() or event.character in " ."):
            return

        self.query_text += event.character
        self.selected_index = 0
        self._refresh_search()
        event.stop()

    def action_cycle_results(self, delta: int) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
            self._refresh_results(results)
            return
        self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_results(results)

    @staticmethod
    def _next_option(options: list, current: object) -> object:
        position = options.index(current) if current in options else 0
        return options[(position + 1) % len(options)]

    def _set_filter(
        self,
        category: str | None = None,
        brand: Brand | None = None,
        collection: Collection | None = None,
    ) -> None:
        """Only one sidebar filter is active at a time: category, brand or collection."""
        self.category = category
        self.brand = brand
        self.collection = collection
        self.selected_index = 0
        self.system_status = f"Filter: {self._filter_label()}"
        self._refresh_search()

    def _filter_label(self) -> str:
        if self.brand is not None:
            return f"Brand {self.brand.name}"
        if self.collection is not None:
            return f"Collection {self.collection.title}"
        if self.category is not None:
            return f"Category {self.category}"
        return "All products"

    def action_cycle_category(self) -> None:
        current = self.category if self.brand is None and self.collection is None else None
        self._set_filter(category=self._next_option([None, *categories(self.products)], current))

    def action_cycle_brand(self) -> None:
        self._set_filter(brand=self._next_option([None, *self.brands], self.brand))

    def action_cycle_collection(self) -> None:
        collection = self._next_option([None, *self.collections], self.collection)
        if collection is not None and collection.collection_id not in self.collection_products:
            try:
                product_ids = load_collection_product_ids(self.client, collection.collection_id)
            except PosError as exc:
                self._set_filter(collection=collection)
                self._notify_error(f"Could not load products for this collection: {exc}")
                return
            self.collection_products[collection.collection_id] = product_ids
        self._set_filter(collection=collection)

    def action_backspace_query(self) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if not self.query_text:
            return
        self.query_text = self.query_text[:-1]
        self.selected_index = 0
        self._refresh_search()

    # -- cart -------------------------------------------------------------

    def action_open_add_dialog(self) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        results = self._filtered_results()
        if not results:
            return
        if self.registry.current is None:
            self._notify_error("No active order. Create a new order first.")
            return
        product = results[self.selected_index]
        self.push_screen(
            AddToCartModal(product, self.resolver, self.location_id, self._add_to_current),
            lambda _added: self._refresh_orders(),
        )

    def _add_to_current(self, product: ProductVariant, quantity: Decimal, discount: Decimal, batch) -> None:
        self.registry.update_current(cart.add_item, product, quantity, discount, batch)
        logger.info(f"item_added variant={product.variant_id} batch={batch.batch_code} qty={quantity}")
        self.line_selected_index = len(self.registry.require_current().lines) - 1
        self.system_status = f"Added {quantity} x {product.name}"

    def _selected_line(self):
        order = self.registry.current
        if order is None or self.line_selected_index is None:
            return None
        if not (0 <= self.line_selected_index < len(order.lines)):
            return None
        return order.lines[self.line_selected_index]

    def _move_line_selection(self, delta: int) -> None:
        order = self.registry.current
        if order is None or not order.lines:
            return
        if self.line_selected_index is None:
            self.line_selected_index = 0 if delta > 0 else len(order.lines) - 1
        else:
            self.line_selected_index = (self.line_selected_index + delta) % len(order.lines)
        self._refresh_orders()

    def _step_selected_line(self, delta: Decimal) -> None:
        line = self._selected_line()
        if line is None:
            return
        self._apply(cart.step_quantity, line.variant.variant_id, line.batch.batch_code, delta)

    def _remove_selected_line(self) -> None:
        line = self._selected_line()
        if line is None:
            return
        self._apply(cart.remove_item, line.variant.variant_id, line.batch.batch_code)

    def _apply(self, operation, *args) -> None:
        try:
            self.registry.update_current(operation, *args)
        except PosError as exc:
            self._notify_error(str(exc))
            return
        self._refresh_orders()

    def _prompt_amount(self, title: str, prompt: str, operation) -> None:
        if self.registry.current is None:
            self._notify_error("No active order.")
            return

        def _done(amount: Decimal | None) -> None:
            if amount is not None:
                self._apply(operation, amount)

        self.push_screen(AmountModal(title, prompt), _done)

    def action_choose_customer(self) -> None:
        if self.registry.current is None:
            return
        options = [(f"{c.name}  {c.phone}".strip(), c) for c in self.customers]

        def _done(customer: Customer | None) -> None:
            if customer is not None:
                self._apply(cart.set_customer, customer)

        self.push_screen(ChoiceModal("Customer", options), _done)

    # -- orders -----------------------------------------------------------

    def action_new_order(self) -> None:
        self._choose_fulfillment(lambda order_type, table, steward: self._create_order(order_type, table, steward))

    def action_edit_details(self) -> None:
        if self.registry.current is None:
            return
        self._choose_fulfillment(
            lambda order_type, table, steward: self._apply(cart.update_details, order_type, table, steward)
        )

    def _choose_fulfillment(self, done: Callable[[OrderType, DiningTable | None, Steward | None], None]) -> None:
        """Order type, then table and steward when the order is dine-in."""
        type_options = [(order_type.value, order_type) for order_type in OrderType]

        def _type_chosen(order_type: OrderType | None) -> None:
            if order_type is None:
                return
            if order_type is not OrderType.DINE_IN:
                done(order_type, None, None)
                return
            try:
                tables = load_tables(self.client)
                stewards = load_stewards(self.client)
            except PosError as exc:
                self._notify_error(f"Could not fetch POS data: {exc}")
                return
            table_options = [
                (f"{t.name}  {'In Use' if self.registry.table_in_use(t.name) else 'Available'}", t) for t in tables
            ]
            steward_options = [(f"{s.name}  {s.role}".strip(), s) for s in stewards]

            def _table_chosen(table: DiningTable | None) -> None:
                def _steward_chosen(steward: Steward | None) -> None:
                    done(OrderType.DINE_IN, table, steward)

                self.push_screen(ChoiceModal("Select Steward", steward_options), _steward_chosen)

            self.push_screen(ChoiceModal("Set Table", table_options, "(no tables)"), _table_chosen)

        self.push_screen(ChoiceModal("Order Type", type_options), _type_chosen)

    def _create_order(self, order_type: OrderType, table: DiningTable | None, steward: Steward | None) -> None:
        order = self.registry.create_order(order_type, table, steward)
        self.line_selected_index = None
        self.system_status = f"New order {order.name}"
        self._refresh_all()

    def action_hold_order(self) -> None:
        """Park the current order locally and start a fresh one."""
        try:
            held = self.registry.hold_current()
        except PosError as exc:
            self._notify_error(str(exc))
            return
        self.registry.create_order()
        self.line_selected_index = None
        self.system_status = f"{held.name} has been put on hold"
        self._refresh_all()

    def action_held_orders(self) -> None:
        held = self.registry.held_orders()
        options = [(format_held_order(order, compute_totals(order).total), order.order_id) for order in held]

        def _done(order_id: str | None) -> None:
            if order_id is None:
                return
            try:
                order = self.registry.select_held(order_id)
            except PosError as exc:
                self._notify_error(str(exc))
                return
            self.line_selected_index = None
            self.system_status = f"Resumed {order.name}"
            self._refresh_all()

        self.push_screen(ChoiceModal("Held Orders", options, "(no held orders)"), _done)

    def action_clear_order(self) -> None:
        order = self.registry.current
        if order is None:
            return
        self.registry.clear(order.order_id)
        self.line_selected_index = None
        self.system_status = f"Cleared {order.name}"
        self._refresh_all()

    def action_kitchen_ticket(self) -> None:
        order = self.registry.current
        if order is None:
            return
        try:
            print_kitchen_ticket(order)
        except PosError as exc:
            self._notify_error(f"KOT not printed: {exc}")
            return
        self.system_status = f"KOT sent for {order.name}"
        self._refresh_search()

    # -- checkout ---------------------------------------------------------

    def action_pay(self) -> None:
        order = self.registry.current
        if order is None:
            return
        if order.is_empty:
            self._notify_error("Cart is empty")
            return
        total = compute_totals(order).total

        def _done(choice: PaymentChoice | None) -> None:
            if choice is not None:
                self._submit(order.order_id, CheckoutMode.PAY, choice.method, choice.tendered)

        self.push_screen(PaymentModal(total), _done)

    def action_save_pending(self) -> None:
        """Save the current order on the backend as a pending invoice."""
        order = self.registry.current
        if order is None:
            return
        self._submit(order.order_id, CheckoutMode.HOLD)

    def _submit(
        self,
        order_id: str,
        mode: CheckoutMode,
        method: PaymentMethod | None = None,
        tendered: Decimal | None = None,
    ) -> None:
        try:
            receipt = self.checkout.submit(order_id, mode, method, tendered)
        except PosError as exc:
            self._notify_error(f"Checkout failed: {exc}")
            return

        self.line_selected_index = None
        if mode is CheckoutMode.HOLD:
            self.system_status = f"Saved pending invoice {receipt.invoice_number}"
        elif receipt.print_error:
            self.system_status = f"Paid {receipt.invoice_number} but print failed: {receipt.print_error}"
        else:
            self.system_status = (
                f"Paid {receipt.invoice_number}  change {format_money(receipt.change_due)}"
            )
        self._refresh_all()

    def action_settle_pending(self) -> None:
        """Take a payment against one of a customer's pending invoices."""
        customer_options = [(c.name, c) for c in self.customers]

        def _customer_chosen(customer: Customer | None) -> None:
            if customer is None:
                return
            try:
                invoices = settlement.pending_invoices_for(self.client, customer.customer_id)
            except PosError as exc:
                self._notify_error(str(exc))
                return
            options = [
                (f"{inv.invoice_number}  {inv.invoice_date}  {format_money(inv.grand_total)}", inv) for inv in invoices
            ]
            self.push_screen(ChoiceModal("Pending Invoices", options, "(no pending invoices)"), _invoice_chosen)

        def _invoice_chosen(invoice: PendingInvoice | None) -> None:
            if invoice is None:
                return
            try:
                balance = settlement.fetch_balance(self.client, invoice)
            except PosError as exc:
                self._notify_error(str(exc))
                return

            def _method_chosen(method: PaymentMethod | None) -> None:
                if method is None:
                    return

                def _amount_entered(amount: Decimal | None) -> None:
                    if amount is None:
                        return
                    try:
                        settlement.settle_invoice(
                            self.client, invoice, amount, method, self.location_id, self.cashier_id
                        )
                    except PosError as exc:
                        self._notify_error(f"Error creating receipt: {exc}")
                        return
                    self.system_status = f"Payment of {format_money(amount)} recorded for {invoice.invoice_number}"
                    self._refresh_search()

                self.push_screen(
                    AmountModal(
                        f"Receipt for {invoice.invoice_number}",
                        f"Balance {format_money(balance.balance)}",
                        initial=balance.balance,
                        allow_zero=False,
                    ),
                    _amount_entered,
                )

            method_options = [(method.value, method) for method in PaymentMethod]
            self.push_screen(ChoiceModal("Payment Method", method_options), _method_chosen)

        self.push_screen(ChoiceModal("Customer", customer_options), _customer_chosen)

    # -- rendering --------------------------------------------------------

    def _notify_error(self, message: str) -> None:
        logger.warning(f"ui_error {message}")
        self.system_status = message
        self._refresh_search()

    def _filtered_results(self) -> list[ProductVariant]:
        product_ids = None
        if self.collection is not None:
            product_ids = self.collection_products.get(self.collection.collection_id, set())
        return filter_products(
            self.products,
            self.query_text,
            category=self.category,
            brand_id=self.brand.brand_id if self.brand is not None else None,
            product_ids=product_ids,
        )

    def _refresh_all(self) -> None:
        self._refresh_orders()
        self._refresh_search()

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            start = max(0, selected - rows // 2)
            start = min(start, total - rows)

        return (start, start + rows)

    def _refresh_orders(self) -> None:
        try:
            title_widget = self.query_one("#order-title", Static)
            lines_widget = self.query_one("#cart-lines", Static)
            totals_widget = self.query_one("#totals", Static)
        except NoMatches:
            return

        order = self.registry.current
        held_count = len(self.registry.held_orders())
        if order is None:
            title_widget.update(f"No active order  ({held_count} held)")
            lines_widget.update("Select a held order or create a new one to begin.")
            totals_widget.update("")
            return

        title = format_order_label(order)
        title.append(f"  {order.customer.name}  ({held_count} held)", style="dim")
        title_widget.update(title)
        totals_widget.update(format_totals(compute_totals(order)))

        if order.is_empty:
            self.line_selected_index = None
            lines_widget.update("(cart is empty)")
            return

        if self.line_selected_index is None or self.line_selected_index >= len(order.lines):
            self.line_selected_index = len(order.lines) - 1

        # Each cart line renders on two rows.
        visible_rows = max(1, self._visible_rows(lines_widget) // 2)
        start, end = self._window_bounds(len(order.lines), visible_rows, self.line_selected_index)

        content = Text()
        if start > 0:
            content.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                content.append("\n")
            pointer = "➤ " if idx == self.line_selected_index else "  "
            content.append(pointer)
            content.append(f"{idx + 1}. ")
            content.append_text(format_cart_line(order.lines[idx]))
        if end < len(order.lines):
            content.append("\n⋮", style="dim")
        lines_widget.update(content)

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        self._refresh_results(self._filtered_results())

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        text = Text()
        text.append("Search: ", style="bold")
        text.append(self.query_text or "")
        if self.category is not None or self.brand is not None or self.collection is not None:
            text.append(f"  [{self._filter_label()}]", style="italic")
        text.append(f"\n{self.system_status or 'Ready'}", style="dim")
        bar.update(text)

    def _refresh_results(self, results: list[ProductVariant]) -> None:
        try:
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if not results:
            results_widget.update("No results")
            return

        if self.selected_index >= len(results):
            self.selected_index = 0

        visible_rows = self._visible_rows(results_widget)
        start, end = self._window_bounds(len(results), visible_rows, self.selected_index)

        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == self.selected_index else "  ")
            lines.append_text(format_product(results[idx]))
        if end < len(results):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)
