"""Add-to-cart modal: pick a stock batch, quantity and line discount."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable

from rich.text import Text
from textual import work
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static
from textual.worker import get_current_worker

from pos_terminal.amount_modal import append_amount_char, parse_amount_input
from pos_terminal.errors import PosError, StockFetchError
from pos_terminal.models import ProductVariant, StockBatch, StockSnapshot
from pos_terminal.pricing import format_money
from pos_terminal.rendering import format_batch
from pos_terminal.stock import StockBatchResolver, default_batch

AddCallback = Callable[[ProductVariant, Decimal, Decimal, StockBatch], None]


class AddToCartModal(ModalScreen[bool]):
    """Centered modal that resolves stock once, then collects quantity and discount."""

    CSS = """
    AddToCartModal {
        align: center middle;
        background: $background 60%;
    }

    #add-dialog {
        width: 72;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #add-title {
        text-style: bold;
        color: white;
    }

    #add-sku {
        color: #dddddd;
        margin-bottom: 1;
    }

    #add-body {
        color: white;
        margin-bottom: 1;
    }

    #add-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #add-help {
        color: #dddddd;
    }
    """

    _QUANTITY_FIELD = "quantity"
    _DISCOUNT_FIELD = "discount"

    def __init__(
        self,
        product: ProductVariant,
        resolver: StockBatchResolver,
        location_id: str,
        on_add: AddCallback,
    ) -> None:
        super().__init__()
        self.product = product
        self.resolver = resolver
        self.location_id = location_id
        self.on_add = on_add
        self.snapshot: StockSnapshot | None = None
        self.batch_index = 0
        self.loading = True
        self.quantity = "1"
        self.discount = "0"
        self.field = self._QUANTITY_FIELD
        self._fresh_field = True
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="add-dialog"):
            yield Static(self.product.name, id="add-title")
            yield Static(self.product.sku or "No SKU", id="add-sku")
            yield Static(id="add-body")
            yield Static(id="add-error")
            yield Static(
                "↑/↓ batch. Tab switch field. Digits/'.' edit. Enter add. Esc/q/Ctrl+C close.",
                id="add-help",
            )

    def on_mount(self) -> None:
        self._refresh_content()
        self._load_stock()

    @work(thread=True, exclusive=True)
    def _load_stock(self) -> None:
        worker = get_current_worker()
        try:
            snapshot = self.resolver.resolve(self.product, self.location_id)
        except StockFetchError as exc:
            if not worker.is_cancelled:
                self.app.call_from_thread(self._stock_failed, str(exc))
            return
        # A response arriving after the dialog closed is dropped.
        if not worker.is_cancelled:
            self.app.call_from_thread(self._stock_loaded, snapshot)

    def _stock_loaded(self, snapshot: StockSnapshot) -> None:
        self.loading = False
        self.snapshot = snapshot
        self.batch_index = 0
        if default_batch(snapshot) is None:
            self.error = "Out of stock at this location."
        self._refresh_content()

    def _stock_failed(self, message: str) -> None:
        self.loading = False
        self.snapshot = StockSnapshot(total_stock=Decimal("0"))
        self.error = message
        self._refresh_content()

    def selected_batch(self) -> StockBatch | None:
        if self.snapshot is None or not self.snapshot.batches:
            return None
        return self.snapshot.batches[self.batch_index]

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "q", "ctrl+c"}:
            self.dismiss(False)
            event.stop()
            return

        if event.key in {"up", "down"}:
            if self.snapshot is not None and self.snapshot.batches:
                delta = 1 if event.key == "down" else -1
                self.batch_index = (self.batch_index + delta) % len(self.snapshot.batches)
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        if event.key == "tab":
            self.field = self._DISCOUNT_FIELD if self.field == self._QUANTITY_FIELD else self._QUANTITY_FIELD
            self._fresh_field = True
            self._refresh_content()
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            self._set_field(self._field_value()[:-1])
            event.stop()
            return

        if event.is_printable and event.character:
            current = "" if self._fresh_field else self._field_value()
            self._set_field(append_amount_char(current, event.character))
            event.stop()

    def _field_value(self) -> str:
        return self.quantity if self.field == self._QUANTITY_FIELD else self.discount

    def _set_field(self, value: str) -> None:
        if self.field == self._QUANTITY_FIELD:
            self.quantity = value
        else:
            self.discount = value
        self._fresh_field = False
        self.error = ""
        self._refresh_content()

    def _confirm(self) -> None:
        if self.loading:
            return
        batch = self.selected_batch()
        if batch is None:
            self.error = self.error or "No stock available to add."
            self._refresh_content()
            return

        quantity = parse_amount_input(self.quantity)
        discount = parse_amount_input(self.discount) or Decimal("0")
        if quantity is None or quantity <= 0:
            self.error = "Quantity must be greater than zero."
            self._refresh_content()
            return

        try:
            self.on_add(self.product, quantity, discount, batch)
        except PosError as exc:
            self.error = str(exc)
            self._refresh_content()
            return
        self.dismiss(True)

    def _refresh_content(self) -> None:
        content = Text(style="white")
        content.append(f"Price {format_money(self.product.unit_price)}\n\n")
        if self.loading:
            content.append("Loading stock...", style="italic")
        elif self.snapshot is not None:
            content.append(f"Total stock {self.snapshot.total_stock}\n")
            for idx, batch in enumerate(self.snapshot.batches):
                pointer = "➤ " if idx == self.batch_index else "  "
                style = "bold white" if idx == self.batch_index else "white"
                content.append(f"{pointer}{format_batch(batch)}\n", style=style)

        for name, label, value in (
            (self._QUANTITY_FIELD, "Quantity", self.quantity),
            (self._DISCOUNT_FIELD, "Discount", self.discount),
        ):
            marker = "▸" if self.field == name else " "
            content.append(f"\n{marker} {label:<9}{value or ''}", style="bold white" if self.field == name else "white")

        self.query_one("#add-body", Static).update(content)
        self.query_one("#add-error", Static).update(self.error or "")
