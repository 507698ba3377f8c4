"""Payment modal screen."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from pos_terminal.amount_modal import append_amount_char, parse_amount_input
from pos_terminal.models import PaymentMethod
from pos_terminal.pricing import change_due, format_money


@dataclass(frozen=True)
class PaymentChoice:
    method: PaymentMethod
    tendered: Decimal


class PaymentModal(ModalScreen[PaymentChoice | None]):
    """Simulated payment: pick a tender type and key in the amount received."""

    CSS = """
    PaymentModal {
        align: center middle;
        background: $background 60%;
    }

    #payment-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #payment-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #payment-body {
        color: white;
        margin-bottom: 1;
    }

    #payment-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #payment-help {
        color: #dddddd;
    }
    """

    METHODS = list(PaymentMethod)

    def __init__(self, total: Decimal) -> None:
        super().__init__()
        self.total = total
        self.method_index = 0
        self.value = ""
        self.error = ""

    @property
    def method(self) -> PaymentMethod:
        return self.METHODS[self.method_index]

    def compose(self) -> ComposeResult:
        with Container(id="payment-dialog"):
            yield Static("Complete Payment", id="payment-title")
            yield Static(id="payment-body")
            yield Static(id="payment-error")
            yield Static("Tab method. Digits tendered. Enter confirm. Esc/q/Ctrl+C cancel.", id="payment-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "q", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "tab":
            self.method_index = (self.method_index + 1) % len(self.METHODS)
            self.error = ""
            self._refresh_content()
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            self.value = self.value[:-1]
            self.error = ""
            self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character:
            self.value = append_amount_char(self.value, event.character)
            self.error = ""
            self._refresh_content()
            event.stop()

    def _tendered(self) -> Decimal | None:
        parsed = parse_amount_input(self.value)
        if parsed is None and self.method is not PaymentMethod.CASH:
            # Card and transfer are charged for the exact total.
            return self.total
        return parsed

    def _confirm(self) -> None:
        tendered = self._tendered()
        if tendered is None:
            self.error = "Enter the amount tendered."
            self._refresh_content()
            return
        if tendered < self.total:
            self.error = f"Tendered amount is below {format_money(self.total)}."
            self._refresh_content()
            return
        self.dismiss(PaymentChoice(method=self.method, tendered=tendered))

    def _refresh_content(self) -> None:
        content = Text(style="white")
        content.append("Total due  ")
        content.append(format_money(self.total), style="bold")
        content.append("\n\n")
        for idx, method in enumerate(self.METHODS):
            pointer = "➤ " if idx == self.method_index else "  "
            style = "bold white" if idx == self.method_index else "white"
            content.append(f"{pointer}{method.value}\n", style=style)
        content.append(f"\nTendered   {self.value or '-'}")
        tendered = self._tendered()
        if tendered is not None:
            content.append(f"\nChange     {format_money(change_due(self.total, tendered))}")
        self.query_one("#payment-body", Static).update(content)
        self.query_one("#payment-error", Static).update(self.error or "")
