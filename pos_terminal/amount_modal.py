"""Numeric amount entry modal screen."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static


def parse_amount_input(value: str) -> Decimal | None:
    """Parse what was typed into an amount field; None when it is not a number."""
    if not value or value == ".":
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return None


def append_amount_char(value: str, char: str, max_length: int = 10) -> str:
    """Numpad-style append: digits and at most one decimal point."""
    if char == "." and "." in value:
        return value
    if not (char.isdigit() or char == "."):
        return value
    if len(value) >= max_length:
        return value
    return value + char


class AmountModal(ModalScreen[Decimal | None]):
    """Prompt for a money amount (order discount, service charge, payment)."""

    CSS = """
    AmountModal {
        align: center middle;
        background: $background 60%;
    }

    #amount-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #amount-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #amount-prompt {
        color: white;
        margin-bottom: 1;
    }

    #amount-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #amount-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #amount-help {
        color: #dddddd;
    }
    """

    def __init__(self, title: str, prompt: str, initial: Decimal | None = None, allow_zero: bool = True) -> None:
        super().__init__()
        self.title_text = title
        self.prompt_text = prompt
        self.allow_zero = allow_zero
        self.value = "" if initial is None else f"{initial:.2f}"
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="amount-dialog"):
            yield Static(self.title_text, id="amount-title")
            yield Static(self.prompt_text, id="amount-prompt")
            yield Static(id="amount-value")
            yield Static(id="amount-error")
            yield Static("Digits and '.'. Enter confirm. Backspace delete. Esc/q/Ctrl+C cancel.", id="amount-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "q", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
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

    def _confirm(self) -> None:
        parsed = parse_amount_input(self.value)
        if parsed is None:
            self.error = "Amount is required."
            self._refresh_content()
            return

        if parsed == 0 and not self.allow_zero:
            self.error = "Amount must be greater than zero."
            self._refresh_content()
            return

        self.dismiss(parsed)

    def _refresh_content(self) -> None:
        self.query_one("#amount-value", Static).update(self.value or "")
        self.query_one("#amount-error", Static).update(self.error or "")
