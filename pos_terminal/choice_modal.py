"""List picker modal used for order types, tables, stewards, customers and held orders."""

from __future__ import annotations

from typing import Any, Sequence

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static


class ChoiceModal(ModalScreen[Any]):
    """Centered modal listing labelled options; dismisses with the chosen value or None."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("ctrl+c", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("enter", "choose", "Choose"),
    ]

    CSS = """
    ChoiceModal {
        align: center middle;
        background: $background 60%;
    }

    #choice-dialog {
        width: 64;
        height: auto;
        max-height: 80%;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #choice-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #choice-body {
        margin-bottom: 1;
        color: white;
    }

    #choice-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(
        self,
        title: str,
        options: Sequence[tuple[str | Text, Any]],
        empty_text: str = "(nothing to choose)",
    ) -> None:
        super().__init__()
        self.title_text = title
        self.options = list(options)
        self.empty_text = empty_text

    def compose(self) -> ComposeResult:
        with Container(id="choice-dialog"):
            yield Static(self.title_text, id="choice-title")
            yield Static(id="choice-body")
            yield Static("J/K/↑/↓ move, Enter choose, Esc/q/Ctrl+C close", id="choice-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def action_close(self) -> None:
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        if not self.options:
            return
        self.cursor_index = (self.cursor_index + delta) % len(self.options)
        self._refresh_content()

    def action_choose(self) -> None:
        if not self.options:
            self.dismiss(None)
            return
        self.dismiss(self.options[self.cursor_index][1])

    def _refresh_content(self) -> None:
        body = self.query_one("#choice-body", Static)
        if not self.options:
            body.update(self.empty_text)
            return

        content = Text(style="white")
        for idx, (label, _) in enumerate(self.options):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            content.append(pointer)
            if isinstance(label, Text):
                content.append_text(label)
            else:
                content.append(label, style="bold white" if idx == self.cursor_index else "white")
        body.update(content)
