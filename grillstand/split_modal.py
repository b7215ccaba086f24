"""Split-bill modal: pick which bill rows a guest pays for."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from grillstand.billing import PayLine, SplitLine, aggregate_split_selection, selection_total
from grillstand.errors import ValidationError
from grillstand.rendering import format_currency


class SplitModal(ModalScreen[list[PayLine] | None]):
    """Centered modal to toggle bill rows; Enter returns the pay request."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("ctrl+c", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("space", "toggle_current", "Toggle"),
        ("x", "toggle_current", "Toggle"),
        ("enter", "confirm", "Pay selected"),
    ]

    CSS = """
    SplitModal {
        align: center middle;
        background: $background 60%;
    }

    #split-dialog {
        width: 64;
        height: auto;
        max-height: 90%;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #split-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #split-body {
        margin-bottom: 1;
        color: white;
    }

    #split-total {
        text-style: bold;
        color: white;
    }

    #split-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, customer_name: str, rows: list[SplitLine]) -> None:
        super().__init__()
        self.customer_name = customer_name
        self.rows = rows
        self.selected: set[str] = set()
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="split-dialog"):
            yield Static(f"Split bill: {self.customer_name}", id="split-title")
            yield Static(id="split-body")
            yield Static(id="split-total")
            yield Static("J/K/↑/↓ move, Space/x toggle, Enter pay, Esc/q/Ctrl+C close", id="split-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def action_close(self) -> None:
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        if not self.rows:
            return
        self.cursor_index = (self.cursor_index + delta) % len(self.rows)
        self._refresh_content()

    def action_toggle_current(self) -> None:
        if not self.rows:
            return
        row = self.rows[self.cursor_index]
        if not row.selectable:
            self.error = f"{row.name} is free"
            self._refresh_content()
            return
        if row.split_id in self.selected:
            self.selected.remove(row.split_id)
        else:
            self.selected.add(row.split_id)
        self.error = ""
        self._refresh_content()

    def action_confirm(self) -> None:
        if not self.selected:
            self.error = "Nothing selected"
            self._refresh_content()
            return
        try:
            pay_lines = aggregate_split_selection(self.rows, self.selected)
        except ValidationError as exc:
            self.error = str(exc)
            self._refresh_content()
            return
        self.dismiss(pay_lines)

    def _selected_total(self) -> int:
        return selection_total(aggregate_split_selection(self.rows, self.selected))

    def _refresh_content(self) -> None:
        body = self.query_one("#split-body", Static)
        total = self.query_one("#split-total", Static)

        content = Text(style="white")
        for idx, row in enumerate(self.rows):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            if not row.selectable:
                content.append(f"{pointer}[-] {row.name}  free", style="dim")
                continue
            is_checked = row.split_id in self.selected
            checked = "[x]" if is_checked else "[ ]"
            style = "bold white" if is_checked else "white"
            content.append(f"{pointer}{checked} {row.name}  {format_currency(row.price)}", style=style)
        body.update(content)

        summary = Text(f"Selected: {format_currency(self._selected_total())}")
        if self.error:
            summary.append(f"\n{self.error}", style="#ffb3b3")
        total.update(summary)
