"""Opening stock entry modal."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from grillstand.data import unit_label
from grillstand.models import MenuItem


class StockModal(ModalScreen[dict[str, str] | None]):
    """One digit field per food item; blank fields count as zero."""

    CSS = """
    StockModal {
        align: center middle;
        background: $background 60%;
    }

    #stock-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #stock-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #stock-body {
        color: white;
        margin-bottom: 1;
    }

    #stock-help {
        color: #dddddd;
    }
    """

    def __init__(self, items: list[MenuItem], current: dict[str, int]) -> None:
        super().__init__()
        self.items = items
        self.values = {item.item_id: str(current[item.item_id]) if item.item_id in current else "" for item in items}
        self.cursor_index = 0

    def compose(self) -> ComposeResult:
        with Container(id="stock-dialog"):
            yield Static("Opening stock", id="stock-title")
            yield Static(id="stock-body")
            yield Static("Digits only. ↑/↓/Tab move. Enter save. Esc/Ctrl+C cancel.", id="stock-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self.dismiss(dict(self.values))
            event.stop()
            return

        if event.key in {"down", "tab"} and self.items:
            self.cursor_index = (self.cursor_index + 1) % len(self.items)
        elif event.key == "up" and self.items:
            self.cursor_index = (self.cursor_index - 1) % len(self.items)
        elif event.key == "backspace" and self.items:
            item_id = self.items[self.cursor_index].item_id
            self.values[item_id] = self.values[item_id][:-1]
        elif event.is_printable and event.character and event.character.isdigit() and self.items:
            item_id = self.items[self.cursor_index].item_id
            if len(self.values[item_id]) < 6:
                self.values[item_id] += event.character
        else:
            return
        self._refresh_content()
        event.stop()

    def _refresh_content(self) -> None:
        content = Text(style="white")
        for idx, item in enumerate(self.items):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            style = "bold white" if idx == self.cursor_index else "white"
            content.append(f"{pointer}{item.name}: {self.values[item.item_id] or '_'} {unit_label(item.unit)}", style=style)
        self.query_one("#stock-body", Static).update(content)
