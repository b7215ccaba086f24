"""Text, number and choice prompt modal screens."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

_DIALOG_CSS = """
    {name} {{
        align: center middle;
        background: $background 60%;
    }}

    #prompt-dialog {{
        width: 60;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }}

    #prompt-title {{
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }}

    #prompt-body {{
        color: white;
        margin-bottom: 1;
    }}

    #prompt-value {{
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }}

    #prompt-error {{
        color: #ffb3b3;
        margin-bottom: 1;
    }}

    #prompt-help {{
        color: #dddddd;
    }}
"""


class PromptModal(ModalScreen[str | None]):
    """Ask for one value: free text, or digits only with optional bounds."""

    CSS = _DIALOG_CSS.format(name="PromptModal")

    def __init__(
        self,
        title: str,
        prompt: str,
        digits_only: bool = False,
        initial: str = "",
        allow_empty: bool = False,
        minimum: int | None = None,
        maximum: int | None = None,
        max_length: int = 40,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.prompt = prompt
        self.digits_only = digits_only
        self.value = initial
        self.allow_empty = allow_empty
        self.minimum = minimum
        self.maximum = maximum
        self.max_length = max_length
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="prompt-dialog"):
            yield Static(self.title_text, id="prompt-title")
            yield Static(self.prompt, id="prompt-body")
            yield Static(id="prompt-value")
            yield Static(id="prompt-error")
            kind = "Digits only" if self.digits_only else "Type text"
            yield Static(f"{kind}. Enter confirm. Backspace delete. Esc/Ctrl+C cancel.", id="prompt-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
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

        if not event.is_printable or not event.character:
            return
        if self.digits_only and not event.character.isdigit():
            event.stop()
            return
        if len(self.value) < self.max_length:
            self.value += event.character
        self.error = ""
        self._refresh_content()
        event.stop()

    def _confirm(self) -> None:
        value = self.value.strip()
        if not value and not self.allow_empty:
            self.error = "A value is required."
            self._refresh_content()
            return

        if self.digits_only and value:
            parsed = int(value)
            if self.minimum is not None and parsed < self.minimum:
                self.error = f"Must be at least {self.minimum}."
                self._refresh_content()
                return
            if self.maximum is not None and parsed > self.maximum:
                self.error = f"Must be at most {self.maximum}."
                self._refresh_content()
                return

        self.dismiss(value)

    def _refresh_content(self) -> None:
        self.query_one("#prompt-value", Static).update(self.value or "")
        self.query_one("#prompt-error", Static).update(self.error or "")


class ChoiceModal(ModalScreen[str | None]):
    """Pick one of several labelled options; returns the option key."""

    CSS = _DIALOG_CSS.format(name="ChoiceModal")

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

    def __init__(self, title: str, options: list[tuple[str, str]], message: str | Text = "") -> None:
        super().__init__()
        self.title_text = title
        self.options = options
        self.message = message
        self.cursor_index = 0

    def compose(self) -> ComposeResult:
        with Container(id="prompt-dialog"):
            yield Static(self.title_text, id="prompt-title")
            yield Static(self.message, id="prompt-body")
            yield Static(id="prompt-value")
            yield Static("J/K/↑/↓ move, Enter choose, Esc/q/Ctrl+C cancel", id="prompt-help")

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
        self.dismiss(self.options[self.cursor_index][0])

    def _refresh_content(self) -> None:
        content = Text(style="white")
        for idx, (_, label) in enumerate(self.options):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            content.append(f"{pointer}{label}", style="bold white" if idx == self.cursor_index else "white")
        self.query_one("#prompt-value", Static).update(content)
