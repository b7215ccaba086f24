"""Main Textual app class."""

from __future__ import annotations

import logging
from typing import Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Header, Static

from grillstand.billing import (
    PayLine,
    close_free_account,
    on_the_house_split,
    pay_full,
    pay_partial,
    payment_for_method,
    selection_total,
    split_eligible_items,
)
from grillstand.config import SYNC_AFTER_ENQUEUE_SECONDS, SYNC_INTERVAL_SECONDS
from grillstand.constant import COMPLIMENTARY_SIDE_ID, TABLE_LAYOUT
from grillstand.daily_close import close_summary, perform_daily_close
from grillstand.data import find_menu_item, food_items, unit_label
from grillstand.dispatch import BoardEntry, can_send, confirm_dispatch, dispatch_board, send_to_dispatch
from grillstand.errors import GrillError, ValidationError
from grillstand.ledger import LedgerStore, account_total
from grillstand.models import Account, Category, MenuItem, Payment, PaymentMethod, Unit
from grillstand.persistence import SqliteStatePort
from grillstand.printer import check_printer_dependencies, print_kitchen_ticket
from grillstand.prompt_modal import ChoiceModal, PromptModal
from grillstand.rendering import (
    format_batch_header,
    format_bill_line,
    format_board_entry,
    format_close_summary,
    format_currency,
    format_menu_item,
    format_sync_status,
)
from grillstand.split_modal import SplitModal
from grillstand.stock import remaining_stock, sold_stock
from grillstand.stock_modal import StockModal
from grillstand.sync import Outbox

logger = logging.getLogger(__name__)

_REMAINDER_METHODS = (PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.QR)
_METHOD_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.CARD: "Card",
    PaymentMethod.QR: "QR",
    PaymentMethod.ON_THE_HOUSE: "On the house",
}


class GrillStandApp(App):
    """A Textual till for the grill stand: tables, bills, kitchen board, payments."""

    TITLE = "Grill Stand"
    SUB_TITLE = "Tables / Kitchen / Till"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #tables-pane {
        width: 1fr;
        border: round $primary;
        padding: 0 1;
    }

    #bill-pane {
        width: 2fr;
        border: round $primary;
        padding: 0 1;
    }

    #side-pane {
        width: 2fr;
    }

    #search-pane {
        height: 1fr;
        border: round $secondary;
        padding: 0 1;
    }

    #board-pane {
        height: 1fr;
        border: round $warning;
        padding: 0 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        height: 4;
    }

    #results, #board-list, #bill, #tables-list {
        height: 1fr;
    }

    #stock-summary {
        height: auto;
        border-top: solid $surface;
    }

    #status-bar {
        height: 1;
        padding: 0 1;
        background: $panel;
    }

    .pane-title {
        text-style: bold;
    }
    """

    input_state = reactive("normal")
    search_query = reactive("")
    selected_index = reactive(0)
    table_index = reactive(0)
    account_index = reactive(0)
    board_index = reactive(0)

    BINDINGS = [
        ("tab", "cycle_accounts(1)", "Next account"),
        ("shift+tab", "cycle_accounts(-1)", "Previous account"),
        ("up", "cycle_results(-1)", "Previous result"),
        ("down", "cycle_results(1)", "Next result"),
        ("enter", "register_selected", "Add item"),
        ("backspace", "backspace_query", "Delete query char"),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, port: SqliteStatePort | None = None) -> None:
        super().__init__()
        self.port = port or SqliteStatePort()
        self.store = LedgerStore()
        self.outbox = Outbox(self.store)
        self.system_status = ""
        self.printer_ready = False
        logger.debug("app_init")

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="tables-pane"):
                yield Static("Tables", classes="pane-title")
                yield Static(id="tables-list")
                yield Static(id="stock-summary")
            with Vertical(id="bill-pane"):
                yield Static("Bill", classes="pane-title")
                yield Static(id="bill")
            with Vertical(id="side-pane"):
                with Vertical(id="search-pane"):
                    yield Static(id="search-bar")
                    yield Static(id="results")
                with Vertical(id="board-pane"):
                    yield Static("Pickup board", classes="pane-title")
                    yield Static(id="board-list")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        self.port.bootstrap_schema()
        self.store = LedgerStore.load(self.port)
        self.store.on_enqueue = self._schedule_sync
        self.outbox = Outbox(self.store)
        self.printer_ready, msg = check_printer_dependencies()
        self.system_status = msg
        logger.info("on_mount printer_status=%r queued=%d", msg, len(self.store.sync_queue))
        self.set_interval(SYNC_INTERVAL_SECONDS, self._trigger_sync)
        self.set_interval(1.0, self._tick)
        self.set_timer(1.0, self.action_fetch_menu)
        self._trigger_sync()
        self._refresh_all()

    # -- keyboard ----------------------------------------------------------

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, ModalScreen):
            return

        logger.debug(
            "on_key key=%r char=%r printable=%s state=%r", event.key, event.character, event.is_printable, self.input_state
        )

        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        if self.input_state == "active":
            self.search_query += event.character
            self.selected_index = 0
            self._refresh_search()
            event.stop()
            return

        if not event.character.isalnum():
            return
        handler = self._normal_key_handlers().get(event.character.lower())
        if handler is None:
            return
        handler()
        event.stop()

    def _normal_key_handlers(self) -> dict[str, Callable[[], None]]:
        return {
            "j": lambda: self._move_table(1),
            "k": lambda: self._move_table(-1),
            "o": self._prompt_open_account,
            "i": self._enter_search,
            "u": lambda: self._attempt(self._undo_last),
            "s": lambda: self._attempt(self._send_to_kitchen),
            "l": lambda: self._move_board(1),
            "x": lambda: self._attempt(self._confirm_board_entry),
            "c": lambda: self._confirm_full_payment(PaymentMethod.CASH),
            "v": lambda: self._confirm_full_payment(PaymentMethod.CARD),
            "r": lambda: self._confirm_full_payment(PaymentMethod.QR),
            "h": self._prompt_on_the_house,
            "p": self._open_split,
            "e": self._open_stock,
            "z": self._prompt_daily_close,
            "a": self._prompt_reset,
            "y": self._trigger_sync,
            "m": self.action_fetch_menu,
            "g": self._open_menu_admin,
        }

    def action_cancel_active_mode(self) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if self.input_state == "normal":
            return

        self.input_state = "normal"
        self.search_query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_accounts(self, delta: int) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if self.input_state == "active":
            self.action_cycle_results(delta)
            return
        accounts = self._current_accounts()
        if not accounts:
            return
        self.account_index = (self.account_index + delta) % len(accounts)
        self._refresh_bill()

    def action_cycle_results(self, delta: int) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if self.input_state != "active":
            return

        results = self._filtered_results()
        if not results:
            self.selected_index = 0
            self._refresh_results(results)
            return
        self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_results(results)

    def action_backspace_query(self) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if self.input_state != "active" or not self.search_query:
            return
        self.search_query = self.search_query[:-1]
        self.selected_index = 0
        self._refresh_search()

    def action_register_selected(self) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if self.input_state != "active":
            return

        results = self._filtered_results()
        if not results:
            return
        item = results[self.selected_index]
        if item.unit is Unit.WEIGHT:
            self._prompt_weighed_portion(item)
            return
        self._attempt(lambda: self._add_piece_item(item))

    def action_fetch_menu(self) -> None:
        self.run_worker(self._refresh_menu(), group="menu", exclusive=True)

    # -- helpers -----------------------------------------------------------

    def _attempt(self, action: Callable[[], str | None]) -> None:
        """Run one ledger action and report its outcome on the status line."""
        try:
            message = action()
        except GrillError as exc:
            self.system_status = str(exc)
            logger.info("action_rejected error=%r", exc)
        else:
            if message:
                self.system_status = message
        self._refresh_all()

    def _current_table(self) -> tuple[str, str]:
        return TABLE_LAYOUT[self.table_index]

    def _table_label(self, table_id: str) -> str:
        for candidate, label in TABLE_LAYOUT:
            if candidate == table_id:
                return label
        return table_id

    def _current_accounts(self) -> list[Account]:
        table_id, _ = self._current_table()
        return self.store.accounts_for_table(table_id)

    def _current_account(self) -> Account | None:
        accounts = self._current_accounts()
        if not accounts:
            return None
        if self.account_index >= len(accounts):
            self.account_index = len(accounts) - 1
        return accounts[self.account_index]

    def _require_account(self) -> Account:
        account = self._current_account()
        if account is None:
            raise ValidationError("No open account on this table (o to open one)")
        return account

    def _require_stock(self) -> None:
        if not self.store.initial_stock_complete():
            raise ValidationError("Set the opening stock first (e)")

    def _move_table(self, delta: int) -> None:
        self.table_index = (self.table_index + delta) % len(TABLE_LAYOUT)
        self.account_index = 0
        self._refresh_all()

    def _move_board(self, delta: int) -> None:
        board = dispatch_board(self.store)
        if not board:
            self.board_index = 0
            return
        self.board_index = (self.board_index + delta) % len(board)
        self._refresh_board()

    def _filtered_results(self) -> list[MenuItem]:
        if not self.search_query:
            return list(self.store.menu)
        q = self.search_query.lower()
        return [item for item in self.store.menu if q in item.name.lower()]

    # -- order entry -------------------------------------------------------

    def _prompt_open_account(self) -> None:
        try:
            self._require_stock()
        except ValidationError as exc:
            self.system_status = str(exc)
            self._refresh_status()
            return
        table_id, label = self._current_table()

        def opened(name: str | None) -> None:
            if not name:
                return

            def run() -> str:
                self.store.open_account(table_id, name)
                self.account_index = len(self.store.accounts_for_table(table_id)) - 1
                return f"Opened account {name} at {label}"

            self._attempt(run)

        self.push_screen(PromptModal("New account", f"Guest name at {label}"), opened)

    def _enter_search(self) -> None:
        try:
            self._require_stock()
            self._require_account()
        except ValidationError as exc:
            self.system_status = str(exc)
            self._refresh_status()
            return
        self.input_state = "active"
        self.search_query = ""
        self.selected_index = 0
        self._refresh_search()

    def _add_piece_item(self, item: MenuItem) -> str:
        table_id, _ = self._current_table()
        account = self._require_account()
        line = self.store.add_line_item(table_id, account.account_id, item.item_id)
        return f"Added {line.name}"

    def _prompt_weighed_portion(self, item: MenuItem) -> None:
        table_id, _ = self._current_table()
        side = find_menu_item(self.store.menu, COMPLIMENTARY_SIDE_ID)

        def add(grams: int, pieces: int, side_count: int) -> None:
            def run() -> str:
                account = self._require_account()
                lines = self.store.add_weighed_portion(
                    table_id, account.account_id, item.item_id, grams, pieces=pieces, side_count=side_count
                )
                return "Added " + ", ".join(line.name for line in lines)

            self._attempt(run)

        def got_pieces(grams: int, raw: str | None) -> None:
            if raw is None:
                return
            pieces = int(raw)
            if side is None or not item.is_food:
                add(grams, pieces, 0)
                return
            self.push_screen(
                PromptModal(
                    "Free side",
                    f"Free {side.name} with this portion?",
                    digits_only=True,
                    initial=str(pieces),
                    allow_empty=True,
                    maximum=20,
                ),
                lambda count: None if count is None else add(grams, pieces, int(count or 0)),
            )

        def got_grams(raw: str | None) -> None:
            if raw is None:
                return
            grams = int(raw)
            self.push_screen(
                PromptModal(
                    "Pieces",
                    f"How many pieces in {grams} g of {item.name}?",
                    digits_only=True,
                    initial="1",
                    minimum=1,
                    maximum=50,
                ),
                lambda pieces: got_pieces(grams, pieces),
            )

        self.push_screen(
            PromptModal("Weight", f"{item.name}: grams on the scale", digits_only=True, minimum=1, maximum=10000),
            got_grams,
        )

    def _undo_last(self) -> str:
        table_id, _ = self._current_table()
        account = self._require_account()
        removed = self.store.undo_last_item(table_id, account.account_id)
        if removed is None:
            return "Nothing to undo"
        return f"Removed {removed.name}"

    # -- kitchen -----------------------------------------------------------

    def _send_to_kitchen(self) -> str:
        table_id, label = self._current_table()
        account = self._require_account()
        batch = send_to_dispatch(self.store, table_id, account.account_id)
        if not self.printer_ready:
            return f"Sent to the grill: {account.customer_name} (printer unavailable)"
        try:
            print_kitchen_ticket(label, account.customer_name, batch.items, batch.ready_at)
        except Exception as exc:
            logger.warning("ticket_print_failed batch=%s error=%r", batch.batch_id, exc)
            return f"Sent to the grill but print failed: {exc}"
        return f"Sent to the grill + printed: {account.customer_name}"

    def _confirm_board_entry(self) -> str:
        board = dispatch_board(self.store)
        if not board:
            return "Pickup board is empty"
        entry = board[min(self.board_index, len(board) - 1)]
        confirm_dispatch(self.store, entry.table_id, entry.account_id, entry.batch_id)
        return f"Served {entry.customer_name} ({self._table_label(entry.table_id)})"

    # -- payments ----------------------------------------------------------

    def _confirm_full_payment(self, method: PaymentMethod) -> None:
        account = self._current_account()
        if account is None:
            self.system_status = "No open account on this table"
            self._refresh_status()
            return
        total = account_total(account)
        table_id, _ = self._current_table()
        if total < 1:
            self._confirm_close_free(table_id, account)
            return

        def chosen(choice: str | None) -> None:
            if choice != "pay":
                return
            self._attempt(lambda: self._pay_full(table_id, account.account_id, payment_for_method(method, total)))

        self.push_screen(
            ChoiceModal(
                f"Pay {account.customer_name}",
                [("pay", f"{_METHOD_LABELS[method]} {format_currency(total)}"), ("back", "Back")],
            ),
            chosen,
        )

    def _confirm_close_free(self, table_id: str, account: Account) -> None:
        def chosen(choice: str | None) -> None:
            if choice != "close":
                return

            def run() -> str:
                close_free_account(self.store, table_id, account.account_id)
                return f"Closed {account.customer_name} (nothing to pay)"

            self._attempt(run)

        self.push_screen(
            ChoiceModal(
                f"Close {account.customer_name}",
                [("close", "Nothing to pay, close the account"), ("back", "Back")],
            ),
            chosen,
        )

    def _pay_full(self, table_id: str, account_id: str, payment: Payment) -> str:
        transaction = pay_full(self.store, table_id, account_id, payment)
        if transaction is None:
            return "Account already settled"
        return f"Paid {transaction.customer_name}: {format_currency(payment.covered)} ({payment.method.value})"

    def _prompt_on_the_house(self) -> None:
        account = self._current_account()
        if account is None:
            return
        table_id, _ = self._current_table()
        total = account_total(account)
        if total < 1:
            self._confirm_close_free(table_id, account)
            return

        def got_amount(raw: str | None) -> None:
            if raw is None:
                return
            split = on_the_house_split(account, int(raw))
            if split.remaining <= 0:
                self._attempt(lambda: self._pay_full(table_id, account.account_id, split.payment()))
                return

            def chosen(choice: str | None) -> None:
                if choice is None:
                    return
                self._attempt(
                    lambda: self._pay_full(table_id, account.account_id, split.payment(PaymentMethod(choice)))
                )

            self.push_screen(
                ChoiceModal(
                    "Pay the rest",
                    [(method.value, _METHOD_LABELS[method]) for method in _REMAINDER_METHODS],
                    f"On the house {format_currency(split.on_the_house)}, left to pay {format_currency(split.remaining)}",
                ),
                chosen,
            )

        self.push_screen(
            PromptModal(
                "On the house",
                f"Amount to comp out of {format_currency(total)}",
                digits_only=True,
                minimum=0,
                maximum=total,
            ),
            got_amount,
        )

    def _open_split(self) -> None:
        account = self._current_account()
        if account is None:
            return
        table_id, _ = self._current_table()
        rows = split_eligible_items(account)
        if not any(row.selectable for row in rows):
            self.system_status = "Nothing on this bill can be paid separately"
            self._refresh_status()
            return

        def got_lines(pay_lines: list[PayLine] | None) -> None:
            if not pay_lines:
                return
            amount = selection_total(pay_lines)

            def chosen(choice: str | None) -> None:
                if choice is None:
                    return
                method = PaymentMethod(choice)
                if method is PaymentMethod.ON_THE_HOUSE:
                    method = PaymentMethod.ON_THE_HOUSE_PARTIAL

                def run() -> str:
                    result = pay_partial(
                        self.store, table_id, account.account_id, pay_lines, payment_for_method(method, amount)
                    )
                    if result is None:
                        return "Account already settled"
                    if result.closed:
                        return f"Paid {format_currency(amount)}; account closed"
                    return f"Paid {format_currency(amount)}; {format_currency(result.remaining_total)} left"

                self._attempt(run)

            self.push_screen(
                ChoiceModal(f"Pay {format_currency(amount)}", [(m.value, label) for m, label in _METHOD_LABELS.items()]),
                chosen,
            )

        self.push_screen(SplitModal(account.customer_name, rows), got_lines)

    # -- stock, close, reset -----------------------------------------------

    def _open_stock(self) -> None:
        def saved(values: dict[str, str] | None) -> None:
            if values is None:
                return

            def run() -> str:
                self.store.set_initial_stock(values)
                return "Opening stock saved"

            self._attempt(run)

        self.push_screen(StockModal(food_items(self.store.menu), self.store.initial_stock), saved)

    def _prompt_daily_close(self) -> None:
        if not self.store.initial_stock_complete():
            self.system_status = "Set the opening stock first (e)"
            self._refresh_status()
            return
        if self.store.has_open_tables():
            self.system_status = "Close all open tables before the daily close"
            self._refresh_status()
            return

        message = format_close_summary(close_summary(self.store), food_items(self.store.menu))

        def chosen(choice: str | None) -> None:
            if choice != "close":
                return

            def run() -> str:
                perform_daily_close(self.store)
                return "Day closed and queued for sync"

            self._attempt(run)

        self.push_screen(ChoiceModal("Daily close", [("close", "Close the day"), ("back", "Back")], message), chosen)

    def _prompt_reset(self) -> None:
        def chosen(choice: str | None) -> None:
            if choice not in {"day", "full"}:
                return

            def run() -> str:
                self.store.reset_day(full=choice == "full")
                self.table_index = 0
                self.account_index = 0
                return "Local data reset"

            self._attempt(run)

        self.push_screen(
            ChoiceModal(
                "Reset local data?",
                [("back", "Back"), ("day", "Reset sales, tables and stock (keep menu)"), ("full", "Reset everything")],
            ),
            chosen,
        )

    # -- menu admin --------------------------------------------------------

    def _open_menu_admin(self) -> None:
        options = [(item.item_id, format_menu_item(item).plain) for item in self.store.menu]
        options.append(("__add__", "+ Add item"))

        def chosen(choice: str | None) -> None:
            if choice is None:
                return
            if choice == "__add__":
                self._prompt_menu_item(None)
                return
            self._prompt_menu_action(choice)

        self.push_screen(ChoiceModal("Menu", options), chosen)

    def _prompt_menu_action(self, item_id: str) -> None:
        item = find_menu_item(self.store.menu, item_id)
        if item is None:
            return

        def chosen(choice: str | None) -> None:
            if choice == "edit":
                self._prompt_menu_item(item)
            elif choice == "delete":
                self._attempt(lambda: f"Deleted {self.store.delete_menu_item(item.item_id).name}")

        self.push_screen(ChoiceModal(item.name, [("edit", "Edit"), ("delete", "Delete"), ("back", "Back")]), chosen)

    def _prompt_menu_item(self, current: MenuItem | None) -> None:
        """Ask for name, price, unit and category, then add or update."""

        def save(name: str, price: int, unit: Unit, category: Category) -> None:
            def run() -> str:
                if current is None:
                    added = self.store.add_menu_item(name, price, unit, category)
                    return f"Added {added.name} to the menu"
                updated = self.store.update_menu_item(current.item_id, name, price, unit, category)
                return f"Updated {updated.name}"

            self._attempt(run)

        def got_unit(name: str, price: int, unit_raw: str | None) -> None:
            if unit_raw is None:
                return
            self.push_screen(
                ChoiceModal(
                    "Category",
                    [(Category.FOOD.value, "Food (counts toward stock)"), (Category.OTHER.value, "Other")],
                ),
                lambda category: None if category is None else save(name, price, Unit(unit_raw), Category(category)),
            )

        def got_price(name: str, raw: str | None) -> None:
            if raw is None:
                return
            self.push_screen(
                ChoiceModal("Unit", [(Unit.PIECE.value, "Price per piece"), (Unit.WEIGHT.value, "Price per 100 g")]),
                lambda unit_raw: got_unit(name, int(raw), unit_raw),
            )

        def got_name(name: str | None) -> None:
            if name is None:
                return
            initial = str(current.price) if current else ""
            self.push_screen(
                PromptModal(
                    "Price", f"Price of {name} in Kč", digits_only=True, initial=initial, minimum=0, maximum=100000
                ),
                lambda raw: got_price(name, raw),
            )

        self.push_screen(PromptModal("Menu item", "Name", initial=current.name if current else ""), got_name)

    # -- sync --------------------------------------------------------------

    def _schedule_sync(self) -> None:
        self._refresh_status()
        self.set_timer(SYNC_AFTER_ENQUEUE_SECONDS, self._trigger_sync)

    def _trigger_sync(self) -> None:
        self.run_worker(self._drain_outbox(), group="sync")

    async def _drain_outbox(self) -> None:
        try:
            delivered = await self.outbox.drain()
        except GrillError as exc:
            self.system_status = str(exc)
            logger.error("sync_drain_failed error=%r", exc)
        else:
            if self.store.sync_error:
                self.system_status = "Sync failed; will retry (y to retry now)"
            elif delivered:
                self.system_status = f"Synced {delivered} record(s)"
        self._refresh_status()

    async def _refresh_menu(self) -> None:
        try:
            menu = await self.outbox.refresh_menu(strict=True)
        except GrillError as exc:
            self.system_status = f"Menu not updated: {exc}"
        else:
            self.system_status = f"Menu updated ({len(menu or [])} items)"
        self._refresh_all()

    def _tick(self) -> None:
        self._refresh_board()
        self._refresh_status()

    # -- rendering ---------------------------------------------------------

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

    def _refresh_all(self) -> None:
        self._refresh_tables()
        self._refresh_bill()
        self._refresh_search()
        self._refresh_board()
        self._refresh_status()

    def _refresh_tables(self) -> None:
        try:
            widget = self.query_one("#tables-list", Static)
            stock_widget = self.query_one("#stock-summary", Static)
        except NoMatches:
            return

        lines = Text()
        for idx, (table_id, label) in enumerate(TABLE_LAYOUT):
            if idx > 0:
                lines.append("\n")
            accounts = self.store.accounts_for_table(table_id)
            pointer = "➤ " if idx == self.table_index else "  "
            style = "bold" if accounts else "dim"
            lines.append(f"{pointer}{label}", style=style)
            if accounts:
                total = sum(account_total(account) for account in accounts)
                lines.append(f"  {len(accounts)}× {format_currency(total)}", style="cyan")
        widget.update(lines)

        stock = Text()
        if not self.store.initial_stock_complete():
            stock.append("Opening stock not set (e)", style="bold yellow")
        else:
            remaining = remaining_stock(self.store)
            sold = sold_stock(self.store)
            for idx, item in enumerate(food_items(self.store.menu)):
                if idx > 0:
                    stock.append("\n")
                used = sold[item.item_id].grams if item.unit is Unit.WEIGHT else sold[item.item_id].pieces
                unit = unit_label(item.unit)
                stock.append(f"{item.name}: ")
                stock.append(f"{remaining[item.item_id]} {unit}", style="bold")
                stock.append(f" left, {used} {unit} sold", style="dim")
        stock_widget.update(stock)

    def _refresh_bill(self) -> None:
        try:
            widget = self.query_one("#bill", Static)
        except NoMatches:
            return

        _, label = self._current_table()
        accounts = self._current_accounts()
        if not accounts:
            widget.update(f"{label}: no open accounts\n\no open account")
            return

        account = self._current_account()
        lines = Text()
        for idx, candidate in enumerate(accounts):
            if idx > 0:
                lines.append("  ")
            style = "bold reverse" if candidate is account else ""
            lines.append(f" {candidate.customer_name} ", style=style)
        lines.append("\n")

        assert account is not None
        for batch in account.batches:
            lines.append("\n")
            lines.append_text(format_batch_header(batch))
            for item in batch.items:
                lines.append("\n  ")
                if item.item_id == account.last_added_item_id:
                    lines.append("• ", style="yellow")
                lines.append_text(format_bill_line(item))
        lines.append(f"\n\nTotal {format_currency(account_total(account))}", style="bold")
        if can_send(account):
            lines.append("\ns send to grill", style="dim")
        widget.update(lines)

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        if self.input_state == "normal":
            self._refresh_results([])
            return
        self._refresh_results(self._filtered_results())

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            bar.update(
                "j/k table  Tab account  o open  i add  u undo  s send\n"
                "l/x board  c/v/r pay  h comp  p split  e stock  z close"
            )
            return

        text = Text()
        text.append(" ADD ", style="bold #0b1f0f on #5fbf72")
        text.append(f" {self.search_query}")
        text.append("\nEnter add, Tab/↑/↓ move, Ctrl+C done", style="dim")
        bar.update(text)

    def _refresh_results(self, results: list[MenuItem]) -> None:
        try:
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            results_widget.update("")
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
            lines.append_text(format_menu_item(results[idx]))
        if end < len(results):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)

    def _refresh_board(self) -> None:
        try:
            widget = self.query_one("#board-list", Static)
        except NoMatches:
            return

        board: list[BoardEntry] = dispatch_board(self.store)
        if not board:
            self.board_index = 0
            widget.update("(nothing waiting)")
            return
        if self.board_index >= len(board):
            self.board_index = len(board) - 1

        lines = Text()
        for idx, entry in enumerate(board):
            if idx > 0:
                lines.append("\n")
            lines.append("➤ " if idx == self.board_index else "  ")
            lines.append_text(format_board_entry(entry, self._table_label(entry.table_id)))
        widget.update(lines)

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        text = Text()
        text.append_text(format_sync_status(self.outbox.status(), self.outbox.pending))
        text.append("  ")
        text.append(f"Open {format_currency(self.store.open_tables_total())}", style="cyan")
        text.append(f"  Revenue {format_currency(self.store.totals.revenue)}", style="green")
        text.append(f"  {self.system_status or 'Ready'}")
        bar.update(text)
