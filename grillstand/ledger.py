"""Account ledger: the in-memory state tree and its order-entry mutations."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from grillstand.constant import COMPLIMENTARY_SIDE_ID
from grillstand.data import (
    complimentary_display_name,
    default_menu,
    find_menu_item,
    food_items,
    parse_menu_config,
    weight_display_name,
    weight_price,
)
from grillstand.errors import NotFoundError, ValidationError
from grillstand.models import (
    Account,
    BatchStatus,
    BillItem,
    Category,
    DispatchBatch,
    MenuItem,
    PaidAccount,
    RunningTotals,
    SyncTask,
    Unit,
    new_id,
)
from grillstand.persistence import StatePort
from grillstand.stock import migrate_legacy_items

logger = logging.getLogger(__name__)


def account_total(account: Account) -> int:
    """Sum of line totals over every batch of the account."""
    return sum(item.line_total for batch in account.batches for item in batch.items)


def _parse_tables(raw: Any) -> dict[str, list[Account]]:
    if not isinstance(raw, dict):
        raise TypeError("tables must be an object")
    tables: dict[str, list[Account]] = {}
    for table_id, accounts in raw.items():
        if not isinstance(accounts, list):
            raise TypeError(f"table {table_id!r} must hold a list")
        parsed = [Account.from_dict(account) for account in accounts]
        if parsed:
            tables[str(table_id)] = parsed
    return tables


def _parse_initial_stock(raw: Any) -> dict[str, int]:
    if not isinstance(raw, dict):
        raise TypeError("initial_stock must be an object")
    stock = {str(item_id): int(value) for item_id, value in raw.items()}
    if any(value < 0 for value in stock.values()):
        raise ValueError("initial_stock values must not be negative")
    return stock


def _parse_list(parse_one: Callable[[dict[str, Any]], Any]) -> Callable[[Any], list[Any]]:
    def parse(raw: Any) -> list[Any]:
        if not isinstance(raw, list):
            raise TypeError("expected a list")
        return [parse_one(entry) for entry in raw]

    return parse


class LedgerStore:
    """Owns the day's ledger and writes it through a persistence port.

    Every public mutation either completes and persists, or raises before
    touching state.
    """

    def __init__(self, port: StatePort | None = None, menu: list[MenuItem] | None = None) -> None:
        self.port = port
        self.totals = RunningTotals()
        self.tables: dict[str, list[Account]] = {}
        self.initial_stock: dict[str, int] = {}
        self.paid_accounts: list[PaidAccount] = []
        self.menu: list[MenuItem] = list(menu) if menu else default_menu()
        self.sync_queue: list[SyncTask] = []
        self.sync_error = False
        self.on_enqueue: Callable[[], None] | None = None

    # -- persistence -----------------------------------------------------

    @classmethod
    def load(cls, port: StatePort) -> LedgerStore:
        """Build a store from the port's snapshot, defaulting bad fields."""
        store = cls(port=port)
        try:
            snapshot = port.load()
        except ValueError as exc:
            logger.error("state unreadable, resetting error=%r", exc)
            store.reset_day(full=True)
            return store
        if snapshot is not None:
            store.restore(snapshot)
        return store

    def restore(self, snapshot: Mapping[str, Any]) -> None:
        def read(key: str, parse: Callable[[Any], Any], default: Callable[[], Any]) -> Any:
            raw = snapshot.get(key)
            if raw is None:
                return default()
            try:
                return parse(raw)
            except (TypeError, ValueError, KeyError, AttributeError) as exc:
                logger.warning("state field %s malformed, using default error=%r", key, exc)
                return default()

        self.totals = read("totals", RunningTotals.from_dict, RunningTotals)
        self.tables = read("tables", _parse_tables, dict)
        self.initial_stock = read("initial_stock", _parse_initial_stock, dict)
        self.paid_accounts = read("paid_accounts", _parse_list(PaidAccount.from_dict), list)
        self.menu = read("menu", parse_menu_config, default_menu)
        self.sync_queue = read("sync_queue", _parse_list(SyncTask.from_dict), list)
        self.sync_error = bool(snapshot.get("sync_error", False))

        migrated = migrate_legacy_items(self)
        if migrated:
            logger.info("migrated legacy bill lines count=%d", migrated)

    def snapshot(self) -> dict[str, Any]:
        return {
            "totals": self.totals.to_dict(),
            "tables": {
                table_id: [account.to_dict() for account in accounts] for table_id, accounts in self.tables.items()
            },
            "initial_stock": dict(self.initial_stock),
            "paid_accounts": [paid.to_dict() for paid in self.paid_accounts],
            "menu": [item.to_wire() for item in self.menu],
            "sync_queue": [task.to_dict() for task in self.sync_queue],
            "sync_error": self.sync_error,
        }

    def save(self) -> None:
        if self.port is None:
            return
        self.port.save(self.snapshot())

    # -- lookups ---------------------------------------------------------

    def accounts_for_table(self, table_id: str) -> list[Account]:
        return self.tables.get(table_id, [])

    def get_account(self, table_id: str, account_id: str) -> Account | None:
        for account in self.tables.get(table_id, []):
            if account.account_id == account_id:
                return account
        return None

    def find_account(self, table_id: str, account_id: str) -> Account:
        account = self.get_account(table_id, account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found on table {table_id}")
        return account

    def menu_item(self, item_id: str) -> MenuItem:
        item = find_menu_item(self.menu, item_id)
        if item is None:
            raise NotFoundError(f"Menu item {item_id!r} not found")
        return item

    def iter_open_accounts(self) -> Iterable[tuple[str, Account]]:
        for table_id, accounts in self.tables.items():
            for account in accounts:
                yield table_id, account

    def has_open_tables(self) -> bool:
        return any(accounts for accounts in self.tables.values())

    def open_tables_total(self) -> int:
        return sum(account_total(account) for _, account in self.iter_open_accounts())

    def remove_account(self, table_id: str, account_id: str) -> None:
        accounts = self.tables.get(table_id, [])
        self.tables[table_id] = [account for account in accounts if account.account_id != account_id]
        if not self.tables[table_id]:
            del self.tables[table_id]

    # -- order entry -----------------------------------------------------

    def open_account(self, table_id: str, customer_name: str) -> str:
        name = (customer_name or "").strip()
        if not name:
            raise ValidationError("Customer name is required")
        account = Account(account_id=new_id(), customer_name=name)
        self.tables.setdefault(table_id, []).append(account)
        logger.info("account_opened table=%s account=%s name=%r", table_id, account.account_id, name)
        self.save()
        return account.account_id

    def add_line_item(
        self,
        table_id: str,
        account_id: str,
        menu_item_id: str,
        quantity: int = 1,
        weight_grams: int | None = None,
        complimentary: bool = False,
    ) -> BillItem:
        """Append one line to the account's pending batch."""
        account = self.find_account(table_id, account_id)
        menu_item = self.menu_item(menu_item_id)
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        name = menu_item.name
        price = menu_item.price
        grams: int | None = None
        if menu_item.unit is Unit.WEIGHT:
            if weight_grams is None or weight_grams <= 0:
                raise ValidationError("Weighed items need a positive gram amount")
            grams = weight_grams
            price = weight_price(grams, menu_item.price)
            name = weight_display_name(menu_item.name, grams)
        if complimentary:
            price = 0
            name = complimentary_display_name(menu_item.name)

        item = BillItem(
            item_id=new_id(),
            menu_item_id=menu_item.item_id,
            name=name,
            price=price,
            quantity=quantity,
            unit=menu_item.unit,
            is_complimentary=complimentary,
            is_other=menu_item.category is Category.OTHER,
            weight_grams=grams,
        )
        batch = account.pending_batch()
        if batch is None:
            batch = DispatchBatch(batch_id=new_id())
            account.batches.append(batch)
        batch.items.append(item)
        account.last_added_item_id = item.item_id
        logger.info(
            "item_added table=%s account=%s menu=%s qty=%d grams=%s price=%d",
            table_id,
            account_id,
            menu_item_id,
            quantity,
            grams,
            price,
        )
        self.save()
        return item

    def add_weighed_portion(
        self,
        table_id: str,
        account_id: str,
        menu_item_id: str,
        grams: int,
        pieces: int = 1,
        side_count: int = 0,
    ) -> list[BillItem]:
        """Add a weighed portion and, optionally, its free side dish."""
        menu_item = self.menu_item(menu_item_id)
        if menu_item.unit is not Unit.WEIGHT:
            raise ValidationError(f"{menu_item.name} is not sold by weight")
        if side_count < 0:
            raise ValidationError("Side count must not be negative")
        side = find_menu_item(self.menu, COMPLIMENTARY_SIDE_ID) if side_count else None
        added = [self.add_line_item(table_id, account_id, menu_item_id, pieces, weight_grams=grams)]
        if side is not None:
            added.append(self.add_line_item(table_id, account_id, side.item_id, side_count, complimentary=True))
        return added

    def undo_last_item(self, table_id: str, account_id: str) -> BillItem | None:
        """Remove the most recently added line from the pending batch.

        Returns None when there is nothing to undo.
        """
        account = self.find_account(table_id, account_id)
        batch = account.pending_batch()
        if batch is None or not batch.items:
            logger.info("undo_noop table=%s account=%s", table_id, account_id)
            return None

        index = len(batch.items) - 1
        if account.last_added_item_id:
            for idx, item in enumerate(batch.items):
                if item.item_id == account.last_added_item_id:
                    index = idx
                    break
        removed = batch.items.pop(index)
        account.last_added_item_id = batch.items[-1].item_id if batch.items else None
        logger.info("item_undone table=%s account=%s item=%s", table_id, account_id, removed.item_id)
        self.save()
        return removed

    # -- stock setup -----------------------------------------------------

    def set_initial_stock(self, values: Mapping[str, int | str | None]) -> dict[str, int]:
        """Replace the day's opening stock for every food item."""
        stock: dict[str, int] = {}
        for item in food_items(self.menu):
            raw = values.get(item.item_id)
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                stock[item.item_id] = 0
                continue
            try:
                value = int(raw)
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"Stock for {item.name} must be a whole number") from exc
            if value < 0:
                raise ValidationError(f"Stock for {item.name} must not be negative")
            stock[item.item_id] = value
        self.initial_stock = stock
        logger.info("initial_stock_set %s", stock)
        self.save()
        return dict(stock)

    def initial_stock_complete(self) -> bool:
        return all(
            isinstance(self.initial_stock.get(item.item_id), int) and self.initial_stock[item.item_id] >= 0
            for item in food_items(self.menu)
        )

    # -- menu admin ------------------------------------------------------

    def add_menu_item(self, name: str, price: int, unit: Unit, category: Category = Category.FOOD) -> MenuItem:
        item = MenuItem.from_wire(
            {"id": new_id(), "name": name, "price": price, "type": Unit(unit).value, "category": Category(category).value}
        )
        self.menu.append(item)
        logger.info("menu_item_added id=%s name=%r", item.item_id, item.name)
        self.save()
        return item

    def update_menu_item(self, item_id: str, name: str, price: int, unit: Unit, category: Category) -> MenuItem:
        current = self.menu_item(item_id)
        item = MenuItem.from_wire(
            {"id": current.item_id, "name": name, "price": price, "type": Unit(unit).value, "category": Category(category).value}
        )
        self.menu[self.menu.index(current)] = item
        logger.info("menu_item_updated id=%s name=%r", item.item_id, item.name)
        self.save()
        return item

    def delete_menu_item(self, item_id: str) -> MenuItem:
        item = self.menu_item(item_id)
        self.menu.remove(item)
        logger.info("menu_item_deleted id=%s", item_id)
        self.save()
        return item

    def replace_menu(self, items: list[MenuItem]) -> None:
        if not items:
            raise ValidationError("Refusing to replace the menu with an empty list")
        self.menu = list(items)
        logger.info("menu_replaced count=%d", len(items))
        self.save()

    # -- outbox and resets -----------------------------------------------

    def enqueue_event(self, payload: dict[str, Any]) -> SyncTask:
        """Queue a backend event; persistence is left to the caller's save."""
        task = SyncTask(task_id=new_id(), payload=payload)
        self.sync_queue.append(task)
        logger.info("sync_enqueued id=%s action=%s queued=%d", task.task_id, payload.get("action"), len(self.sync_queue))
        return task

    def notify_enqueued(self) -> None:
        if self.on_enqueue is not None:
            self.on_enqueue()

    def reset_day(self, full: bool = False) -> None:
        """Clear the day's data, keeping the outbox and, unless `full`, the menu."""
        self.totals = RunningTotals()
        self.tables = {}
        self.initial_stock = {}
        self.paid_accounts = []
        if full:
            self.menu = default_menu()
        logger.info("data_reset full=%s", full)
        self.save()

    def batches_with_status(self, status: BatchStatus) -> list[tuple[str, Account, DispatchBatch]]:
        return [
            (table_id, account, batch)
            for table_id, account in self.iter_open_accounts()
            for batch in account.batches
            if batch.status is status
        ]
