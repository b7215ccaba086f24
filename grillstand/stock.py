"""Stock ledger: sold and remaining grill stock derived from bill lines."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from grillstand.constant import COMPLIMENTARY_MARKER
from grillstand.data import food_items
from grillstand.models import BillItem, MenuItem, Unit

if TYPE_CHECKING:
    from grillstand.ledger import LedgerStore

_COUNT_PREFIX = re.compile(r"^(\d+)\s*x\s")
_GRAMS_SUFFIX = re.compile(r"\((\d+)\s*g\)$", re.IGNORECASE)


@dataclass
class SoldStock:
    """Amount of one food item sold today.

    `count` is the number of pieces in weighed lines (e.g. steaks), kept
    alongside the gram total for the close report.
    """

    grams: int = 0
    pieces: int = 0
    count: int = 0


@dataclass(frozen=True)
class LegacyItem:
    menu_item_id: str
    grams: int


def parse_legacy_item_name(name: str, menu: Iterable[MenuItem]) -> LegacyItem | None:
    """Recover the menu item and gram amount from a rendered bill label.

    Only used for snapshots written before lines carried `menu_item_id`.
    Returns None when the base name matches no current menu item.
    """
    if not name:
        return None
    base = name
    count_match = _COUNT_PREFIX.match(base)
    if count_match:
        base = base[count_match.end() :]

    grams = 0
    gram_match = _GRAMS_SUFFIX.search(base)
    if gram_match:
        grams = int(gram_match.group(1))
        base = base[: gram_match.start()].strip()
    base = base.replace(COMPLIMENTARY_MARKER, "").strip()

    for item in menu:
        if item.name == base:
            return LegacyItem(menu_item_id=item.item_id, grams=grams)
    return None


def migrate_legacy_items(store: LedgerStore) -> int:
    """Fill `menu_item_id`/`weight_grams` on lines that only carry a label."""
    migrated = 0
    for item in _all_bill_items(store):
        if item.menu_item_id is not None:
            continue
        parsed = parse_legacy_item_name(item.name, store.menu)
        if parsed is None:
            continue
        item.menu_item_id = parsed.menu_item_id
        if item.unit is Unit.WEIGHT and item.weight_grams is None:
            item.weight_grams = parsed.grams
        migrated += 1
    return migrated


def _all_bill_items(store: LedgerStore) -> Iterable[BillItem]:
    for _, account in store.iter_open_accounts():
        yield from account.all_items()
    for paid in store.paid_accounts:
        yield from paid.all_items()


def sold_stock(store: LedgerStore) -> dict[str, SoldStock]:
    """Per food item, what open and settled bills have taken out of stock."""
    sold = {item.item_id: SoldStock() for item in food_items(store.menu)}
    for item in _all_bill_items(store):
        entry = sold.get(item.menu_item_id or "")
        if entry is None:
            continue
        if item.unit is Unit.WEIGHT:
            entry.grams += item.weight_grams or 0
            entry.count += item.quantity
        else:
            entry.pieces += item.quantity
    return sold


def remaining_stock(store: LedgerStore) -> dict[str, int]:
    """Opening stock minus sold amount, floored at zero."""
    sold = sold_stock(store)
    remaining: dict[str, int] = {}
    for item in food_items(store.menu):
        initial = store.initial_stock.get(item.item_id, 0)
        used = sold[item.item_id].grams if item.unit is Unit.WEIGHT else sold[item.item_id].pieces
        remaining[item.item_id] = max(0, initial - used)
    return remaining
