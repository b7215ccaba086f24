"""Menu catalog helpers and bill label formatting."""

from __future__ import annotations

from typing import Any, Iterable

from grillstand.constant import COMPLIMENTARY_MARKER, DEFAULT_MENU
from grillstand.errors import ValidationError
from grillstand.models import BillItem, MenuItem, Unit


def default_menu() -> list[MenuItem]:
    """Return a fresh copy of the seed catalog."""
    return [MenuItem.from_wire(raw) for raw in DEFAULT_MENU]


def parse_menu_config(records: Any) -> list[MenuItem]:
    """Validate a backend `menuConfig` list into menu items.

    Raises ValidationError for anything that is not a non-empty list of valid
    records with unique ids, so a bad payload never replaces a working menu.
    """
    if not isinstance(records, list) or not records:
        raise ValidationError("Menu config must be a non-empty list")
    items = [MenuItem.from_wire(raw) for raw in records]
    seen: set[str] = set()
    for item in items:
        if item.item_id in seen:
            raise ValidationError(f"Duplicate menu id {item.item_id!r}")
        seen.add(item.item_id)
    return items


def menu_to_wire(menu: Iterable[MenuItem]) -> list[dict[str, Any]]:
    return [item.to_wire() for item in menu]


def find_menu_item(menu: Iterable[MenuItem], item_id: str) -> MenuItem | None:
    for item in menu:
        if item.item_id == item_id:
            return item
    return None


def food_items(menu: Iterable[MenuItem]) -> list[MenuItem]:
    """Menu items that take part in stock accounting."""
    return [item for item in menu if item.is_food]


def weight_price(grams: int, price_per_100g: int) -> int:
    """Price of a weighed portion, rounded half up to whole Kč."""
    return int(grams * price_per_100g / 100 + 0.5)


def weight_display_name(name: str, grams: int) -> str:
    return f"{name} ({grams}g)"


def complimentary_display_name(name: str) -> str:
    return f"{name}{COMPLIMENTARY_MARKER}"


def bill_line_label(item: BillItem) -> str:
    """Label shown on the bill, prefixed with the count when above one."""
    if item.quantity > 1:
        return f"{item.quantity} x {item.name}"
    return item.name


def unit_label(unit: Unit) -> str:
    return "g" if unit is Unit.WEIGHT else "ks"


def price_label(item: MenuItem) -> str:
    per = "100g" if item.unit is Unit.WEIGHT else "ks"
    return f"{item.price} Kč / {per}"
