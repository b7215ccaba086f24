"""Editable static menu and stand layout configuration."""

from __future__ import annotations

DEFAULT_MENU: list[dict[str, object]] = [
    {"id": "kureci", "name": "Kuřecí", "type": "grams", "price": 89, "category": "food"},
    {"id": "veprove", "name": "Vepřové", "type": "grams", "price": 89, "category": "food"},
    {"id": "camembert", "name": "Camembert", "type": "pieces", "price": 129, "category": "food"},
    {"id": "brambora", "name": "Pečená brambora", "type": "pieces", "price": 40, "category": "food"},
]

# Free side offered with every weighed meat portion.
COMPLIMENTARY_SIDE_ID = "brambora"

TABLE_LAYOUT: list[tuple[str, str]] = [
    ("T1", "Stůl 1"),
    ("T2", "Stůl 2"),
    ("T3", "Stůl 3"),
    ("T4", "Stůl 4"),
    ("T5", "Stůl 5"),
    ("T6", "Stůl 6"),
    ("B1", "Bar 1"),
    ("B2", "Bar 2"),
    ("S1", "S sebou"),
]

PARTIAL_SUFFIX = " (část)"
COMPLIMENTARY_MARKER = " (Z)"
