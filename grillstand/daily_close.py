"""End-of-day close: report the day to the backend and reset local data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from grillstand.data import food_items
from grillstand.errors import ValidationError
from grillstand.ledger import LedgerStore
from grillstand.models import RunningTotals, Unit
from grillstand.stock import SoldStock, remaining_stock, sold_stock

logger = logging.getLogger(__name__)


def format_close_date(day: date) -> str:
    return f"{day.day:02d}.{day.month:02d}.{day.year}"


@dataclass(frozen=True)
class CloseSummary:
    """The figures shown before confirming and sent with the close."""

    date: str
    totals: RunningTotals
    remaining: dict[str, int]
    sold: dict[str, SoldStock]

    def to_payload(self, store: LedgerStore) -> dict[str, Any]:
        stock_items = food_items(store.menu)
        return {
            "action": "performDailyClose",
            "date": self.date,
            "totals": {
                "cash": self.totals.cash,
                "card": self.totals.card,
                "qr": self.totals.qr,
                "onHouse": self.totals.on_the_house,
                "totalRevenue": self.totals.revenue,
            },
            "remainingStock": {
                item.name: {"value": self.remaining.get(item.item_id, 0), "type": item.unit.value}
                for item in stock_items
            },
            "soldStock": {
                item.name: {
                    "grams": self.sold[item.item_id].grams if item.unit is Unit.WEIGHT else 0,
                    "pieces": self.sold[item.item_id].pieces,
                }
                for item in stock_items
            },
        }


def close_summary(store: LedgerStore, today: date | None = None) -> CloseSummary:
    """Collect the close figures without changing anything."""
    today = today or date.today()
    totals = RunningTotals(**store.totals.to_dict())
    return CloseSummary(
        date=format_close_date(today),
        totals=totals,
        remaining=remaining_stock(store),
        sold=sold_stock(store),
    )


def perform_daily_close(store: LedgerStore, today: date | None = None) -> dict[str, Any]:
    """Queue the close report and start a fresh day.

    Refuses while any table still has an open account.
    """
    if store.has_open_tables():
        raise ValidationError("Close all open tables before the daily close")

    summary = close_summary(store, today)
    payload = summary.to_payload(store)
    store.enqueue_event(payload)
    logger.info("daily_close date=%s revenue=%d", summary.date, summary.totals.revenue)
    store.reset_day(full=False)
    store.notify_enqueued()
    return payload
