"""Rendering helpers for bill lines, batches and status badges."""

from __future__ import annotations

from datetime import timedelta

from rich.text import Text

from grillstand.config import CURRENCY
from grillstand.daily_close import CloseSummary
from grillstand.data import bill_line_label, unit_label
from grillstand.dispatch import BoardEntry
from grillstand.models import BatchStatus, BillItem, DispatchBatch, MenuItem, Unit


def format_currency(amount: int) -> str:
    return f"{amount} {CURRENCY}"


def format_elapsed(elapsed: timedelta) -> str:
    """HH:MM:SS since a batch became ready."""
    seconds = max(0, int(elapsed.total_seconds()))
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def status_badge_style(status: BatchStatus) -> str:
    """Return a consistent badge style for batch status tags."""
    if status is BatchStatus.PENDING:
        return "bold #0b1f0f on #e0b84d"
    if status is BatchStatus.READY:
        return "bold #ffffff on #b23a48"
    return "bold #0b1f0f on #5fbf72"


_STATUS_TAGS = {
    BatchStatus.PENDING: "NEW",
    BatchStatus.READY: "READY",
    BatchStatus.DISPATCHED: "SERVED",
}


def format_batch_header(batch: DispatchBatch) -> Text:
    text = Text()
    text.append(f" {_STATUS_TAGS[batch.status]} ", style=status_badge_style(batch.status))
    if batch.ready_at is not None and batch.status is not BatchStatus.PENDING:
        text.append(f" {batch.ready_at.astimezone().strftime('%H:%M')}", style="dim")
    return text


def format_bill_line(item: BillItem) -> Text:
    """Bill label on the left, line total right after it."""
    text = Text()
    text.append(bill_line_label(item), style="dim" if item.is_complimentary else "")
    if item.is_other:
        text.append(" *", style="cyan")
    text.append(f"  {format_currency(item.line_total)}", style="bold")
    return text


def format_menu_item(item: MenuItem) -> Text:
    text = Text(item.name)
    per = "100g" if item.unit is Unit.WEIGHT else "ks"
    text.append(f"  {item.price} {CURRENCY}/{per}", style="dim")
    if not item.is_food:
        text.append(" [other]", style="cyan")
    return text


def format_board_entry(entry: BoardEntry, table_label: str) -> Text:
    """A dispatch board card: where, who, how long it has waited, what."""
    text = Text()
    elapsed_style = "bold #ffffff on #b23a48" if entry.overdue else "bold"
    text.append(f"{table_label} ", style="bold")
    text.append(entry.customer_name)
    text.append("  ")
    text.append(format_elapsed(entry.elapsed), style=elapsed_style)
    for item in entry.items:
        text.append(f"\n  {bill_line_label(item)}")
    return text


def format_sync_status(status: str, queued: int) -> Text:
    """Short sync indicator for the status bar."""
    if status == "syncing":
        return Text(f"syncing… ({queued})", style="yellow")
    if status == "error":
        return Text(f"sync error ({queued}) y retry", style="bold red")
    if status == "pending":
        return Text(f"queued {queued}", style="yellow")
    return Text("synced", style="green")


def format_close_summary(summary: CloseSummary, items: list[MenuItem]) -> Text:
    """Daily close confirmation: revenue, stock left and stock sold."""
    totals = summary.totals
    text = Text()
    text.append(f"{summary.date}\n", style="bold")
    text.append(
        f"Cash {format_currency(totals.cash)}  Card {format_currency(totals.card)}  QR {format_currency(totals.qr)}\n"
    )
    text.append(f"On the house {format_currency(totals.on_the_house)}\n")
    text.append(f"Revenue {format_currency(totals.revenue)}", style="bold")

    text.append("\n\nLeft", style="bold")
    for item in items:
        text.append(f"\n  {item.name}: {summary.remaining.get(item.item_id, 0)} {unit_label(item.unit)}")

    text.append("\n\nSold", style="bold")
    for item in items:
        sold = summary.sold[item.item_id]
        if item.unit is Unit.WEIGHT:
            name = f"{item.name} ({sold.count}x)" if sold.count > 0 else item.name
            text.append(f"\n  {name}: {sold.grams} g")
        else:
            text.append(f"\n  {item.name}: {sold.pieces} ks")
    return text
