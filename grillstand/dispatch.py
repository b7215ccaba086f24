"""Kitchen dispatch workflow: pending -> ready -> dispatched."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from grillstand.config import DISPATCH_OVERDUE_MINUTES
from grillstand.errors import NotFoundError, ValidationError
from grillstand.ledger import LedgerStore
from grillstand.models import Account, BatchStatus, BillItem, DispatchBatch

logger = logging.getLogger(__name__)

OVERDUE_AFTER = timedelta(minutes=DISPATCH_OVERDUE_MINUTES)


@dataclass(frozen=True)
class BoardEntry:
    """A batch waiting at the pickup window."""

    table_id: str
    account_id: str
    batch_id: str
    customer_name: str
    items: tuple[BillItem, ...]
    ready_at: datetime
    elapsed: timedelta

    @property
    def overdue(self) -> bool:
        return self.elapsed > OVERDUE_AFTER


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def can_send(account: Account) -> bool:
    """Whether the account's pending batch may go to the kitchen."""
    batch = account.pending_batch()
    return batch is not None and batch.has_food


def send_to_dispatch(store: LedgerStore, table_id: str, account_id: str, now: datetime | None = None) -> DispatchBatch:
    """Move the pending batch to ready and restart undo tracking."""
    account = store.find_account(table_id, account_id)
    batch = account.pending_batch()
    if batch is None or not batch.items:
        raise ValidationError("There is no open order to send to the kitchen")
    if not batch.has_food:
        raise ValidationError("Only drinks and extras in the order; nothing for the kitchen")

    batch.status = BatchStatus.READY
    batch.ready_at = now or _utc_now()
    account.last_added_item_id = None
    logger.info("batch_ready table=%s account=%s batch=%s items=%d", table_id, account_id, batch.batch_id, len(batch.items))
    store.save()
    return batch


def confirm_dispatch(store: LedgerStore, table_id: str, account_id: str, batch_id: str) -> DispatchBatch:
    """Kitchen handed the batch out."""
    account = store.find_account(table_id, account_id)
    for batch in account.batches:
        if batch.batch_id != batch_id:
            continue
        if batch.status is not BatchStatus.READY:
            raise ValidationError(f"Batch is {batch.status.value}, not ready")
        batch.status = BatchStatus.DISPATCHED
        logger.info("batch_dispatched table=%s account=%s batch=%s", table_id, account_id, batch_id)
        store.save()
        return batch
    raise NotFoundError(f"Batch {batch_id} not found")


def dispatch_board(store: LedgerStore, now: datetime | None = None) -> list[BoardEntry]:
    """Ready batches with food, oldest first."""
    now = now or _utc_now()
    entries: list[BoardEntry] = []
    for table_id, account, batch in store.batches_with_status(BatchStatus.READY):
        if not batch.has_food:
            continue
        ready_at = batch.ready_at or now
        entries.append(
            BoardEntry(
                table_id=table_id,
                account_id=account.account_id,
                batch_id=batch.batch_id,
                customer_name=account.customer_name,
                items=tuple(batch.items),
                ready_at=ready_at,
                elapsed=max(timedelta(0), now - ready_at),
            )
        )
    # sort is stable, so equal timestamps keep insertion order
    entries.sort(key=lambda entry: entry.ready_at)
    return entries
