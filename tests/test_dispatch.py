from datetime import datetime, timedelta, timezone

import pytest

from grillstand.dispatch import can_send, confirm_dispatch, dispatch_board, send_to_dispatch
from grillstand.errors import NotFoundError, ValidationError
from grillstand.models import BatchStatus, Category, Unit

NOON = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_send_moves_pending_batch_to_ready(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    stocked_store.add_line_item("T1", account_id, "camembert")

    batch = send_to_dispatch(stocked_store, "T1", account_id, now=NOON)

    account = stocked_store.find_account("T1", account_id)
    assert batch.status is BatchStatus.READY
    assert batch.ready_at == NOON
    assert account.last_added_item_id is None
    assert account.pending_batch() is None


def test_items_after_send_open_a_new_batch(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    stocked_store.add_line_item("T1", account_id, "camembert")
    send_to_dispatch(stocked_store, "T1", account_id, now=NOON)
    stocked_store.add_line_item("T1", account_id, "brambora")

    account = stocked_store.find_account("T1", account_id)
    assert [b.status for b in account.batches] == [BatchStatus.READY, BatchStatus.PENDING]


def test_batch_with_only_other_items_never_goes_to_kitchen(stocked_store):
    beer = stocked_store.add_menu_item("Pivo", 50, Unit.PIECE, Category.OTHER)
    account_id = stocked_store.open_account("T1", "Novák")
    stocked_store.add_line_item("T1", account_id, beer.item_id)
    account = stocked_store.find_account("T1", account_id)

    assert not can_send(account)
    with pytest.raises(ValidationError):
        send_to_dispatch(stocked_store, "T1", account_id)
    assert account.batches[0].status is BatchStatus.PENDING


def test_send_without_items_is_rejected(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    with pytest.raises(ValidationError):
        send_to_dispatch(stocked_store, "T1", account_id)


def test_confirm_dispatch(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    stocked_store.add_line_item("T1", account_id, "camembert")
    batch = send_to_dispatch(stocked_store, "T1", account_id, now=NOON)

    confirm_dispatch(stocked_store, "T1", account_id, batch.batch_id)
    assert batch.status is BatchStatus.DISPATCHED
    assert dispatch_board(stocked_store, now=NOON) == []

    with pytest.raises(ValidationError):
        confirm_dispatch(stocked_store, "T1", account_id, batch.batch_id)
    with pytest.raises(NotFoundError):
        confirm_dispatch(stocked_store, "T1", account_id, "missing")


def test_board_is_oldest_first_and_flags_overdue(stocked_store):
    late = stocked_store.open_account("T1", "Novák")
    stocked_store.add_line_item("T1", late, "camembert")
    send_to_dispatch(stocked_store, "T1", late, now=NOON + timedelta(minutes=10))

    early = stocked_store.open_account("T2", "Eva")
    stocked_store.add_weighed_portion("T2", early, "veprove", 300)
    send_to_dispatch(stocked_store, "T2", early, now=NOON)

    board = dispatch_board(stocked_store, now=NOON + timedelta(minutes=25))
    assert [entry.customer_name for entry in board] == ["Eva", "Novák"]
    assert board[0].elapsed == timedelta(minutes=25)
    assert board[0].overdue
    assert not board[1].overdue
    assert board[0].table_id == "T2"
