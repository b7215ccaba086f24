import pytest

from grillstand.billing import pay_full, payment_for_method
from grillstand.dispatch import send_to_dispatch
from grillstand.errors import PersistenceError
from grillstand.ledger import LedgerStore
from grillstand.models import BatchStatus, PaymentMethod
from grillstand.persistence import SqliteStatePort


def test_empty_store_loads_nothing(sqlite_port):
    assert sqlite_port.load() is None
    store = LedgerStore.load(sqlite_port)
    assert store.tables == {}
    assert len(store.menu) == 4


def test_snapshot_round_trip(sqlite_port):
    store = LedgerStore(port=sqlite_port)
    store.set_initial_stock({"kureci": 3000, "veprove": 3000, "camembert": 10, "brambora": 10})
    first = store.open_account("T1", "Novák")
    store.add_line_item("T1", first, "camembert")
    store.add_weighed_portion("T1", first, "kureci", 250, side_count=1)
    send_to_dispatch(store, "T1", first)
    store.add_line_item("T1", first, "brambora", quantity=2)

    second = store.open_account("T2", "Eva")
    store.add_line_item("T2", second, "camembert")
    pay_full(store, "T2", second, payment_for_method(PaymentMethod.CARD, 129))

    reloaded = LedgerStore.load(SqliteStatePort(sqlite_port.db_path))

    assert reloaded.snapshot() == store.snapshot()
    account = reloaded.find_account("T1", first)
    assert [batch.status for batch in account.batches] == [BatchStatus.READY, BatchStatus.PENDING]
    assert account.batches[0].ready_at is not None
    assert reloaded.totals.card == 129
    assert reloaded.paid_accounts[0].payment.card == 129
    assert reloaded.sync_queue[0].payload["action"] == "logTransaction"


def test_every_mutation_is_written(sqlite_port):
    store = LedgerStore(port=sqlite_port)
    store.set_initial_stock({})
    account_id = store.open_account("S1", "Jana")
    store.add_line_item("S1", account_id, "camembert")

    saved = sqlite_port.load()
    assert saved["tables"]["S1"][0]["batches"][0]["items"][0]["menu_item_id"] == "camembert"


@pytest.mark.parametrize("raw", ["{oops", "[1, 2, 3]", '"text"'])
def test_unreadable_snapshot_triggers_full_reset(sqlite_port, raw):
    sqlite_port.write_raw(raw)
    with pytest.raises(ValueError):
        sqlite_port.load()

    store = LedgerStore.load(sqlite_port)

    assert store.tables == {}
    assert [item.item_id for item in store.menu] == ["kureci", "veprove", "camembert", "brambora"]
    assert isinstance(sqlite_port.load(), dict)


def test_unusable_database_path_raises(tmp_path):
    port = SqliteStatePort(tmp_path)
    with pytest.raises(PersistenceError):
        port.bootstrap_schema()
