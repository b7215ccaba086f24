from datetime import date

import pytest

from grillstand.billing import on_the_house_split, pay_full, payment_for_method
from grillstand.daily_close import close_summary, format_close_date, perform_daily_close
from grillstand.errors import ValidationError
from grillstand.models import PaymentMethod


@pytest.fixture
def closed_sales(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    stocked_store.add_line_item("T1", account_id, "camembert")
    stocked_store.add_weighed_portion("T1", account_id, "veprove", 300)
    pay_full(stocked_store, "T1", account_id, payment_for_method(PaymentMethod.CASH, 396))

    account_id = stocked_store.open_account("B1", "Petr")
    stocked_store.add_line_item("B1", account_id, "brambora", quantity=2)
    split = on_the_house_split(stocked_store.find_account("B1", account_id), 30)
    pay_full(stocked_store, "B1", account_id, split.payment(PaymentMethod.QR))
    return stocked_store


def test_close_date_format():
    assert format_close_date(date(2026, 7, 4)) == "04.07.2026"


def test_close_rejected_while_tables_are_open(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    stocked_store.add_line_item("T1", account_id, "camembert")
    before = stocked_store.snapshot()

    with pytest.raises(ValidationError):
        perform_daily_close(stocked_store)

    assert stocked_store.snapshot() == before


def test_close_payload(closed_sales):
    payload = perform_daily_close(closed_sales, today=date(2026, 7, 4))

    assert payload["action"] == "performDailyClose"
    assert payload["date"] == "04.07.2026"
    assert payload["totals"] == {"cash": 396, "card": 0, "qr": 50, "onHouse": 30, "totalRevenue": 446}
    assert payload["remainingStock"]["Vepřové"] == {"value": 4700, "type": "grams"}
    assert payload["remainingStock"]["Camembert"] == {"value": 19, "type": "pieces"}
    assert payload["soldStock"]["Vepřové"] == {"grams": 300, "pieces": 0}
    assert payload["soldStock"]["Pečená brambora"] == {"grams": 0, "pieces": 2}


def test_close_resets_the_day_but_keeps_the_outbox(closed_sales):
    perform_daily_close(closed_sales, today=date(2026, 7, 4))

    assert closed_sales.totals.revenue == 0
    assert closed_sales.paid_accounts == []
    assert closed_sales.initial_stock == {}
    assert len(closed_sales.menu) == 4
    actions = [task.payload["action"] for task in closed_sales.sync_queue]
    assert actions == ["logTransaction", "logTransaction", "performDailyClose"]


def test_close_summary_does_not_mutate(closed_sales):
    before = closed_sales.snapshot()
    summary = close_summary(closed_sales, today=date(2026, 7, 4))
    assert summary.totals.revenue == 446
    assert summary.remaining["brambora"] == 28
    assert closed_sales.snapshot() == before
