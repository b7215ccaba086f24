import pytest

from grillstand.billing import (
    OnTheHouseSplit,
    PayLine,
    aggregate_split_selection,
    close_free_account,
    on_the_house_split,
    pay_full,
    pay_partial,
    payment_for_method,
    selection_total,
    split_eligible_items,
)
from grillstand.errors import NotFoundError, ValidationError
from grillstand.ledger import account_total
from grillstand.models import BatchStatus, Payment, PaymentMethod, Unit
from grillstand.stock import sold_stock


@pytest.fixture
def novak(stocked_store):
    """T1 / Novák with a Camembert and 300 g of pork: 129 + 267 = 396."""
    account_id = stocked_store.open_account("T1", "Novák")
    stocked_store.add_line_item("T1", account_id, "camembert")
    stocked_store.add_weighed_portion("T1", account_id, "veprove", 300)
    return account_id


def test_scenario_full_cash_payment(stocked_store, novak):
    assert account_total(stocked_store.find_account("T1", novak)) == 396

    transaction = pay_full(stocked_store, "T1", novak, payment_for_method(PaymentMethod.CASH, 396))

    assert stocked_store.totals.cash == 396
    assert stocked_store.totals.revenue == 396
    assert stocked_store.accounts_for_table("T1") == []
    assert "T1" not in stocked_store.tables
    assert len(stocked_store.paid_accounts) == 1
    paid = stocked_store.paid_accounts[0]
    assert len(paid.all_items()) == 2
    assert all(batch.status is BatchStatus.DISPATCHED for batch in paid.batches)
    assert transaction.customer_name == "Novák"

    task = stocked_store.sync_queue[-1]
    assert task.payload["action"] == "logTransaction"
    assert task.payload["transactionData"]["payment"]["total"] == 396
    assert len(task.payload["transactionData"]["bill"]) == 2


def test_full_payment_must_match_the_bill(stocked_store, novak):
    with pytest.raises(ValidationError):
        pay_full(stocked_store, "T1", novak, payment_for_method(PaymentMethod.CARD, 300))
    assert stocked_store.find_account("T1", novak)
    assert stocked_store.totals.revenue == 0
    assert stocked_store.sync_queue == []


def test_paying_a_missing_account_is_a_noop(stocked_store, novak):
    pay_full(stocked_store, "T1", novak, payment_for_method(PaymentMethod.CASH, 396))
    assert pay_full(stocked_store, "T1", novak, payment_for_method(PaymentMethod.CASH, 396)) is None
    assert stocked_store.totals.cash == 396


def test_partial_payment_of_one_unit(stocked_store):
    account_id = stocked_store.open_account("T3", "Eva")
    line = stocked_store.add_line_item("T3", account_id, "brambora", quantity=3)

    result = pay_partial(
        stocked_store, "T3", account_id, [PayLine(line.item_id, 1, 40)], payment_for_method(PaymentMethod.CASH, 40)
    )

    account = stocked_store.find_account("T3", account_id)
    assert account.all_items()[0].quantity == 2
    assert result.remaining_total == 80
    assert not result.closed

    paid = stocked_store.paid_accounts[-1]
    assert paid.customer_name == "Eva (část)"
    assert paid.account_id.endswith("_partial")
    (item,) = paid.all_items()
    assert item.quantity == 1
    assert item.price == 40
    assert stocked_store.totals.cash == 40


def test_partial_payment_of_everything_closes_account(stocked_store, novak):
    rows = split_eligible_items(stocked_store.find_account("T1", novak))
    pay_lines = aggregate_split_selection(rows, [row.split_id for row in rows])
    amount = selection_total(pay_lines)
    assert amount == 396

    result = pay_partial(stocked_store, "T1", novak, pay_lines, payment_for_method(PaymentMethod.QR, amount))

    assert result.closed
    assert stocked_store.get_account("T1", novak) is None
    assert stocked_store.totals.qr == 396


def test_closing_split_keeps_free_side_in_stock(stocked_store):
    account_id = stocked_store.open_account("T2", "Jana")
    stocked_store.add_weighed_portion("T2", account_id, "veprove", 300, side_count=1)
    assert sold_stock(stocked_store)["brambora"].pieces == 1

    rows = split_eligible_items(stocked_store.find_account("T2", account_id))
    pay_lines = aggregate_split_selection(rows, [row.split_id for row in rows if row.selectable])
    result = pay_partial(
        stocked_store, "T2", account_id, pay_lines, payment_for_method(PaymentMethod.CASH, selection_total(pay_lines))
    )

    assert result.closed
    assert stocked_store.get_account("T2", account_id) is None
    assert sold_stock(stocked_store)["brambora"].pieces == 1
    assert sold_stock(stocked_store)["veprove"].grams == 300
    assert len(result.transaction.bill) == 1
    assert stocked_store.totals.cash == 267


def test_partial_payment_must_match_selection(stocked_store):
    account_id = stocked_store.open_account("T3", "Eva")
    line = stocked_store.add_line_item("T3", account_id, "brambora", quantity=3)
    with pytest.raises(ValidationError):
        pay_partial(
            stocked_store, "T3", account_id, [PayLine(line.item_id, 2, 40)], payment_for_method(PaymentMethod.CASH, 40)
        )
    assert stocked_store.find_account("T3", account_id).all_items()[0].quantity == 3
    assert stocked_store.paid_accounts == []


def test_partial_payment_rejects_too_many_units(stocked_store):
    account_id = stocked_store.open_account("T3", "Eva")
    line = stocked_store.add_line_item("T3", account_id, "brambora", quantity=1)
    with pytest.raises(ValidationError):
        pay_partial(
            stocked_store, "T3", account_id, [PayLine(line.item_id, 2, 40)], payment_for_method(PaymentMethod.CASH, 80)
        )


def test_partial_payment_unknown_line(stocked_store, novak):
    with pytest.raises(NotFoundError):
        pay_partial(stocked_store, "T1", novak, [PayLine("missing", 1, 10)], payment_for_method(PaymentMethod.CASH, 10))


def test_weighed_portion_is_paid_whole(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    (meat,) = stocked_store.add_weighed_portion("T1", account_id, "veprove", 600, pieces=2)
    with pytest.raises(ValidationError):
        pay_partial(
            stocked_store,
            "T1",
            account_id,
            [PayLine(meat.item_id, 1, meat.price, Unit.WEIGHT)],
            payment_for_method(PaymentMethod.CASH, meat.price),
        )


def test_partial_payment_from_a_dispatched_batch(stocked_store, novak):
    from grillstand.dispatch import send_to_dispatch

    send_to_dispatch(stocked_store, "T1", novak)
    camembert = stocked_store.find_account("T1", novak).all_items()[0]

    pay_partial(
        stocked_store, "T1", novak, [PayLine(camembert.item_id, 1, 129)], payment_for_method(PaymentMethod.CARD, 129)
    )

    account = stocked_store.find_account("T1", novak)
    assert account_total(account) == 267
    assert len(account.batches) == 1


def test_split_rows(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    potatoes = stocked_store.add_line_item("T1", account_id, "brambora", quantity=3)
    meat, side = stocked_store.add_weighed_portion("T1", account_id, "kureci", 350, pieces=2, side_count=1)

    rows = split_eligible_items(stocked_store.find_account("T1", account_id))

    assert [row.split_id for row in rows[:3]] == [f"{potatoes.item_id}-{i}" for i in range(3)]
    meat_row = rows[3]
    assert meat_row.split_id == meat.item_id
    assert meat_row.price == 312
    assert meat_row.quantity == 2
    assert not rows[4].selectable
    assert rows[4].original_line_id == side.item_id


def test_aggregate_selection(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    potatoes = stocked_store.add_line_item("T1", account_id, "brambora", quantity=3)
    meat, side = stocked_store.add_weighed_portion("T1", account_id, "kureci", 350, pieces=2, side_count=1)
    rows = split_eligible_items(stocked_store.find_account("T1", account_id))

    pay_lines = aggregate_split_selection(rows, [f"{potatoes.item_id}-0", f"{potatoes.item_id}-2", meat.item_id])

    assert PayLine(potatoes.item_id, 2, 40) in pay_lines
    assert PayLine(meat.item_id, 2, 312, Unit.WEIGHT) in pay_lines
    assert selection_total(pay_lines) == 80 + 312

    with pytest.raises(ValidationError):
        aggregate_split_selection(rows, [side.item_id])


def test_on_the_house_with_card_remainder(stocked_store, novak):
    split = on_the_house_split(stocked_store.find_account("T1", novak), 96)
    assert split.remaining == 300
    payment = split.payment(PaymentMethod.CARD)
    assert payment.method is PaymentMethod.ON_THE_HOUSE_CARD
    assert (payment.card, payment.on_the_house) == (300, 96)

    pay_full(stocked_store, "T1", novak, payment)

    assert stocked_store.totals.card == 300
    assert stocked_store.totals.on_the_house == 96
    assert stocked_store.totals.revenue == 300


def test_on_the_house_amount_is_clamped(stocked_store, novak):
    split = on_the_house_split(stocked_store.find_account("T1", novak), 1000)
    assert split.on_the_house == 396
    payment = split.payment()
    assert payment == Payment(PaymentMethod.ON_THE_HOUSE, on_the_house=396)


def test_on_the_house_remainder_needs_a_method():
    with pytest.raises(ValidationError):
        OnTheHouseSplit(account_total=100, on_the_house=40).payment()
    with pytest.raises(ValidationError):
        OnTheHouseSplit(account_total=100, on_the_house=40).payment(PaymentMethod.ON_THE_HOUSE)


def test_split_methods_need_explicit_amounts():
    with pytest.raises(ValidationError):
        payment_for_method(PaymentMethod.ON_THE_HOUSE_CARD, 100)


def test_zero_value_bill_cannot_be_paid(stocked_store):
    account_id = stocked_store.open_account("T4", "Petr")

    with pytest.raises(ValidationError):
        pay_full(stocked_store, "T4", account_id, payment_for_method(PaymentMethod.CASH, 0))

    assert stocked_store.find_account("T4", account_id)
    assert stocked_store.paid_accounts == []
    assert stocked_store.sync_queue == []


def test_close_free_account_keeps_free_lines(stocked_store):
    account_id = stocked_store.open_account("T4", "Petr")
    stocked_store.add_line_item("T4", account_id, "brambora", quantity=2, complimentary=True)

    paid = close_free_account(stocked_store, "T4", account_id)

    assert stocked_store.get_account("T4", account_id) is None
    assert paid.payment.covered == 0
    assert stocked_store.paid_accounts == [paid]
    assert sold_stock(stocked_store)["brambora"].pieces == 2
    assert stocked_store.totals.revenue == 0
    assert stocked_store.sync_queue == []


def test_close_free_account_empty_and_missing(stocked_store):
    account_id = stocked_store.open_account("T4", "Petr")

    assert close_free_account(stocked_store, "T4", account_id) is None
    assert "T4" not in stocked_store.tables
    assert stocked_store.paid_accounts == []
    assert close_free_account(stocked_store, "T4", account_id) is None


def test_close_free_account_refuses_a_bill_with_money_on_it(stocked_store, novak):
    with pytest.raises(ValidationError):
        close_free_account(stocked_store, "T1", novak)
    assert stocked_store.find_account("T1", novak)
