import pytest

from grillstand.data import (
    bill_line_label,
    default_menu,
    food_items,
    parse_menu_config,
    price_label,
    weight_display_name,
    weight_price,
)
from grillstand.errors import ValidationError
from grillstand.models import BillItem, Category, MenuItem, Payment, PaymentMethod, Unit, id_timestamp, new_id


def test_weight_price_rounds_half_up():
    assert weight_price(350, 89) == 312
    assert weight_price(100, 89) == 89
    assert weight_price(250, 89) == 223  # 222.5


def test_default_menu_seed():
    menu = default_menu()
    assert [item.item_id for item in menu] == ["kureci", "veprove", "camembert", "brambora"]
    assert menu[0].unit is Unit.WEIGHT
    assert menu[2].price == 129
    assert len(food_items(menu)) == 4


def test_default_menu_is_a_fresh_copy():
    first = default_menu()
    first.pop()
    assert len(default_menu()) == 4


def test_parse_menu_config_accepts_backend_records():
    menu = parse_menu_config(
        [
            {"id": "klobasa", "name": "Klobása", "type": "pieces", "price": "89.6", "category": "food"},
            {"id": "pivo", "name": "Pivo", "type": "pieces", "price": 50, "category": "other"},
        ]
    )
    assert menu[0].price == 90
    assert menu[1].category is Category.OTHER
    assert not menu[1].is_food


@pytest.mark.parametrize(
    "records",
    [
        [],
        {"id": "x"},
        None,
        [{"id": "a", "name": "A", "type": "litres", "price": 1}],
        [{"id": "", "name": "A", "type": "pieces", "price": 1}],
        [{"id": "a", "name": "A", "type": "pieces", "price": -5}],
        [
            {"id": "a", "name": "A", "type": "pieces", "price": 1},
            {"id": "a", "name": "B", "type": "pieces", "price": 2},
        ],
    ],
)
def test_parse_menu_config_rejects_bad_payloads(records):
    with pytest.raises(ValidationError):
        parse_menu_config(records)


def test_labels():
    assert weight_display_name("Vepřové", 350) == "Vepřové (350g)"
    line = BillItem("i1", "brambora", "Pečená brambora", 40, 3, Unit.PIECE)
    assert bill_line_label(line) == "3 x Pečená brambora"
    assert bill_line_label(line.copy(quantity=1)) == "Pečená brambora"
    assert price_label(MenuItem("kureci", "Kuřecí", 89, Unit.WEIGHT)) == "89 Kč / 100g"


def test_weight_line_total_is_portion_price():
    line = BillItem("i1", "veprove", "Vepřové (600g)", 534, 2, Unit.WEIGHT, weight_grams=600)
    assert line.line_total == 534


def test_payment_rejects_negative_amounts():
    with pytest.raises(ValidationError):
        Payment(PaymentMethod.CASH, cash=-1)


def test_payment_sums():
    payment = Payment(PaymentMethod.ON_THE_HOUSE_CARD, card=300, on_the_house=96)
    assert payment.revenue == 300
    assert payment.covered == 396
    assert payment.to_wire()["onTheHouseAmount"] == 96
    assert Payment.from_wire(payment.to_wire()) == payment


def test_ids_are_unique_and_carry_creation_time():
    ids = {new_id() for _ in range(200)}
    assert len(ids) == 200
    assert id_timestamp(next(iter(ids))) is not None
    assert id_timestamp("not-an-id") is None
