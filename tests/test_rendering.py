from datetime import date, datetime, timedelta, timezone

from grillstand.daily_close import close_summary
from grillstand.data import food_items

from grillstand.dispatch import BoardEntry
from grillstand.models import BatchStatus, BillItem, DispatchBatch, Unit
from grillstand.printer import resolve_printer_font_path, ticket_lines
from grillstand.rendering import (
    format_batch_header,
    format_bill_line,
    format_board_entry,
    format_close_summary,
    format_currency,
    format_elapsed,
    format_sync_status,
)

READY = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _potatoes(quantity=2):
    return BillItem("i1", "brambora", "Pečená brambora", 40, quantity, Unit.PIECE)


def test_format_currency():
    assert format_currency(396) == "396 Kč"


def test_format_elapsed():
    assert format_elapsed(timedelta(hours=1, minutes=2, seconds=3)) == "01:02:03"
    assert format_elapsed(timedelta(seconds=-5)) == "00:00:00"


def test_bill_line_shows_count_and_total():
    plain = format_bill_line(_potatoes()).plain
    assert plain.startswith("2 x Pečená brambora")
    assert plain.endswith("80 Kč")


def test_batch_header_tags_status():
    assert "NEW" in format_batch_header(DispatchBatch("b1")).plain
    ready = DispatchBatch("b2", status=BatchStatus.READY, ready_at=READY)
    assert "READY" in format_batch_header(ready).plain


def test_board_entry_marks_overdue():
    entry = BoardEntry(
        table_id="T1",
        account_id="a1",
        batch_id="b1",
        customer_name="Novák",
        items=(_potatoes(),),
        ready_at=READY,
        elapsed=timedelta(minutes=21),
    )
    text = format_board_entry(entry, "Stůl 1")
    assert text.plain.startswith("Stůl 1 Novák  00:21:00")
    assert "2 x Pečená brambora" in text.plain
    assert any("on #b23a48" in str(span.style) for span in text.spans)


def test_sync_status_text():
    assert "3" in format_sync_status("error", 3).plain
    assert format_sync_status("synced", 0).plain == "synced"


def test_close_summary_lists_stock(stocked_store):
    account_id = stocked_store.open_account("T1", "Novák")
    stocked_store.add_weighed_portion("T1", account_id, "kureci", 400, pieces=2, side_count=1)

    summary = close_summary(stocked_store, today=date(2026, 6, 1))
    text = format_close_summary(summary, food_items(stocked_store.menu)).plain

    assert text.startswith("01.06.2026")
    assert "Kuřecí: 4600 g" in text
    assert "Camembert: 20 ks" in text
    assert "Kuřecí (2x): 400 g" in text
    assert "Vepřové: 0 g" in text
    assert "Pečená brambora: 1 ks" in text


def test_ticket_lines_skip_other_items():
    beer = BillItem("i2", "pivo", "Pivo", 50, 1, Unit.PIECE, is_other=True)
    lines = ticket_lines("Stůl 1", "Novák", [_potatoes(), beer], READY)
    assert lines[1] == "Novák"
    assert lines[2:] == ["2 x Pečená brambora"]
    assert lines[0].startswith("Stůl 1 ")


def test_font_override_env(monkeypatch, tmp_path):
    font = tmp_path / "grill.ttf"
    font.write_bytes(b"")
    monkeypatch.setenv("GRILL_PRINTER_FONT_PATH", str(font))
    assert resolve_printer_font_path() == str(font)
