"""Billing engine: full, partial and complimentary settlement of accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from grillstand.constant import PARTIAL_SUFFIX
from grillstand.errors import NotFoundError, ValidationError
from grillstand.ledger import LedgerStore, account_total
from grillstand.models import (
    Account,
    BatchStatus,
    BillItem,
    DispatchBatch,
    PaidAccount,
    Payment,
    PaymentMethod,
    Unit,
    new_id,
)

logger = logging.getLogger(__name__)

_SINGLE_METHOD_FIELDS = {
    PaymentMethod.CASH: "cash",
    PaymentMethod.CARD: "card",
    PaymentMethod.QR: "qr",
    PaymentMethod.ON_THE_HOUSE: "on_the_house",
    PaymentMethod.ON_THE_HOUSE_PARTIAL: "on_the_house",
}

_REMAINDER_METHODS = {
    PaymentMethod.CASH: (PaymentMethod.ON_THE_HOUSE_CASH, "cash"),
    PaymentMethod.CARD: (PaymentMethod.ON_THE_HOUSE_CARD, "card"),
    PaymentMethod.QR: (PaymentMethod.ON_THE_HOUSE_QR, "qr"),
}


@dataclass(frozen=True)
class TransactionRecord:
    """What gets logged to the backend for every settlement."""

    timestamp: datetime
    customer_name: str
    bill: tuple[BillItem, ...]
    payment: Payment

    def to_wire(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "customerName": self.customer_name,
            "bill": [item.to_wire() for item in self.bill],
            "payment": self.payment.to_wire(),
        }


@dataclass(frozen=True)
class SplitLine:
    """One selectable row when paying a bill item by item."""

    split_id: str
    original_line_id: str
    name: str
    price: int
    unit: Unit
    quantity: int
    selectable: bool


@dataclass(frozen=True)
class PayLine:
    """How much of one bill line to pay. Weighed lines carry their portion price."""

    original_line_id: str
    pay_quantity: int
    price: int
    unit: Unit = Unit.PIECE

    @property
    def amount(self) -> int:
        if self.unit is Unit.WEIGHT:
            return self.price
        return self.price * self.pay_quantity


@dataclass(frozen=True)
class PartialResult:
    transaction: TransactionRecord
    remaining_total: int
    closed: bool


@dataclass(frozen=True)
class OnTheHouseSplit:
    """A bill partly comped; the rest still has to be paid."""

    account_total: int
    on_the_house: int

    @property
    def remaining(self) -> int:
        return self.account_total - self.on_the_house

    def payment(self, method: PaymentMethod | None = None) -> Payment:
        if self.remaining <= 0:
            return Payment(PaymentMethod.ON_THE_HOUSE, on_the_house=self.account_total)
        if method not in _REMAINDER_METHODS:
            raise ValidationError("The rest must be paid by cash, card or QR")
        split_method, field_name = _REMAINDER_METHODS[method]
        return Payment(split_method, on_the_house=self.on_the_house, **{field_name: self.remaining})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def payment_for_method(method: PaymentMethod, amount: int) -> Payment:
    """A payment taken entirely one way."""
    field_name = _SINGLE_METHOD_FIELDS.get(method)
    if field_name is None:
        raise ValidationError(f"{method.value} needs a split payment")
    return Payment(method, **{field_name: amount})


def on_the_house_split(account: Account, on_the_house_amount: int) -> OnTheHouseSplit:
    """Clamp the comped amount to the bill and work out what is left to pay."""
    total = account_total(account)
    comped = min(max(0, on_the_house_amount), total)
    return OnTheHouseSplit(account_total=total, on_the_house=comped)


def _check_covers(payment: Payment, expected: int) -> None:
    if payment.covered != expected:
        raise ValidationError(f"Payment covers {payment.covered} Kč but the bill is {expected} Kč")


def _settle(store: LedgerStore, transaction: TransactionRecord, paid: PaidAccount) -> None:
    store.totals.add(transaction.payment)
    store.paid_accounts.append(paid)
    store.enqueue_event({"action": "logTransaction", "transactionData": transaction.to_wire()})


def pay_full(
    store: LedgerStore,
    table_id: str,
    account_id: str,
    payment: Payment,
    now: datetime | None = None,
) -> TransactionRecord | None:
    """Settle the whole account and take it off its table.

    Returns None when the account is already gone, so a repeated request is
    harmless.
    """
    account = store.get_account(table_id, account_id)
    if account is None:
        logger.info("pay_full_noop table=%s account=%s", table_id, account_id)
        return None
    total = account_total(account)
    if total < 1:
        raise ValidationError("Nothing to pay on this bill")
    _check_covers(payment, total)

    now = now or _utc_now()
    for batch in account.batches:
        batch.status = BatchStatus.DISPATCHED
    items = tuple(item.copy() for item in account.all_items())
    transaction = TransactionRecord(timestamp=now, customer_name=account.customer_name, bill=items, payment=payment)
    paid = PaidAccount(
        account_id=account.account_id,
        customer_name=account.customer_name,
        batches=(DispatchBatch(batch_id=new_id(), items=list(items), status=BatchStatus.DISPATCHED),),
        payment=payment,
        paid_at=now,
    )
    _settle(store, transaction, paid)
    store.remove_account(table_id, account_id)
    logger.info(
        "account_paid table=%s account=%s total=%d method=%s", table_id, account_id, total, payment.method.value
    )
    store.save()
    store.notify_enqueued()
    return transaction


def close_free_account(
    store: LedgerStore, table_id: str, account_id: str, now: datetime | None = None
) -> PaidAccount | None:
    """Take an account with nothing to pay off its table.

    Free lines are kept in the paid history so they still count as sold.
    Nothing is added to the totals and no transaction is logged.
    """
    account = store.get_account(table_id, account_id)
    if account is None:
        logger.info("close_free_noop table=%s account=%s", table_id, account_id)
        return None
    total = account_total(account)
    if total >= 1:
        raise ValidationError(f"{account.customer_name} still owes {total} Kč")

    items = [item.copy() for item in account.all_items()]
    paid = None
    if items:
        paid = PaidAccount(
            account_id=account.account_id,
            customer_name=account.customer_name,
            batches=(DispatchBatch(batch_id=new_id(), items=items, status=BatchStatus.DISPATCHED),),
            payment=Payment(PaymentMethod.ON_THE_HOUSE),
            paid_at=now or _utc_now(),
        )
        store.paid_accounts.append(paid)
    store.remove_account(table_id, account_id)
    logger.info("free_account_closed table=%s account=%s lines=%d", table_id, account_id, len(items))
    store.save()
    return paid


def _merge_requests(items_to_pay: Iterable[PayLine]) -> dict[str, int]:
    merged: dict[str, int] = {}
    for line in items_to_pay:
        if line.pay_quantity < 1:
            raise ValidationError("Pay quantity must be at least 1")
        merged[line.original_line_id] = merged.get(line.original_line_id, 0) + line.pay_quantity
    if not merged:
        raise ValidationError("Select at least one item to pay")
    return merged


def pay_partial(
    store: LedgerStore,
    table_id: str,
    account_id: str,
    items_to_pay: Iterable[PayLine],
    payment: Payment,
    now: datetime | None = None,
) -> PartialResult | None:
    """Settle selected quantities of an account's lines.

    Lines are re-priced from the bill itself. The account closes once less
    than one crown remains on it.
    """
    account = store.get_account(table_id, account_id)
    if account is None:
        logger.info("pay_partial_noop table=%s account=%s", table_id, account_id)
        return None

    requested = _merge_requests(items_to_pay)
    lines = {item.item_id: item for item in reversed(account.all_items())}
    paid_items: list[BillItem] = []
    for line_id, quantity in requested.items():
        line = lines.get(line_id)
        if line is None:
            raise NotFoundError(f"Bill line {line_id} not found")
        if quantity > line.quantity:
            raise ValidationError(f"Only {line.quantity} x {line.name} left on the bill")
        if line.unit is Unit.WEIGHT and quantity != line.quantity:
            raise ValidationError(f"{line.name} can only be paid as a whole portion")
        paid_items.append(line.copy(quantity=quantity))
    subtotal = sum(item.line_total for item in paid_items)
    _check_covers(payment, subtotal)

    now = now or _utc_now()
    for line_id, quantity in requested.items():
        remaining = quantity
        for batch in account.batches:
            if remaining <= 0:
                break
            for item in batch.items:
                if item.item_id == line_id:
                    deducted = min(remaining, item.quantity)
                    item.quantity -= deducted
                    remaining -= deducted
                    break
    for batch in account.batches:
        batch.items = [item for item in batch.items if item.quantity > 0]
    account.batches = [batch for batch in account.batches if batch.items]
    pending = account.pending_batch()
    if account.last_added_item_id and not any(i.item_id == account.last_added_item_id for i in account.all_items()):
        account.last_added_item_id = pending.items[-1].item_id if pending else None

    remaining_total = account_total(account)
    closed = remaining_total < 1
    settled_items = list(paid_items)
    if closed:
        # free lines left on a closing account still count as sold stock
        settled_items.extend(item.copy() for item in account.all_items())

    customer_name = f"{account.customer_name}{PARTIAL_SUFFIX}"
    transaction = TransactionRecord(timestamp=now, customer_name=customer_name, bill=tuple(paid_items), payment=payment)
    paid = PaidAccount(
        account_id=f"{new_id()}_partial",
        customer_name=customer_name,
        batches=(DispatchBatch(batch_id=new_id(), items=settled_items, status=BatchStatus.DISPATCHED),),
        payment=payment,
        paid_at=now,
    )
    _settle(store, transaction, paid)
    if closed:
        store.remove_account(table_id, account_id)
    logger.info(
        "partial_paid table=%s account=%s paid=%d remaining=%d closed=%s",
        table_id,
        account_id,
        subtotal,
        remaining_total,
        closed,
    )
    store.save()
    store.notify_enqueued()
    return PartialResult(transaction=transaction, remaining_total=remaining_total, closed=closed)


def split_eligible_items(account: Account) -> list[SplitLine]:
    """Expand the bill into rows a guest can pick to pay for.

    Piece lines with more than one unit become one row per unit. Weighed
    portions stay whole. Free lines are listed but cannot be picked.
    """
    rows: list[SplitLine] = []
    for item in account.all_items():
        selectable = item.price > 0
        if item.unit is Unit.PIECE and item.quantity > 1:
            for idx in range(item.quantity):
                rows.append(
                    SplitLine(
                        split_id=f"{item.item_id}-{idx}",
                        original_line_id=item.item_id,
                        name=item.name,
                        price=item.price,
                        unit=item.unit,
                        quantity=1,
                        selectable=selectable,
                    )
                )
            continue
        rows.append(
            SplitLine(
                split_id=item.item_id,
                original_line_id=item.item_id,
                name=item.name,
                price=item.line_total,
                unit=item.unit,
                quantity=item.quantity,
                selectable=selectable,
            )
        )
    return rows


def aggregate_split_selection(rows: Iterable[SplitLine], selected_split_ids: Iterable[str]) -> list[PayLine]:
    """Fold picked rows back into one pay request per bill line."""
    selected = set(selected_split_ids)
    aggregated: dict[str, PayLine] = {}
    for row in rows:
        if row.split_id not in selected:
            continue
        if not row.selectable:
            raise ValidationError(f"{row.name} is free and cannot be paid separately")
        if row.unit is Unit.WEIGHT:
            aggregated[row.original_line_id] = PayLine(row.original_line_id, row.quantity, row.price, Unit.WEIGHT)
            continue
        current = aggregated.get(row.original_line_id)
        pay_quantity = current.pay_quantity + 1 if current else 1
        aggregated[row.original_line_id] = PayLine(row.original_line_id, pay_quantity, row.price)
    return list(aggregated.values())


def selection_total(pay_lines: Iterable[PayLine]) -> int:
    return sum(line.amount for line in pay_lines)
