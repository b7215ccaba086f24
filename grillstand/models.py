"""Domain models for the grill stand ledger."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from grillstand.errors import ValidationError

_ID_TIME_DIGITS = 11


def new_id() -> str:
    """Return a unique id whose prefix sorts by creation time."""
    millis = time.time_ns() // 1_000_000
    return f"{millis:0{_ID_TIME_DIGITS}x}{uuid4().hex[:8]}"


def id_timestamp(value: str) -> datetime | None:
    """Recover the creation time encoded in an id from `new_id`."""
    try:
        millis = int(value[:_ID_TIME_DIGITS], 16)
    except (TypeError, ValueError):
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


class Unit(str, Enum):
    WEIGHT = "grams"
    PIECE = "pieces"


class Category(str, Enum):
    FOOD = "food"
    OTHER = "other"


class BatchStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    DISPATCHED = "dispatched"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    QR = "qr"
    ON_THE_HOUSE = "on_the_house"
    ON_THE_HOUSE_CASH = "on_the_house_cash"
    ON_THE_HOUSE_CARD = "on_the_house_card"
    ON_THE_HOUSE_QR = "on_the_house_qr"
    ON_THE_HOUSE_PARTIAL = "on_the_house_partial"


@dataclass(frozen=True)
class MenuItem:
    """A sellable item on the stand's flat menu."""

    item_id: str
    name: str
    price: int
    unit: Unit
    category: Category = Category.FOOD

    @property
    def is_food(self) -> bool:
        return self.category is Category.FOOD

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.item_id,
            "name": self.name,
            "price": self.price,
            "type": self.unit.value,
            "category": self.category.value,
        }

    @classmethod
    def from_wire(cls, raw: Any) -> MenuItem:
        """Build a menu item from the backend record shape, validating it."""
        if not isinstance(raw, dict):
            raise ValidationError(f"Menu record must be an object, got {type(raw).__name__}")
        item_id = str(raw.get("id") or "").strip()
        name = str(raw.get("name") or "").strip()
        if not item_id or not name:
            raise ValidationError("Menu record needs an id and a name")
        try:
            price = round(float(raw.get("price")))
            unit = Unit(raw.get("type"))
            category = Category(raw.get("category", Category.FOOD.value))
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid menu record {item_id!r}: {exc}") from exc
        if price < 0:
            raise ValidationError(f"Menu item {item_id!r} has a negative price")
        return cls(item_id=item_id, name=name, price=price, unit=unit, category=category)


@dataclass
class BillItem:
    """One ordered line on an account.

    For weight lines `price` is the total for the whole weighed portion and
    `quantity` counts the pieces (steaks) in it. For piece lines `price` is
    per unit.
    """

    item_id: str
    menu_item_id: str | None
    name: str
    price: int
    quantity: int
    unit: Unit
    is_complimentary: bool = False
    is_other: bool = False
    weight_grams: int | None = None

    @property
    def line_total(self) -> int:
        if self.unit is Unit.WEIGHT:
            return self.price
        return self.price * self.quantity

    def copy(self, **changes: Any) -> BillItem:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.item_id,
            "menu_item_id": self.menu_item_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "unit": self.unit.value,
            "is_complimentary": self.is_complimentary,
            "is_other": self.is_other,
            "weight_grams": self.weight_grams,
        }

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.item_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "unit": self.unit.value,
            "value": self.weight_grams if self.unit is Unit.WEIGHT else self.quantity,
            "isOther": self.is_other,
            "menuItemId": self.menu_item_id,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> BillItem:
        # Older browser exports used camelCase keys and kept grams in `value`.
        unit = Unit(raw.get("unit", Unit.PIECE.value))
        grams = raw.get("weight_grams")
        if grams is None and unit is Unit.WEIGHT:
            grams = raw.get("value")
        name = str(raw.get("name", ""))
        return cls(
            item_id=str(raw.get("id") or new_id()),
            menu_item_id=raw.get("menu_item_id", raw.get("menuItemId")),
            name=name,
            price=int(raw.get("price") or 0),
            quantity=int(raw.get("quantity") or 1),
            unit=unit,
            is_complimentary=bool(raw.get("is_complimentary", name.endswith("(Z)"))),
            is_other=bool(raw.get("is_other", raw.get("isOther", False))),
            weight_grams=int(grams) if grams is not None else None,
        )


@dataclass
class DispatchBatch:
    """Items that travel to the kitchen together."""

    batch_id: str
    items: list[BillItem] = field(default_factory=list)
    status: BatchStatus = BatchStatus.PENDING
    ready_at: datetime | None = None

    @property
    def has_food(self) -> bool:
        return any(not item.is_other for item in self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "items": [item.to_dict() for item in self.items],
            "status": self.status.value,
            "ready_at": self.ready_at.isoformat() if self.ready_at else None,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> DispatchBatch:
        ready_at = None
        if raw.get("ready_at"):
            ready_at = datetime.fromisoformat(raw["ready_at"])
        elif raw.get("readyTimestamp"):
            ready_at = datetime.fromtimestamp(raw["readyTimestamp"] / 1000, tz=timezone.utc)
        return cls(
            batch_id=str(raw.get("batch_id", raw.get("batchId")) or new_id()),
            items=[BillItem.from_dict(item) for item in raw.get("items") or []],
            status=BatchStatus(raw.get("status", BatchStatus.PENDING.value)),
            ready_at=ready_at,
        )


@dataclass
class Account:
    """One customer's running bill at a table."""

    account_id: str
    customer_name: str
    batches: list[DispatchBatch] = field(default_factory=list)
    last_added_item_id: str | None = None

    @property
    def opened_at(self) -> datetime | None:
        return id_timestamp(self.account_id)

    def pending_batch(self) -> DispatchBatch | None:
        for batch in self.batches:
            if batch.status is BatchStatus.PENDING:
                return batch
        return None

    def all_items(self) -> list[BillItem]:
        return [item for batch in self.batches for item in batch.items]

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "customer_name": self.customer_name,
            "batches": [batch.to_dict() for batch in self.batches],
            "last_added_item_id": self.last_added_item_id,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Account:
        batches = raw.get("batches", raw.get("dispatchBatches")) or []
        return cls(
            account_id=str(raw.get("account_id", raw.get("accountId")) or new_id()),
            customer_name=str(raw.get("customer_name", raw.get("customerName", ""))),
            batches=[DispatchBatch.from_dict(batch) for batch in batches],
            last_added_item_id=raw.get("last_added_item_id", raw.get("lastAddedItemIdToPendingBatch")),
        )


@dataclass(frozen=True)
class Payment:
    """How a bill was settled. Amounts are whole Kč and never negative."""

    method: PaymentMethod
    cash: int = 0
    card: int = 0
    qr: int = 0
    on_the_house: int = 0

    def __post_init__(self) -> None:
        for label in ("cash", "card", "qr", "on_the_house"):
            if getattr(self, label) < 0:
                raise ValidationError(f"Payment amount {label} must not be negative")

    @property
    def revenue(self) -> int:
        return self.cash + self.card + self.qr

    @property
    def covered(self) -> int:
        return self.revenue + self.on_the_house

    def to_wire(self) -> dict[str, Any]:
        return {
            "method": self.method.value,
            "cash": self.cash,
            "card": self.card,
            "qr": self.qr,
            "onTheHouseAmount": self.on_the_house,
            "total": self.revenue,
        }

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> Payment:
        return cls(
            method=PaymentMethod(raw.get("method", PaymentMethod.CASH.value)),
            cash=int(raw.get("cash") or 0),
            card=int(raw.get("card") or 0),
            qr=int(raw.get("qr") or 0),
            on_the_house=int(raw.get("onTheHouseAmount") or 0),
        )


@dataclass(frozen=True)
class PaidAccount:
    """Settled snapshot kept for the day's stock and revenue accounting."""

    account_id: str
    customer_name: str
    batches: tuple[DispatchBatch, ...]
    payment: Payment
    paid_at: datetime

    def all_items(self) -> list[BillItem]:
        return [item for batch in self.batches for item in batch.items]

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "customer_name": self.customer_name,
            "batches": [batch.to_dict() for batch in self.batches],
            "payment": self.payment.to_wire(),
            "paid_at": self.paid_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PaidAccount:
        batches = raw.get("batches", raw.get("dispatchBatches")) or []
        paid_at = raw.get("paid_at")
        return cls(
            account_id=str(raw.get("account_id", raw.get("accountId")) or new_id()),
            customer_name=str(raw.get("customer_name", raw.get("customerName", ""))),
            batches=tuple(DispatchBatch.from_dict(batch) for batch in batches),
            payment=Payment.from_wire(raw.get("payment", raw.get("paymentInfo")) or {}),
            paid_at=datetime.fromisoformat(paid_at) if paid_at else datetime.now(timezone.utc),
        )


@dataclass
class RunningTotals:
    """Money taken today, split by how it was taken."""

    cash: int = 0
    card: int = 0
    qr: int = 0
    on_the_house: int = 0

    @property
    def revenue(self) -> int:
        return self.cash + self.card + self.qr

    def add(self, payment: Payment) -> None:
        self.cash += payment.cash
        self.card += payment.card
        self.qr += payment.qr
        self.on_the_house += payment.on_the_house

    def to_dict(self) -> dict[str, int]:
        return {"cash": self.cash, "card": self.card, "qr": self.qr, "on_the_house": self.on_the_house}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RunningTotals:
        return cls(
            cash=int(raw.get("cash", raw.get("paidCash", 0)) or 0),
            card=int(raw.get("card", raw.get("paidCard", 0)) or 0),
            qr=int(raw.get("qr", raw.get("paidQR", 0)) or 0),
            on_the_house=int(raw.get("on_the_house", raw.get("paidOnTheHouse", 0)) or 0),
        )


@dataclass(frozen=True)
class SyncTask:
    """An event waiting in the outbox."""

    task_id: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.task_id, "payload": self.payload}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SyncTask:
        return cls(task_id=str(raw.get("id") or new_id()), payload=dict(raw.get("payload") or {}))
