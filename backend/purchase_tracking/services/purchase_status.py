"""Purchase category status rules."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Category(str, Enum):
    DOORS = "doors"
    GLASS = "glass"
    HANDLES = "handles"
    ACCESSORIES = "acc"

    @property
    def label(self) -> str:
        return self.value.upper()


class PurchaseStatus(str, Enum):
    NOT_ORDERED = "not_ordered"
    ORDERED = "ordered"
    RECEIVED_INCOMPLETE = "received_incomplete"
    RECEIVED_COMPLETE = "received_complete"


CATEGORY_KEYS: tuple[str, ...] = tuple(category.value for category in Category)
_CATEGORY_ALIASES: dict[str, Category] = {
    "accessories": Category.ACCESSORIES,
}
PO_EDITABLE_CATEGORIES: frozenset[Category] = frozenset({Category.HANDLES, Category.ACCESSORIES})
TIMESTAMP_FIELDS: tuple[str, ...] = ("ordered_at", "received_at", "received_incomplete_at")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def parse_category(value: str | Category | None) -> Category:
    if isinstance(value, Category):
        return value
    key = (value or "").strip().lower()
    if not key:
        raise ValueError("Category is required")
    if key in _CATEGORY_ALIASES:
        return _CATEGORY_ALIASES[key]
    try:
        return Category(key)
    except ValueError:
        raise ValueError(f"Unknown purchase category: {value}") from None


def derive_status(
    ordered_at: datetime | None,
    received_at: datetime | None,
    received_incomplete_at: datetime | None,
) -> PurchaseStatus:
    # Incomplete wins over received so a half-written row never shows as complete.
    if received_incomplete_at is not None:
        return PurchaseStatus.RECEIVED_INCOMPLETE
    if received_at is not None:
        return PurchaseStatus.RECEIVED_COMPLETE
    if ordered_at is not None:
        return PurchaseStatus.ORDERED
    return PurchaseStatus.NOT_ORDERED


def timestamp_column(category: Category, field: str) -> str:
    if field not in TIMESTAMP_FIELDS:
        raise ValueError(f"Unknown timestamp field: {field}")
    return f"{category.value}_{field}"


def category_timestamps(record: Any, category: Category) -> dict[str, datetime | None]:
    return {field: getattr(record, timestamp_column(category, field)) for field in TIMESTAMP_FIELDS}


def apply_category_timestamps(record: Any, category: Category, updates: dict[str, datetime | None]) -> None:
    for field, value in updates.items():
        setattr(record, timestamp_column(category, field), value)


def category_status(record: Any, category: Category) -> PurchaseStatus:
    stamps = category_timestamps(record, category)
    return derive_status(stamps["ordered_at"], stamps["received_at"], stamps["received_incomplete_at"])


def is_line_received(*, quantity: int | None, quantity_received: int | None) -> bool:
    return int(quantity_received or 0) >= int(quantity or 0)


def all_lines_received(lines: list[Any]) -> bool:
    """True when there is at least one line and every line is fully received."""
    return len(lines) > 0 and all(
        is_line_received(quantity=line.quantity, quantity_received=line.quantity_received)
        for line in lines
    )


def po_number_for(category: Category, po_number: str | None) -> str | None:
    if category not in PO_EDITABLE_CATEGORIES:
        return None
    value = (po_number or "").strip()
    return value or None


def ensure_category_ordered(*, ordered_at: datetime | None, action: str) -> None:
    if ordered_at is None:
        raise ValueError(f"Cannot {action} before the category is ordered")


def order_saved_timestamps(
    *,
    current: dict[str, datetime | None],
    all_received: bool,
    at: datetime | None = None,
) -> tuple[dict[str, datetime | None], bool]:
    """Timestamps after an order edit, and whether a complete receipt was demoted."""
    ts = at or now_utc()
    updates: dict[str, datetime | None] = {"ordered_at": ts}
    previous = derive_status(current["ordered_at"], current["received_at"], current["received_incomplete_at"])
    demoted = not all_received and previous == PurchaseStatus.RECEIVED_COMPLETE
    if demoted:
        updates["received_at"] = None
        updates["received_incomplete_at"] = ts
    return updates, demoted


def receipt_timestamps(*, all_received: bool, at: datetime | None = None) -> dict[str, datetime | None]:
    ts = at or now_utc()
    if all_received:
        return {"received_at": ts, "received_incomplete_at": None}
    return {"received_at": None, "received_incomplete_at": ts}


def cleared_timestamps() -> dict[str, datetime | None]:
    return {field: None for field in TIMESTAMP_FIELDS}
