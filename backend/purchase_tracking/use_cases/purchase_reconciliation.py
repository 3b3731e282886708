"""Purchase-order tracking and reconciliation use-cases.

Each state-changing call handles one (tracking record, category) pair, holds
the tracking row lock for its whole duration and commits items, timestamps,
journal text and the structured audit event together.

Concurrency is last-writer-wins: the lock serializes writers but carries no
version check, so a caller acting on a stale read (an order editor opened
before someone else logged a receipt) overwrites the newer data.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceFailureError,
)
from ..models import PurchaseAuditEvent, PurchaseOrderItem, PurchaseTracking
from ..schemas import (
    CategoryStateOut,
    CategoryTransitionOut,
    JournalOut,
    PurchaseAuditEventOut,
    PurchaseOrderItemIn,
    PurchaseOrderItemOut,
    PurchaseTrackingOut,
    ReceiptUpdate,
)
from ..services import purchase_journal as journal
from ..services.purchase_status import (
    Category,
    PurchaseStatus,
    all_lines_received,
    apply_category_timestamps,
    category_status,
    category_timestamps,
    cleared_timestamps,
    derive_status,
    ensure_category_ordered,
    now_utc,
    order_saved_timestamps,
    parse_category,
    po_number_for,
    receipt_timestamps,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseUseCaseHooks:
    """Clock and journal rendering knobs; tests pin these."""

    now_utc: Callable[[], datetime] = now_utc
    journal_timezone: str | None = None
    journal_timestamp_format: str | None = None


DEFAULT_HOOKS = PurchaseUseCaseHooks()


def _resolve_category(value: str | Category) -> Category:
    try:
        return parse_category(value)
    except ValueError as error:
        raise InvalidInputError(
            code="PURCHASE_INVALID_CATEGORY",
            http_status=400,
            message=str(error),
        ) from error


def _validation_details(exc: ValidationError, *, index: int) -> dict[str, Any]:
    return {
        "index": index,
        "errors": [{"loc": [str(part) for part in err["loc"]], "msg": err["msg"]} for err in exc.errors()],
    }


def _coerce_models(
    payloads: Iterable[Any] | None,
    model: type[BaseModel],
    *,
    code: str,
    message: str,
) -> list[Any]:
    if payloads is None:
        return []
    result = []
    for index, payload in enumerate(payloads):
        try:
            result.append(model.model_validate(payload))
        except ValidationError as exc:
            raise InvalidInputError(
                code=code,
                http_status=422,
                message=message,
                details=_validation_details(exc, index=index),
            ) from exc
    return result


def _get_tracking_or_404(*, db: Session, tracking_id: UUID, for_update: bool = False) -> PurchaseTracking:
    query = db.query(PurchaseTracking).filter(PurchaseTracking.id == tracking_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    tracking = query.first()
    if not tracking:
        raise NotFoundError(
            code="PURCHASE_TRACKING_NOT_FOUND",
            http_status=404,
            message="Purchase tracking record not found",
        )
    return tracking


def _category_items(*, db: Session, tracking_id: UUID, category: Category) -> list[PurchaseOrderItem]:
    return (
        db.query(PurchaseOrderItem)
        .filter(
            PurchaseOrderItem.tracking_id == tracking_id,
            PurchaseOrderItem.category == category.value,
        )
        .order_by(PurchaseOrderItem.line_no.asc())
        .all()
    )


def _ensure_ordered(tracking: PurchaseTracking, category: Category, *, action: str) -> None:
    try:
        ensure_category_ordered(
            ordered_at=category_timestamps(tracking, category)["ordered_at"],
            action=action,
        )
    except ValueError as error:
        raise InvalidTransitionError(
            code="PURCHASE_CATEGORY_NOT_ORDERED",
            http_status=409,
            message=f"{category.label}: {error}",
            details={"category": category.value, "status": PurchaseStatus.NOT_ORDERED.value},
        ) from error


def _next_audit_seq(db: Session, tracking_id: UUID) -> int:
    current = (
        db.query(func.coalesce(func.max(PurchaseAuditEvent.seq), 0))
        .filter(PurchaseAuditEvent.tracking_id == tracking_id)
        .scalar()
    )
    return int(current or 0) + 1


def _add_audit_event(
    *,
    db: Session,
    tracking: PurchaseTracking,
    action: str,
    message: str,
    at: datetime,
    category: Category | None = None,
    old_status: PurchaseStatus | None = None,
    new_status: PurchaseStatus | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    db.add(
        PurchaseAuditEvent(
            tracking_id=tracking.id,
            seq=_next_audit_seq(db, tracking.id),
            action=action,
            category=category.value if category else None,
            message=message,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value if new_status else None,
            details=details or {},
            created_at=at,
        )
    )


def _record_transition(
    *,
    db: Session,
    tracking: PurchaseTracking,
    category: Category,
    action: str,
    message: str,
    old_status: PurchaseStatus,
    at: datetime,
    hooks: PurchaseUseCaseHooks,
    details: dict[str, Any] | None = None,
) -> CategoryTransitionOut:
    """Append the journal line, write the audit event and build the call result."""
    line = journal.format_journal_line(
        message,
        at=at,
        tz_name=hooks.journal_timezone or settings.JOURNAL_TIMEZONE,
        fmt=hooks.journal_timestamp_format or settings.JOURNAL_TIMESTAMP_FORMAT,
    )
    tracking.comments = journal.append_journal_line(tracking.comments, line)

    stamps = category_timestamps(tracking, category)
    new_status = derive_status(stamps["ordered_at"], stamps["received_at"], stamps["received_incomplete_at"])
    _add_audit_event(
        db=db,
        tracking=tracking,
        action=action,
        message=message,
        at=at,
        category=category,
        old_status=old_status,
        new_status=new_status,
        details=details,
    )
    return CategoryTransitionOut(
        tracking_id=tracking.id,
        category=category,
        status=new_status,
        journal_line=line,
        **stamps,
    )


@contextmanager
def _atomic(db: Session, *, operation: str, tracking_id: UUID) -> Iterator[None]:
    """Commit once at the end; roll back everything on any failure."""
    try:
        yield
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("purchasing.%s persistence failure tracking=%s", operation, tracking_id)
        raise PersistenceFailureError(
            code="PURCHASE_PERSISTENCE_FAILURE",
            http_status=503,
            message="Failed to persist purchasing update",
            details={"operation": operation},
        ) from exc
    except Exception:
        db.rollback()
        raise


def _log_transition(operation: str, result: CategoryTransitionOut) -> None:
    logger.info(
        "purchasing.%s tracking=%s category=%s status=%s",
        operation,
        result.tracking_id,
        result.category.value,
        result.status.value,
    )


def get_items_use_case(*, db: Session, tracking_id: UUID, category: str | Category) -> list[PurchaseOrderItemOut]:
    """Return the category's line items in line order."""
    resolved = _resolve_category(category)
    _get_tracking_or_404(db=db, tracking_id=tracking_id)
    items = _category_items(db=db, tracking_id=tracking_id, category=resolved)
    return [PurchaseOrderItemOut.model_validate(item) for item in items]


def place_or_edit_order_use_case(
    *,
    db: Session,
    tracking_id: UUID,
    category: str | Category,
    items: Iterable[PurchaseOrderItemIn | dict[str, Any]] | None,
    hooks: PurchaseUseCaseHooks = DEFAULT_HOOKS,
) -> CategoryTransitionOut:
    """Replace the category's item set and stamp it as ordered.

    Never marks the category received by itself. A category that was fully
    received and now gets a set that is not fully received is demoted to
    incomplete.
    """
    resolved = _resolve_category(category)
    lines = _coerce_models(
        items,
        PurchaseOrderItemIn,
        code="PURCHASE_INVALID_ITEMS",
        message="Invalid purchase order item payload",
    )

    with _atomic(db, operation="place_or_edit_order", tracking_id=tracking_id):
        tracking = _get_tracking_or_404(db=db, tracking_id=tracking_id, for_update=True)
        current = category_timestamps(tracking, resolved)
        old_status = category_status(tracking, resolved)

        for existing in _category_items(db=db, tracking_id=tracking.id, category=resolved):
            db.delete(existing)
        # Deletes must land before inserts reuse the same line numbers.
        db.flush()

        for line_no, line in enumerate(lines, start=1):
            db.add(
                PurchaseOrderItem(
                    tracking_id=tracking.id,
                    category=resolved.value,
                    line_no=line_no,
                    quantity=line.quantity,
                    quantity_received=line.quantity_received,
                    description=line.description.strip(),
                    supplier=(line.supplier or "").strip() or None,
                    po_number=po_number_for(resolved, line.po_number),
                )
            )

        at = hooks.now_utc()
        updates, demoted = order_saved_timestamps(
            current=current,
            all_received=all_lines_received(lines),
            at=at,
        )
        apply_category_timestamps(tracking, resolved, updates)

        if demoted:
            action, message = "order_demoted_incomplete", journal.order_demoted_message(resolved)
        else:
            action, message = "order_details_updated", journal.order_updated_message(resolved)
        result = _record_transition(
            db=db,
            tracking=tracking,
            category=resolved,
            action=action,
            message=message,
            old_status=old_status,
            at=at,
            hooks=hooks,
        )

    _log_transition("place_or_edit_order", result)
    return result


def mark_fully_received_use_case(
    *,
    db: Session,
    tracking_id: UUID,
    category: str | Category,
    hooks: PurchaseUseCaseHooks = DEFAULT_HOOKS,
) -> CategoryTransitionOut:
    """Force-complete receipt: every line is set to its ordered quantity."""
    resolved = _resolve_category(category)

    with _atomic(db, operation="mark_fully_received", tracking_id=tracking_id):
        tracking = _get_tracking_or_404(db=db, tracking_id=tracking_id, for_update=True)
        _ensure_ordered(tracking, resolved, action="mark received")
        old_status = category_status(tracking, resolved)

        for item in _category_items(db=db, tracking_id=tracking.id, category=resolved):
            item.quantity_received = item.quantity

        at = hooks.now_utc()
        apply_category_timestamps(tracking, resolved, receipt_timestamps(all_received=True, at=at))
        result = _record_transition(
            db=db,
            tracking=tracking,
            category=resolved,
            action="marked_fully_received",
            message=journal.marked_received_message(resolved),
            old_status=old_status,
            at=at,
            hooks=hooks,
        )

    _log_transition("mark_fully_received", result)
    return result


def reconcile_partial_receipt_use_case(
    *,
    db: Session,
    tracking_id: UUID,
    category: str | Category,
    updates: Iterable[ReceiptUpdate | dict[str, Any]] | None,
    note: str | None = None,
    hooks: PurchaseUseCaseHooks = DEFAULT_HOOKS,
) -> CategoryTransitionOut:
    """Apply per-line received quantities and reconcile over the full item set."""
    resolved = _resolve_category(category)
    receipt_updates = _coerce_models(
        updates,
        ReceiptUpdate,
        code="PURCHASE_INVALID_RECEIPT",
        message="Invalid receipt update payload",
    )
    seen: set[UUID] = set()
    for update in receipt_updates:
        if update.item_id in seen:
            raise InvalidInputError(
                code="PURCHASE_DUPLICATE_ITEM",
                http_status=422,
                message="Each item may be updated once per receipt",
                details={"item_id": str(update.item_id)},
            )
        seen.add(update.item_id)

    with _atomic(db, operation="reconcile_partial_receipt", tracking_id=tracking_id):
        tracking = _get_tracking_or_404(db=db, tracking_id=tracking_id, for_update=True)
        _ensure_ordered(tracking, resolved, action="log a receipt")
        old_status = category_status(tracking, resolved)

        items = _category_items(db=db, tracking_id=tracking.id, category=resolved)
        by_id = {item.id: item for item in items}
        missing = [str(update.item_id) for update in receipt_updates if update.item_id not in by_id]
        if missing:
            raise NotFoundError(
                code="PURCHASE_ITEM_NOT_FOUND",
                http_status=404,
                message="Purchase order item not found",
                details={"item_ids": missing, "category": resolved.value},
            )

        for update in receipt_updates:
            by_id[update.item_id].quantity_received = update.quantity_received

        at = hooks.now_utc()
        all_received = all_lines_received(items)
        apply_category_timestamps(tracking, resolved, receipt_timestamps(all_received=all_received, at=at))
        if all_received:
            action, message = "receipt_completed", journal.receipt_completed_message(resolved, note)
        else:
            action, message = "partial_receipt_logged", journal.partial_receipt_message(resolved, note)
        note_text = (note or "").strip()
        result = _record_transition(
            db=db,
            tracking=tracking,
            category=resolved,
            action=action,
            message=message,
            old_status=old_status,
            at=at,
            hooks=hooks,
            details={"note": note_text} if note_text else None,
        )

    _log_transition("reconcile_partial_receipt", result)
    return result


def clear_category_use_case(
    *,
    db: Session,
    tracking_id: UUID,
    category: str | Category,
    hooks: PurchaseUseCaseHooks = DEFAULT_HOOKS,
) -> CategoryTransitionOut:
    """Reset the category's timestamps.

    Line items are kept and show up again the next time the order is edited.
    """
    resolved = _resolve_category(category)

    with _atomic(db, operation="clear_category", tracking_id=tracking_id):
        tracking = _get_tracking_or_404(db=db, tracking_id=tracking_id, for_update=True)
        old_status = category_status(tracking, resolved)
        at = hooks.now_utc()
        apply_category_timestamps(tracking, resolved, cleared_timestamps())
        result = _record_transition(
            db=db,
            tracking=tracking,
            category=resolved,
            action="status_cleared",
            message=journal.cleared_message(resolved),
            old_status=old_status,
            at=at,
            hooks=hooks,
        )

    _log_transition("clear_category", result)
    return result


def overwrite_journal_use_case(
    *,
    db: Session,
    tracking_id: UUID,
    text: str | None,
    hooks: PurchaseUseCaseHooks = DEFAULT_HOOKS,
) -> JournalOut:
    """Replace the journal text verbatim (manual correction path)."""
    new_text = text or ""

    with _atomic(db, operation="overwrite_journal", tracking_id=tracking_id):
        tracking = _get_tracking_or_404(db=db, tracking_id=tracking_id, for_update=True)
        previous = tracking.comments or ""
        tracking.comments = new_text
        _add_audit_event(
            db=db,
            tracking=tracking,
            action="journal_overwritten",
            message="Journal overwritten manually",
            at=hooks.now_utc(),
            details={"previous_lines": len(journal.journal_lines(previous)), "new_lines": len(journal.journal_lines(new_text))},
        )
        result = JournalOut(tracking_id=tracking.id, comments=new_text, lines=journal.journal_lines(new_text))

    logger.info("purchasing.overwrite_journal tracking=%s lines=%d", tracking_id, len(result.lines))
    return result


def get_tracking_use_case(*, db: Session, tracking_id: UUID) -> PurchaseTrackingOut:
    """Purchasing row: job display fields, four category states and the journal."""
    tracking = _get_tracking_or_404(db=db, tracking_id=tracking_id)
    job = tracking.job
    categories = [
        CategoryStateOut(
            category=category,
            status=category_status(tracking, category),
            **category_timestamps(tracking, category),
        )
        for category in Category
    ]
    return PurchaseTrackingOut(
        id=tracking.id,
        job_id=tracking.job_id,
        job_number=job.job_number if job else None,
        client_name=job.client_name if job else None,
        ship_schedule=job.ship_schedule if job else None,
        categories=categories,
        comments=tracking.comments or "",
    )


def list_journal_entries_use_case(*, db: Session, tracking_id: UUID) -> list[PurchaseAuditEventOut]:
    """Structured audit events, oldest first."""
    _get_tracking_or_404(db=db, tracking_id=tracking_id)
    events = (
        db.query(PurchaseAuditEvent)
        .filter(PurchaseAuditEvent.tracking_id == tracking_id)
        .order_by(PurchaseAuditEvent.seq.asc())
        .all()
    )
    return [PurchaseAuditEventOut.model_validate(event) for event in events]
