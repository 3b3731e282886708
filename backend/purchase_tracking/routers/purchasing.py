"""Purchase tracking endpoints (order -> receive lifecycle per category)."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    CategoryTransitionOut,
    JournalOut,
    JournalOverwriteRequest,
    PartialReceiptRequest,
    PlaceOrderRequest,
    PurchaseAuditEventOut,
    PurchaseOrderItemOut,
    PurchaseTrackingOut,
)
from ..use_cases.purchase_reconciliation import (
    clear_category_use_case,
    get_items_use_case,
    get_tracking_use_case,
    list_journal_entries_use_case,
    mark_fully_received_use_case,
    overwrite_journal_use_case,
    place_or_edit_order_use_case,
    reconcile_partial_receipt_use_case,
)

router = APIRouter(prefix="/purchase-tracking", tags=["purchasing"])


@router.get("/{tracking_id}", response_model=PurchaseTrackingOut)
def get_purchase_tracking(tracking_id: UUID, db: Session = Depends(get_db)):
    return get_tracking_use_case(db=db, tracking_id=tracking_id)


@router.get("/{tracking_id}/audit-events", response_model=list[PurchaseAuditEventOut])
def get_purchase_audit_events(tracking_id: UUID, db: Session = Depends(get_db)):
    return list_journal_entries_use_case(db=db, tracking_id=tracking_id)


@router.put("/{tracking_id}/journal", response_model=JournalOut)
def overwrite_purchase_journal(
    tracking_id: UUID,
    payload: JournalOverwriteRequest,
    db: Session = Depends(get_db),
):
    """Manual journal correction; replaces the whole history text."""
    return overwrite_journal_use_case(db=db, tracking_id=tracking_id, text=payload.text)


@router.get("/{tracking_id}/categories/{category}/items", response_model=list[PurchaseOrderItemOut])
def get_category_items(tracking_id: UUID, category: str, db: Session = Depends(get_db)):
    return get_items_use_case(db=db, tracking_id=tracking_id, category=category)


@router.put("/{tracking_id}/categories/{category}/items", response_model=CategoryTransitionOut)
def place_or_edit_order(
    tracking_id: UUID,
    category: str,
    payload: PlaceOrderRequest,
    db: Session = Depends(get_db),
):
    return place_or_edit_order_use_case(db=db, tracking_id=tracking_id, category=category, items=payload.items)


@router.post("/{tracking_id}/categories/{category}/mark-received", response_model=CategoryTransitionOut)
def mark_fully_received(tracking_id: UUID, category: str, db: Session = Depends(get_db)):
    return mark_fully_received_use_case(db=db, tracking_id=tracking_id, category=category)


@router.post("/{tracking_id}/categories/{category}/receipts", response_model=CategoryTransitionOut)
def reconcile_partial_receipt(
    tracking_id: UUID,
    category: str,
    payload: PartialReceiptRequest,
    db: Session = Depends(get_db),
):
    return reconcile_partial_receipt_use_case(
        db=db,
        tracking_id=tracking_id,
        category=category,
        updates=payload.updates,
        note=payload.note,
    )


@router.post("/{tracking_id}/categories/{category}/clear", response_model=CategoryTransitionOut)
def clear_category(tracking_id: UUID, category: str, db: Session = Depends(get_db)):
    return clear_category_use_case(db=db, tracking_id=tracking_id, category=category)
