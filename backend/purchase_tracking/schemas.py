"""Pydantic schemas for the purchasing API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import date, datetime
from uuid import UUID

from .services.purchase_status import Category, PurchaseStatus


# Line items
class PurchaseOrderItemIn(BaseModel):
    """One line of a category's replacement item set.

    Unknown keys (ids, a client-side is_received flag) are ignored.
    """

    quantity: int = Field(default=1, ge=1)
    quantity_received: int = Field(default=0, ge=0)
    description: str = ""
    supplier: Optional[str] = None
    po_number: Optional[str] = None


class PurchaseOrderItemOut(BaseModel):
    id: UUID
    tracking_id: UUID
    category: Category
    line_no: int
    quantity: int
    quantity_received: int
    is_received: bool
    description: str
    supplier: Optional[str] = None
    po_number: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class PlaceOrderRequest(BaseModel):
    items: list[PurchaseOrderItemIn] = Field(default_factory=list)


# Receipts
class ReceiptUpdate(BaseModel):
    item_id: UUID
    quantity_received: int = Field(ge=0)


class PartialReceiptRequest(BaseModel):
    updates: list[ReceiptUpdate] = Field(default_factory=list)
    note: Optional[str] = None


# Journal
class JournalOverwriteRequest(BaseModel):
    text: str


class JournalOut(BaseModel):
    tracking_id: UUID
    comments: str
    lines: list[str]


# Status / read models
class CategoryStateOut(BaseModel):
    category: Category
    status: PurchaseStatus
    ordered_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    received_incomplete_at: Optional[datetime] = None


class CategoryTransitionOut(CategoryStateOut):
    """Result of one reconciliation call."""
    tracking_id: UUID
    journal_line: str


class PurchaseTrackingOut(BaseModel):
    id: UUID
    job_id: UUID
    job_number: Optional[str] = None
    client_name: Optional[str] = None
    ship_schedule: Optional[date] = None
    categories: list[CategoryStateOut]
    comments: str = ""


class PurchaseAuditEventOut(BaseModel):
    id: UUID
    tracking_id: UUID
    seq: int
    action: str
    category: Optional[str] = None
    message: str
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
