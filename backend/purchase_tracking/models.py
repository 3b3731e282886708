"""SQLAlchemy models for purchase-order tracking."""
from sqlalchemy import (
    Column, String, Integer, Date, DateTime, Text, JSON, Uuid,
    ForeignKey, CheckConstraint, Index, UniqueConstraint,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base
from .services.purchase_status import CATEGORY_KEYS


def _category_invariants() -> tuple[CheckConstraint, ...]:
    constraints: list[CheckConstraint] = []
    for key in CATEGORY_KEYS:
        constraints.append(
            CheckConstraint(
                f"NOT ({key}_received_at IS NOT NULL AND {key}_received_incomplete_at IS NOT NULL)",
                name=f"chk_purchase_{key}_single_receipt_state",
            )
        )
        constraints.append(
            CheckConstraint(
                f"{key}_ordered_at IS NOT NULL OR "
                f"({key}_received_at IS NULL AND {key}_received_incomplete_at IS NULL)",
                name=f"chk_purchase_{key}_received_requires_ordered",
            )
        )
    return tuple(constraints)


_CATEGORY_SQL_LIST = ", ".join(f"'{key}'" for key in CATEGORY_KEYS)


class Job(Base):
    """Job registry row (owned by the sales/scheduling side; read-only here)."""
    __tablename__ = "jobs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_number = Column(String(50), nullable=False, index=True)
    client_name = Column(String(255), nullable=True)
    ship_schedule = Column(Date, nullable=True)

    purchase_tracking = relationship("PurchaseTracking", back_populates="job", uselist=False)


class PurchaseTracking(Base):
    """Per-job purchasing header: category lifecycle timestamps plus the journal."""
    __tablename__ = "purchase_tracking"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(Uuid(as_uuid=True), ForeignKey("jobs.id"), nullable=False, unique=True, index=True)

    doors_ordered_at = Column(DateTime(timezone=True), nullable=True)
    doors_received_at = Column(DateTime(timezone=True), nullable=True)
    doors_received_incomplete_at = Column(DateTime(timezone=True), nullable=True)
    glass_ordered_at = Column(DateTime(timezone=True), nullable=True)
    glass_received_at = Column(DateTime(timezone=True), nullable=True)
    glass_received_incomplete_at = Column(DateTime(timezone=True), nullable=True)
    handles_ordered_at = Column(DateTime(timezone=True), nullable=True)
    handles_received_at = Column(DateTime(timezone=True), nullable=True)
    handles_received_incomplete_at = Column(DateTime(timezone=True), nullable=True)
    acc_ordered_at = Column(DateTime(timezone=True), nullable=True)
    acc_received_at = Column(DateTime(timezone=True), nullable=True)
    acc_received_incomplete_at = Column(DateTime(timezone=True), nullable=True)

    # Operator-facing journal, newline-delimited.
    comments = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = _category_invariants()

    # Relationships
    job = relationship("Job", back_populates="purchase_tracking")
    items = relationship(
        "PurchaseOrderItem",
        back_populates="tracking",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.line_no",
    )
    audit_events = relationship("PurchaseAuditEvent", back_populates="tracking", cascade="all, delete-orphan")


class PurchaseOrderItem(Base):
    """One ordered part line of a (tracking record, category) pair."""
    __tablename__ = "purchase_order_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tracking_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("purchase_tracking.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category = Column(String(20), nullable=False)
    line_no = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    quantity_received = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=False, default="")
    supplier = Column(String(255), nullable=True)
    po_number = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(quantity >= 1, name="chk_purchase_item_quantity_positive"),
        CheckConstraint(quantity_received >= 0, name="chk_purchase_item_received_non_negative"),
        CheckConstraint(f"category IN ({_CATEGORY_SQL_LIST})", name="chk_purchase_item_category"),
        UniqueConstraint("tracking_id", "category", "line_no", name="uq_purchase_item_line_no"),
        Index("idx_purchase_items_tracking_category", "tracking_id", "category"),
    )

    # Relationships
    tracking = relationship("PurchaseTracking", back_populates="items")

    @hybrid_property
    def is_received(self):
        return self.quantity_received >= self.quantity


class PurchaseAuditEvent(Base):
    """Structured purchasing audit event, one per transition."""
    __tablename__ = "purchase_audit_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tracking_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("purchase_tracking.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Per-record ordering, assigned under the tracking row lock.
    seq = Column(Integer, nullable=False)
    action = Column(String(50), nullable=False, index=True)
    category = Column(String(20), nullable=True)
    message = Column(Text, nullable=False)
    old_status = Column(String(30), nullable=True)
    new_status = Column(String(30), nullable=True)
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        CheckConstraint(
            action.in_([
                'order_details_updated', 'order_demoted_incomplete', 'marked_fully_received',
                'receipt_completed', 'partial_receipt_logged', 'status_cleared',
                'journal_overwritten',
            ]),
            name='chk_purchase_audit_action'
        ),
        UniqueConstraint("tracking_id", "seq", name="uq_purchase_audit_seq"),
    )

    # Relationships
    tracking = relationship("PurchaseTracking", back_populates="audit_events")
