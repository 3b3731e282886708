"""purchase tracking, order items and purchasing audit events

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

CATEGORY_KEYS = ("doors", "glass", "handles", "acc")


def _category_columns() -> list[sa.Column]:
    columns: list[sa.Column] = []
    for key in CATEGORY_KEYS:
        columns.append(sa.Column(f"{key}_ordered_at", sa.DateTime(timezone=True), nullable=True))
        columns.append(sa.Column(f"{key}_received_at", sa.DateTime(timezone=True), nullable=True))
        columns.append(sa.Column(f"{key}_received_incomplete_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def _category_checks() -> list[sa.CheckConstraint]:
    checks: list[sa.CheckConstraint] = []
    for key in CATEGORY_KEYS:
        checks.append(
            sa.CheckConstraint(
                f"NOT ({key}_received_at IS NOT NULL AND {key}_received_incomplete_at IS NOT NULL)",
                name=f"chk_purchase_{key}_single_receipt_state",
            )
        )
        checks.append(
            sa.CheckConstraint(
                f"{key}_ordered_at IS NOT NULL OR "
                f"({key}_received_at IS NULL AND {key}_received_incomplete_at IS NULL)",
                name=f"chk_purchase_{key}_received_requires_ordered",
            )
        )
    return checks


def upgrade() -> None:
    # Owned by the job registry; created here only when this service runs standalone.
    op.create_table(
        "jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_number", sa.String(length=50), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("ship_schedule", sa.Date(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_jobs_job_number", "jobs", ["job_number"], unique=False)

    op.create_table(
        "purchase_tracking",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        *_category_columns(),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        *_category_checks(),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_purchase_tracking_job_id", "purchase_tracking", ["job_id"], unique=True)

    category_list = ", ".join(f"'{key}'" for key in CATEGORY_KEYS)
    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tracking_id", sa.Uuid(), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("line_no", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("supplier", sa.String(length=255), nullable=True),
        sa.Column("po_number", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint("quantity >= 1", name="chk_purchase_item_quantity_positive"),
        sa.CheckConstraint("quantity_received >= 0", name="chk_purchase_item_received_non_negative"),
        sa.CheckConstraint(f"category IN ({category_list})", name="chk_purchase_item_category"),
        sa.ForeignKeyConstraint(["tracking_id"], ["purchase_tracking.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tracking_id", "category", "line_no", name="uq_purchase_item_line_no"),
    )
    op.create_index("ix_purchase_order_items_tracking_id", "purchase_order_items", ["tracking_id"], unique=False)
    op.create_index(
        "idx_purchase_items_tracking_category",
        "purchase_order_items",
        ["tracking_id", "category"],
        unique=False,
    )

    op.create_table(
        "purchase_audit_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tracking_id", sa.Uuid(), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("old_status", sa.String(length=30), nullable=True),
        sa.Column("new_status", sa.String(length=30), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "action IN ('order_details_updated', 'order_demoted_incomplete', 'marked_fully_received', "
            "'receipt_completed', 'partial_receipt_logged', 'status_cleared', 'journal_overwritten')",
            name="chk_purchase_audit_action",
        ),
        sa.ForeignKeyConstraint(["tracking_id"], ["purchase_tracking.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tracking_id", "seq", name="uq_purchase_audit_seq"),
    )
    op.create_index("ix_purchase_audit_events_tracking_id", "purchase_audit_events", ["tracking_id"], unique=False)
    op.create_index("ix_purchase_audit_events_action", "purchase_audit_events", ["action"], unique=False)
    op.create_index("ix_purchase_audit_events_created_at", "purchase_audit_events", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_purchase_audit_events_created_at", table_name="purchase_audit_events")
    op.drop_index("ix_purchase_audit_events_action", table_name="purchase_audit_events")
    op.drop_index("ix_purchase_audit_events_tracking_id", table_name="purchase_audit_events")
    op.drop_table("purchase_audit_events")
    op.drop_index("idx_purchase_items_tracking_category", table_name="purchase_order_items")
    op.drop_index("ix_purchase_order_items_tracking_id", table_name="purchase_order_items")
    op.drop_table("purchase_order_items")
    op.drop_index("ix_purchase_tracking_job_id", table_name="purchase_tracking")
    op.drop_table("purchase_tracking")
    op.drop_index("ix_jobs_job_number", table_name="jobs")
    op.drop_table("jobs")
