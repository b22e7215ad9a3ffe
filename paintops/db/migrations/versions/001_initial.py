"""Initial schema - properties, rate cards, jobs, approvals and email

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _common_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _fk(column: str, target: str, nullable: bool = True, index: bool = False) -> sa.Column:
    return sa.Column(
        column,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target),
        nullable=nullable,
        index=index,
    )


def upgrade() -> None:
    # Profiles
    op.create_table(
        "profiles",
        *_common_columns(),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="subcontractor"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )

    # Properties and rate cards
    op.create_table(
        "properties",
        *_common_columns(),
        sa.Column("property_name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("address_2", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("zip", sa.String(20), nullable=True),
        sa.Column("ap_name", sa.String(255), nullable=True),
        sa.Column("ap_email", sa.String(255), nullable=True),
    )
    op.create_table(
        "unit_sizes",
        *_common_columns(),
        sa.Column("unit_size_label", sa.String(100), unique=True, nullable=False),
    )
    op.create_table(
        "billing_categories",
        *_common_columns(),
        sa.Column("name", sa.String(255), unique=True, nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default=sa.text("0")),
    )
    op.create_table(
        "billing_details",
        *_common_columns(),
        _fk("property_id", "properties.id", nullable=False, index=True),
        _fk("category_id", "billing_categories.id", nullable=False, index=True),
        _fk("unit_size_id", "unit_sizes.id"),
        sa.Column("bill_amount", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("sub_pay_amount", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("profit_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("is_hourly", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default=sa.text("0")),
    )

    # Jobs
    op.create_table(
        "job_phases",
        *_common_columns(),
        sa.Column("job_phase_label", sa.String(50), unique=True, nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("color", sa.String(20), nullable=True),
    )
    op.create_table(
        "jobs",
        *_common_columns(),
        _fk("property_id", "properties.id", nullable=False, index=True),
        sa.Column("work_order_num", sa.Integer, unique=True, nullable=False),
        sa.Column("unit_number", sa.String(50), nullable=False),
        _fk("unit_size_id", "unit_sizes.id"),
        _fk("job_category_id", "billing_categories.id"),
        sa.Column("job_type", sa.String(100), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("scheduled_date", sa.Date, nullable=True, index=True),
        sa.Column("completed_date", sa.Date, nullable=True),
        _fk("current_phase_id", "job_phases.id", nullable=False, index=True),
        _fk("assigned_to", "profiles.id"),
        _fk("created_by", "profiles.id"),
        sa.Column("invoice_sent", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("invoice_sent_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invoice_paid", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("invoice_paid_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_billing_amount", sa.Numeric(14, 2), nullable=True),
    )
    op.create_table(
        "job_phase_changes",
        *_common_columns(),
        _fk("job_id", "jobs.id", nullable=False, index=True),
        _fk("changed_by", "profiles.id"),
        _fk("from_phase_id", "job_phases.id"),
        _fk("to_phase_id", "job_phases.id", nullable=False),
        sa.Column("change_reason", sa.Text, nullable=True),
        sa.Column("decision", sa.String(20), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "work_orders",
        *_common_columns(),
        sa.Column(
            "job_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("jobs.id"),
            nullable=False,
            unique=True,
            index=True,
        ),
        _fk("prepared_by", "profiles.id"),
        sa.Column("submission_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_occupied", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("is_full_paint", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("painted_patio", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("painted_garage", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("painted_cabinets", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("painted_crown_molding", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("painted_front_door", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("painted_ceilings", sa.Boolean, nullable=False, server_default=sa.text("false")),
        _fk("ceiling_billing_detail_id", "billing_details.id"),
        sa.Column("ceiling_display_label", sa.String(100), nullable=True),
        sa.Column("individual_ceiling_count", sa.Integer, nullable=True),
        sa.Column("has_accent_wall", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("accent_wall_type", sa.String(50), nullable=True),
        sa.Column("accent_wall_count", sa.Integer, nullable=True),
        _fk("accent_wall_billing_detail_id", "billing_details.id"),
        sa.Column("has_extra_charges", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("extra_charges_line_items", postgresql.JSONB, nullable=True),
        sa.Column("extra_charges_description", sa.Text, nullable=True),
        sa.Column("extra_hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("extra_hourly_rate", sa.Numeric(14, 2), nullable=True),
        sa.Column("extra_sub_pay_rate", sa.Numeric(14, 2), nullable=True),
        sa.Column("additional_comments", sa.Text, nullable=True),
    )
    op.create_table(
        "job_images",
        *_common_columns(),
        _fk("job_id", "jobs.id", nullable=False, index=True),
        _fk("work_order_id", "work_orders.id"),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("image_type", sa.String(50), nullable=True),
    )

    # Approvals
    op.create_table(
        "approval_tokens",
        *_common_columns(),
        _fk("job_id", "jobs.id", nullable=False, index=True),
        sa.Column("token", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("approval_type", sa.String(50), nullable=False),
        sa.Column("extra_charges_data", postgresql.JSONB, nullable=True),
        sa.Column("approver_email", sa.String(255), nullable=True),
        sa.Column("approver_name", sa.String(255), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decline_reason", sa.Text, nullable=True),
    )

    # Email
    op.create_table(
        "email_templates",
        *_common_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("signature", sa.Text, nullable=True),
        _fk("trigger_phase_id", "job_phases.id"),
        sa.Column("notification_type", sa.String(50), nullable=False, index=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )
    op.create_table(
        "email_configurations",
        *_common_columns(),
        sa.Column("from_email", sa.String(255), nullable=False),
        sa.Column("from_name", sa.String(255), nullable=True),
        sa.Column("default_cc", sa.String(1000), nullable=True),
        sa.Column("default_bcc", sa.String(1000), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )
    op.create_table(
        "email_logs",
        *_common_columns(),
        _fk("job_id", "jobs.id", index=True),
        _fk("template_id", "email_templates.id"),
        _fk("approval_token_id", "approval_tokens.id"),
        sa.Column("notification_type", sa.String(50), nullable=True),
        sa.Column("recipient", sa.String(1000), nullable=False),
        sa.Column("cc", sa.String(1000), nullable=True),
        sa.Column("bcc", sa.String(1000), nullable=True),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("message_id", sa.String(255), nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        _fk("sent_by", "profiles.id"),
    )
    op.create_table(
        "email_attachments",
        *_common_columns(),
        _fk("email_log_id", "email_logs.id", nullable=False, index=True),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
    )

    # In-app notifications
    op.create_table(
        "notifications",
        *_common_columns(),
        _fk("user_id", "profiles.id", nullable=False, index=True),
        _fk("job_id", "jobs.id", index=True),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("action_url", sa.String(1000), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("email_attachments")
    op.drop_table("email_logs")
    op.drop_table("email_configurations")
    op.drop_table("email_templates")
    op.drop_table("approval_tokens")
    op.drop_table("job_images")
    op.drop_table("work_orders")
    op.drop_table("job_phase_changes")
    op.drop_table("jobs")
    op.drop_table("job_phases")
    op.drop_table("billing_details")
    op.drop_table("billing_categories")
    op.drop_table("unit_sizes")
    op.drop_table("properties")
    op.drop_table("profiles")
