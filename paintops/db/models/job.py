import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from paintops.db.base import BaseModel, utcnow


class JobPhase(BaseModel):
    __tablename__ = "job_phases"

    job_phase_label: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(default=0)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)


class Job(BaseModel):
    __tablename__ = "jobs"

    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("properties.id"), nullable=False, index=True
    )
    work_order_num: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    unit_number: Mapped[str] = mapped_column(String(50), nullable=False)
    unit_size_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("unit_sizes.id"), nullable=True
    )
    job_category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("billing_categories.id"), nullable=True
    )
    job_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    scheduled_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    current_phase_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("job_phases.id"), nullable=False, index=True
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True
    )
    invoice_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    invoice_sent_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    invoice_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    invoice_paid_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Cache of the aggregated bill total, recalculated on every billing-relevant change
    total_billing_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    # Relationships
    property = relationship("Property", lazy="selectin")
    phase = relationship("JobPhase", lazy="selectin")
    unit_size = relationship("UnitSize", lazy="selectin")
    job_category = relationship("BillingCategory", lazy="selectin")
    assignee = relationship("Profile", foreign_keys=[assigned_to], lazy="selectin")
    work_order = relationship("WorkOrder", back_populates="job", uselist=False, lazy="selectin")


class JobPhaseChange(BaseModel):
    """Append-only audit row written for every phase transition."""

    __tablename__ = "job_phase_changes"

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("jobs.id"), nullable=False, index=True
    )
    changed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True
    )
    from_phase_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("job_phases.id"), nullable=True
    )
    to_phase_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("job_phases.id"), nullable=False
    )
    change_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    decision: Mapped[str | None] = mapped_column(String(20), nullable=True)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    from_phase = relationship("JobPhase", foreign_keys=[from_phase_id], lazy="selectin")
    to_phase = relationship("JobPhase", foreign_keys=[to_phase_id], lazy="selectin")
    changer = relationship("Profile", lazy="selectin")


class JobImage(BaseModel):
    __tablename__ = "job_images"

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("jobs.id"), nullable=False, index=True
    )
    work_order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("work_orders.id"), nullable=True
    )
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    image_type: Mapped[str | None] = mapped_column(String(50), nullable=True)  # before, sprinkler, other
