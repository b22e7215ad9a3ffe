import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from paintops.db.base import BaseModel


class WorkOrder(BaseModel):
    __tablename__ = "work_orders"

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("jobs.id"), nullable=False, unique=True, index=True
    )
    prepared_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True
    )
    submission_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_occupied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_full_paint: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    painted_patio: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    painted_garage: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    painted_cabinets: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    painted_crown_molding: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    painted_front_door: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Ceilings: either a unit-size billing reference or an individual count
    painted_ceilings: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ceiling_billing_detail_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("billing_details.id"), nullable=True
    )
    ceiling_display_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    individual_ceiling_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    has_accent_wall: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    accent_wall_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    accent_wall_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    accent_wall_billing_detail_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("billing_details.id"), nullable=True
    )

    has_extra_charges: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    extra_charges_line_items: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    # Legacy single-line extra charges
    extra_charges_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    extra_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    extra_hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    extra_sub_pay_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    additional_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    job = relationship("Job", back_populates="work_order")
