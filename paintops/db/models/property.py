import uuid
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from paintops.db.base import BaseModel


class Property(BaseModel):
    __tablename__ = "properties"

    property_name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    address_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ap_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ap_email: Mapped[str | None] = mapped_column(String(255), nullable=True)


class UnitSize(BaseModel):
    __tablename__ = "unit_sizes"

    unit_size_label: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class BillingCategory(BaseModel):
    __tablename__ = "billing_categories"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    sort_order: Mapped[int] = mapped_column(default=0)


class BillingDetail(BaseModel):
    """A rate card row scoped to (property, category, unit size)."""

    __tablename__ = "billing_details"

    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("properties.id"), nullable=False, index=True
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("billing_categories.id"), nullable=False, index=True
    )
    unit_size_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("unit_sizes.id"), nullable=True
    )
    bill_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0.00"))
    sub_pay_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0.00"))
    # NULL for hourly rows
    profit_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    is_hourly: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(default=0)

    # Relationships
    category = relationship("BillingCategory", lazy="selectin")
    unit_size = relationship("UnitSize", lazy="selectin")
