import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from paintops.common.enums import AccentWallType
from paintops.core.billing.schemas import ExtraChargeLineItem


class JobCreate(BaseModel):
    property_id: uuid.UUID
    unit_number: str = Field(min_length=1, max_length=50)
    unit_size_id: uuid.UUID | None = None
    job_category_id: uuid.UUID | None = None
    job_type: str | None = None
    description: str | None = None
    scheduled_date: date | None = None
    assigned_to: uuid.UUID | None = None


class JobUpdate(BaseModel):
    unit_number: str | None = Field(None, min_length=1, max_length=50)
    unit_size_id: uuid.UUID | None = None
    job_category_id: uuid.UUID | None = None
    job_type: str | None = None
    description: str | None = None
    scheduled_date: date | None = None


class JobAssign(BaseModel):
    assigned_to: uuid.UUID | None


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    work_order_num: int
    job_number: str
    property_id: uuid.UUID
    property_name: str | None
    unit_number: str
    job_type: str | None
    description: str | None
    scheduled_date: date | None
    completed_date: date | None
    phase: str | None
    assigned_to: uuid.UUID | None
    invoice_sent: bool
    invoice_paid: bool
    total_billing_amount: Decimal | None

    @classmethod
    def from_orm_instance(cls, job) -> "JobResponse":
        return cls(
            id=job.id,
            work_order_num=job.work_order_num,
            job_number=f"WO-{job.work_order_num:06d}",
            property_id=job.property_id,
            property_name=job.property.property_name if job.property else None,
            unit_number=job.unit_number,
            job_type=job.job_type,
            description=job.description,
            scheduled_date=job.scheduled_date,
            completed_date=job.completed_date,
            phase=job.phase.job_phase_label if job.phase else None,
            assigned_to=job.assigned_to,
            invoice_sent=job.invoice_sent,
            invoice_paid=job.invoice_paid,
            total_billing_amount=job.total_billing_amount,
        )


class WorkOrderSubmit(BaseModel):
    """Work order form as filled in by the subcontractor."""

    is_occupied: bool = False
    is_full_paint: bool = False
    painted_patio: bool = False
    painted_garage: bool = False
    painted_cabinets: bool = False
    painted_crown_molding: bool = False
    painted_front_door: bool = False

    painted_ceilings: bool = False
    ceiling_billing_detail_id: uuid.UUID | None = None
    ceiling_display_label: str | None = None
    individual_ceiling_count: int | None = Field(None, ge=0)

    has_accent_wall: bool = False
    accent_wall_type: AccentWallType | None = None
    accent_wall_count: int | None = Field(None, ge=0)
    accent_wall_billing_detail_id: uuid.UUID | None = None

    has_extra_charges: bool = False
    extra_charges_line_items: list[ExtraChargeLineItem] | None = None
    extra_charges_description: str | None = None
    extra_hours: Decimal | None = Field(None, ge=0)
    extra_hourly_rate: Decimal | None = Field(None, ge=0)
    extra_sub_pay_rate: Decimal | None = Field(None, ge=0)

    additional_comments: str | None = None

    @field_validator("extra_charges_line_items")
    @classmethod
    def _drop_empty(cls, v):
        return v or None

    @model_validator(mode="after")
    def _extra_charges_present(self):
        if self.has_extra_charges and not self.extra_charges_line_items and not self.extra_hours:
            raise ValueError("Extra charges need line items or hours")
        return self


class PhaseChangeResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID
    from_phase: str | None
    to_phase: str
    changed_by: uuid.UUID | None
    changed_by_name: str | None
    change_reason: str | None
    decision: str | None
    changed_at: datetime
