import uuid
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from paintops.common.enums import JobBillingCategory
from paintops.core.billing.money import ZERO, to_decimal, to_money


class RateCard(BaseModel):
    """A billing detail row as seen by the resolver."""

    id: uuid.UUID
    bill_amount: Decimal = ZERO
    sub_pay_amount: Decimal = ZERO
    is_hourly: bool = False
    order_key: int = 0
    category_name: str | None = None
    unit_size_label: str | None = None


class BillingLine(BaseModel):
    key: str
    label: str
    section: Literal["supplemental", "extra"]
    quantity: Decimal
    unit_label: str | None = None
    rate_bill: Decimal
    rate_sub: Decimal
    amount_bill: Decimal
    amount_sub: Decimal
    order_key: int = 0


class ResolvedLines(BaseModel):
    lines: list[BillingLine] = []
    warnings: list[str] = []


class BaseBilling(BaseModel):
    billing_detail_id: uuid.UUID | None = None
    bill_amount: Decimal = ZERO
    sub_pay_amount: Decimal = ZERO


class BillingTotals(BaseModel):
    bill_total: Decimal
    sub_pay_total: Decimal
    profit_total: Decimal
    extra_bill_total: Decimal
    extra_sub_pay_total: Decimal


class JobBillingBreakdown(BaseModel):
    job_id: uuid.UUID
    base: BaseBilling | None
    lines: list[BillingLine]
    warnings: list[str]
    totals: BillingTotals


# ---------- Extra charges ----------


class ExtraChargeLineItem(BaseModel):
    """One itemized extra charge as stored on the work order."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    category_id: str | None = None
    category_name: str = "Extra Charges"
    detail_id: str | None = None
    detail_name: str | None = None
    quantity: Decimal = ZERO
    bill_rate: Decimal = ZERO
    sub_rate: Decimal = ZERO
    is_hourly: bool = False
    job_billing_category: JobBillingCategory = JobBillingCategory.OWNER
    notes: str | None = None
    calculated_bill_amount: Decimal | None = None
    calculated_sub_amount: Decimal | None = None

    @field_validator("quantity", "bill_rate", "sub_rate", mode="before")
    @classmethod
    def _coerce_number(cls, v):
        return to_decimal(v) or ZERO

    @field_validator("calculated_bill_amount", "calculated_sub_amount", mode="before")
    @classmethod
    def _coerce_optional(cls, v):
        return to_decimal(v)


class NoExtraCharges(BaseModel):
    kind: Literal["none"] = "none"


class ItemizedExtraCharges(BaseModel):
    kind: Literal["itemized"] = "itemized"
    items: list[ExtraChargeLineItem]


class LegacyExtraCharges(BaseModel):
    kind: Literal["legacy"] = "legacy"
    description: str | None = None
    hours: Decimal = ZERO
    hourly_rate: Decimal | None = None
    sub_pay_rate: Decimal | None = None


ExtraCharges = Annotated[
    NoExtraCharges | ItemizedExtraCharges | LegacyExtraCharges,
    Field(discriminator="kind"),
]


class WorkOrderBillingInput(BaseModel):
    """The billing-relevant flags of a work order."""

    model_config = ConfigDict(from_attributes=True)

    painted_ceilings: bool = False
    ceiling_billing_detail_id: uuid.UUID | None = None
    ceiling_display_label: str | None = None
    individual_ceiling_count: int | None = None

    has_accent_wall: bool = False
    accent_wall_type: str | None = None
    accent_wall_count: int | None = None
    accent_wall_billing_detail_id: uuid.UUID | None = None

    has_extra_charges: bool = False
    extra_charges_line_items: list[ExtraChargeLineItem] | None = None
    extra_charges_description: str | None = None
    extra_hours: Decimal | None = None
    extra_hourly_rate: Decimal | None = None
    extra_sub_pay_rate: Decimal | None = None

    @field_validator("painted_ceilings", "has_accent_wall", "has_extra_charges", mode="before")
    @classmethod
    def _none_is_false(cls, v):
        return bool(v)

    @field_validator("individual_ceiling_count", "accent_wall_count", mode="before")
    @classmethod
    def _coerce_count(cls, v):
        number = to_decimal(v)
        return int(number) if number is not None else None

    @field_validator("extra_hours", "extra_hourly_rate", "extra_sub_pay_rate", mode="before")
    @classmethod
    def _coerce_decimal(cls, v):
        return to_decimal(v)


# ---------- Rate card writes ----------


class BillingDetailCreate(BaseModel):
    category_id: uuid.UUID
    unit_size_id: uuid.UUID | None = None
    bill_amount: Decimal = Field(ge=0)
    sub_pay_amount: Decimal = Field(ge=0)
    profit_amount: Decimal | None = None
    is_hourly: bool = False
    sort_order: int = 0

    def normalized_profit(self) -> Decimal | None:
        """Apply the rate card invariant: hourly rows carry no profit, others carry bill - sub."""
        if self.is_hourly:
            if self.profit_amount is not None:
                raise ValueError("Hourly billing details must not have a profit amount")
            return None
        expected = to_money(self.bill_amount - self.sub_pay_amount)
        if self.profit_amount is not None and to_money(self.profit_amount) != expected:
            raise ValueError(
                f"profit_amount must equal bill_amount - sub_pay_amount ({expected})"
            )
        return expected


class BillingDetailResponse(BaseModel):
    id: uuid.UUID
    property_id: uuid.UUID
    category_id: uuid.UUID
    category_name: str | None
    unit_size_id: uuid.UUID | None
    unit_size_label: str | None
    bill_amount: Decimal
    sub_pay_amount: Decimal
    profit_amount: Decimal | None
    is_hourly: bool
