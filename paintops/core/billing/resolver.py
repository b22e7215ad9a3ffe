"""Resolve a work order's declarative flags into billable lines.

A missing rate is a soft failure: the line is omitted and a warning string is
returned instead, so a charge is never invented.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Protocol

from paintops.common.logging import get_logger
from paintops.core.billing.money import ZERO, multiply, to_money
from paintops.core.billing.schemas import (
    BillingLine,
    ExtraCharges,
    ItemizedExtraCharges,
    LegacyExtraCharges,
    NoExtraCharges,
    RateCard,
    ResolvedLines,
    WorkOrderBillingInput,
)

logger = get_logger("billing.resolver")

PAINTED_CEILINGS = "Painted Ceilings"
PAINT_INDIVIDUAL_CEILING = "Paint Individual Ceiling"
ACCENT_WALL = "Accent Wall"
EXTRA_CHARGES = "Extra Charges"

CEILING_RATE_MISSING = "Painted Ceilings rate missing in Property Billing."
ACCENT_WALL_RATE_MISSING = "Accent Wall rate missing in Property Billing."
HOURLY_RATE_MISSING = "Extra Charges hourly rate missing in Property Billing."

# Extra charges sort after every supplemental category
EXTRA_ORDER_KEY = 10_000


class RateLookup(Protocol):
    async def get_by_id(self, detail_id: uuid.UUID) -> RateCard | None: ...

    async def find(
        self, property_id: uuid.UUID, category_name: str, unit_size_label: str | None = None
    ) -> RateCard | None: ...

    async def find_hourly(
        self, property_id: uuid.UUID, category_id: uuid.UUID | None = None
    ) -> RateCard | None: ...


def extra_charges_of(work_order: WorkOrderBillingInput | None) -> ExtraCharges:
    if work_order is None or not work_order.has_extra_charges:
        return NoExtraCharges()
    if work_order.extra_charges_line_items:
        return ItemizedExtraCharges(items=work_order.extra_charges_line_items)
    return LegacyExtraCharges(
        description=work_order.extra_charges_description,
        hours=work_order.extra_hours or ZERO,
        hourly_rate=work_order.extra_hourly_rate,
        sub_pay_rate=work_order.extra_sub_pay_rate,
    )


def accent_wall_category_candidates(accent_wall_type: str | None) -> list[str]:
    if not accent_wall_type:
        return [ACCENT_WALL]
    return [
        f"{ACCENT_WALL} - {accent_wall_type}",
        f"{ACCENT_WALL} ({accent_wall_type})",
        ACCENT_WALL,
    ]


def _line(
    key: str,
    label: str,
    section: str,
    quantity: Decimal,
    unit_label: str | None,
    rate_bill: Decimal,
    rate_sub: Decimal,
    order_key: int,
    amount_bill: Decimal | None = None,
    amount_sub: Decimal | None = None,
) -> BillingLine:
    return BillingLine(
        key=key,
        label=label,
        section=section,
        quantity=quantity,
        unit_label=unit_label,
        rate_bill=rate_bill,
        rate_sub=rate_sub,
        amount_bill=amount_bill if amount_bill is not None else multiply(quantity, rate_bill),
        amount_sub=amount_sub if amount_sub is not None else multiply(quantity, rate_sub),
        order_key=order_key,
    )


async def _resolve_ceiling(
    wo: WorkOrderBillingInput, property_id: uuid.UUID, rates: RateLookup
) -> BillingLine | None:
    individual = bool(wo.individual_ceiling_count) and wo.ceiling_display_label in (
        None,
        PAINT_INDIVIDUAL_CEILING,
    )
    label = PAINT_INDIVIDUAL_CEILING if individual else wo.ceiling_display_label

    card = None
    if wo.ceiling_billing_detail_id:
        card = await rates.get_by_id(wo.ceiling_billing_detail_id)
    if card is None:
        card = await rates.find(property_id, PAINTED_CEILINGS, label)
    if card is None:
        return None

    quantity = Decimal(wo.individual_ceiling_count) if individual else Decimal(1)
    suffix = "Individual" if individual else (label or "Unit")
    return _line(
        key="painted_ceilings",
        label=f"{PAINTED_CEILINGS} ({suffix})",
        section="supplemental",
        quantity=quantity,
        unit_label=label,
        rate_bill=card.bill_amount,
        rate_sub=card.sub_pay_amount,
        order_key=card.order_key,
    )


async def _resolve_accent_wall(
    wo: WorkOrderBillingInput, property_id: uuid.UUID, rates: RateLookup
) -> BillingLine | None:
    card = None
    if wo.accent_wall_billing_detail_id:
        card = await rates.get_by_id(wo.accent_wall_billing_detail_id)
    if card is None:
        for name in accent_wall_category_candidates(wo.accent_wall_type):
            card = await rates.find(property_id, name)
            if card is not None:
                break
    if card is None:
        return None

    count = wo.accent_wall_count or 0
    quantity = Decimal(count if count > 0 else 1)
    type_suffix = f" ({wo.accent_wall_type})" if wo.accent_wall_type else ""
    return _line(
        key="accent_wall",
        label=f"{ACCENT_WALL}{type_suffix}",
        section="supplemental",
        quantity=quantity,
        unit_label="Per Wall",
        rate_bill=card.bill_amount,
        rate_sub=card.sub_pay_amount,
        order_key=card.order_key,
    )


def _itemized_lines(extra: ItemizedExtraCharges) -> list[BillingLine]:
    lines = []
    for index, item in enumerate(extra.items):
        label = f"{EXTRA_CHARGES} - {item.category_name}"
        if item.detail_name:
            label += f" ({item.detail_name})"
        if item.notes:
            label += f" - {item.notes}"
        lines.append(
            _line(
                key=f"extra_{item.id or index}",
                label=label,
                section="extra",
                quantity=item.quantity,
                unit_label="Hours" if item.is_hourly else item.detail_name,
                rate_bill=item.bill_rate,
                rate_sub=item.sub_rate,
                order_key=EXTRA_ORDER_KEY + index,
                # a precomputed amount survives re-saves unchanged
                amount_bill=item.calculated_bill_amount,
                amount_sub=item.calculated_sub_amount,
            )
        )
    return lines


async def _legacy_line(
    extra: LegacyExtraCharges,
    property_id: uuid.UUID,
    job_category_id: uuid.UUID | None,
    rates: RateLookup,
    warnings: list[str],
) -> BillingLine | None:
    if extra.hours <= 0:
        return None

    rate_bill, rate_sub = extra.hourly_rate, extra.sub_pay_rate
    if rate_bill is None:
        card = await rates.find_hourly(property_id, job_category_id)
        if card is None:
            warnings.append(HOURLY_RATE_MISSING)
            return None
        rate_bill, rate_sub = card.bill_amount, card.sub_pay_amount

    label = EXTRA_CHARGES
    if extra.description:
        label += f" - {extra.description}"
    return _line(
        key="extra_hourly",
        label=label,
        section="extra",
        quantity=extra.hours,
        unit_label="Hours",
        rate_bill=to_money(rate_bill),
        rate_sub=to_money(rate_sub),
        order_key=EXTRA_ORDER_KEY,
    )


async def resolve_billing_lines(
    work_order: WorkOrderBillingInput | None,
    property_id: uuid.UUID,
    rates: RateLookup,
    job_category_id: uuid.UUID | None = None,
) -> ResolvedLines:
    if work_order is None:
        return ResolvedLines()

    lines: list[BillingLine] = []
    warnings: list[str] = []

    if work_order.painted_ceilings:
        line = await _resolve_ceiling(work_order, property_id, rates)
        if line:
            lines.append(line)
        else:
            warnings.append(CEILING_RATE_MISSING)

    if work_order.has_accent_wall:
        line = await _resolve_accent_wall(work_order, property_id, rates)
        if line:
            lines.append(line)
        else:
            warnings.append(ACCENT_WALL_RATE_MISSING)

    extra = extra_charges_of(work_order)
    if isinstance(extra, ItemizedExtraCharges):
        lines.extend(_itemized_lines(extra))
    elif isinstance(extra, LegacyExtraCharges):
        line = await _legacy_line(extra, property_id, job_category_id, rates, warnings)
        if line:
            lines.append(line)

    if warnings:
        logger.warning("Billing resolved with gaps for property %s: %s", property_id, warnings)

    lines.sort(key=lambda ln: (ln.order_key, ln.label))
    return ResolvedLines(lines=lines, warnings=warnings)
