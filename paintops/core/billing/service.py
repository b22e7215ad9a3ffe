import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.exceptions import NotFoundError
from paintops.common.logging import get_logger
from paintops.core.billing.aggregator import aggregate
from paintops.core.billing.money import to_money
from paintops.core.billing.resolver import EXTRA_CHARGES, resolve_billing_lines
from paintops.core.billing.schemas import (
    BaseBilling,
    JobBillingBreakdown,
    RateCard,
    WorkOrderBillingInput,
)
from paintops.db.base import utcnow
from paintops.db.models.job import Job
from paintops.db.models.property import BillingCategory, BillingDetail, UnitSize

logger = get_logger("billing.service")


def _to_card(detail: BillingDetail) -> RateCard:
    category = detail.category
    return RateCard(
        id=detail.id,
        bill_amount=to_money(detail.bill_amount),
        sub_pay_amount=to_money(detail.sub_pay_amount),
        is_hourly=detail.is_hourly,
        order_key=category.sort_order if category is not None else detail.sort_order,
        category_name=category.name if category is not None else None,
        unit_size_label=detail.unit_size.unit_size_label if detail.unit_size is not None else None,
    )


class SqlRateLookup:
    """RateLookup backed by the billing_details table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, detail_id: uuid.UUID) -> RateCard | None:
        result = await self.db.execute(
            select(BillingDetail)
            .where(BillingDetail.id == detail_id, BillingDetail.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        detail = result.scalar_one_or_none()
        return _to_card(detail) if detail else None

    async def find(
        self, property_id: uuid.UUID, category_name: str, unit_size_label: str | None = None
    ) -> RateCard | None:
        query = (
            select(BillingDetail)
            .execution_options(populate_existing=True)
            .join(BillingCategory, BillingDetail.category_id == BillingCategory.id)
            .where(
                BillingDetail.property_id == property_id,
                BillingCategory.name == category_name,
                BillingDetail.is_hourly.is_(False),
                BillingDetail.is_deleted.is_(False),
            )
        )
        if unit_size_label:
            query = query.join(UnitSize, BillingDetail.unit_size_id == UnitSize.id).where(
                UnitSize.unit_size_label == unit_size_label
            )
        result = await self.db.execute(query.order_by(BillingDetail.sort_order).limit(1))
        detail = result.scalar_one_or_none()
        return _to_card(detail) if detail else None

    async def find_hourly(
        self, property_id: uuid.UUID, category_id: uuid.UUID | None = None
    ) -> RateCard | None:
        base = select(BillingDetail).execution_options(populate_existing=True).where(
            BillingDetail.property_id == property_id,
            BillingDetail.is_hourly.is_(True),
            BillingDetail.is_deleted.is_(False),
        )
        if category_id:
            result = await self.db.execute(
                base.where(BillingDetail.category_id == category_id).limit(1)
            )
            detail = result.scalar_one_or_none()
            if detail:
                return _to_card(detail)

        result = await self.db.execute(
            base.join(BillingCategory, BillingDetail.category_id == BillingCategory.id)
            .where(BillingCategory.name == EXTRA_CHARGES)
            .limit(1)
        )
        detail = result.scalar_one_or_none()
        return _to_card(detail) if detail else None


async def find_base_billing(db: AsyncSession, job: Job) -> BaseBilling | None:
    if job.job_category_id is None:
        return None

    query = select(BillingDetail).where(
        BillingDetail.property_id == job.property_id,
        BillingDetail.category_id == job.job_category_id,
        BillingDetail.is_hourly.is_(False),
        BillingDetail.is_deleted.is_(False),
    )
    if job.unit_size_id is not None:
        query = query.where(BillingDetail.unit_size_id == job.unit_size_id)
    result = await db.execute(query.limit(1))
    detail = result.scalar_one_or_none()
    if not detail:
        return None
    return BaseBilling(
        billing_detail_id=detail.id,
        bill_amount=to_money(detail.bill_amount),
        sub_pay_amount=to_money(detail.sub_pay_amount),
    )


async def compute_job_billing(db: AsyncSession, job: Job) -> JobBillingBreakdown:
    base = await find_base_billing(db, job)
    work_order = (
        WorkOrderBillingInput.model_validate(job.work_order) if job.work_order else None
    )
    resolved = await resolve_billing_lines(
        work_order, job.property_id, SqlRateLookup(db), job.job_category_id
    )
    totals = aggregate(base, resolved.lines)
    return JobBillingBreakdown(
        job_id=job.id,
        base=base,
        lines=resolved.lines,
        warnings=resolved.warnings,
        totals=totals,
    )


async def refresh_job_total(db: AsyncSession, job: Job) -> JobBillingBreakdown:
    """Recalculate the cached jobs.total_billing_amount."""
    breakdown = await compute_job_billing(db, job)
    job.total_billing_amount = breakdown.totals.bill_total
    await db.flush()
    logger.info("Job %s billing total refreshed: %s", job.id, breakdown.totals.bill_total)
    return breakdown


async def create_billing_detail(
    db: AsyncSession, property_id: uuid.UUID, body, profit_amount
) -> BillingDetail:
    detail = BillingDetail(
        property_id=property_id,
        category_id=body.category_id,
        unit_size_id=body.unit_size_id,
        bill_amount=to_money(body.bill_amount),
        sub_pay_amount=to_money(body.sub_pay_amount),
        profit_amount=profit_amount,
        is_hourly=body.is_hourly,
        sort_order=body.sort_order,
    )
    db.add(detail)
    await db.flush()
    await db.refresh(detail)
    return detail


async def refresh_property_totals(db: AsyncSession, property_id: uuid.UUID) -> int:
    """Recalculate cached totals for every job on a property after a rate card change."""
    result = await db.execute(
        select(Job)
        .where(Job.property_id == property_id, Job.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    jobs = result.scalars().all()
    for job in jobs:
        await refresh_job_total(db, job)
    return len(jobs)


async def list_billing_details(db: AsyncSession, property_id: uuid.UUID) -> list[BillingDetail]:
    result = await db.execute(
        select(BillingDetail)
        .where(BillingDetail.property_id == property_id, BillingDetail.is_deleted.is_(False))
        .order_by(BillingDetail.sort_order)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def delete_billing_detail(db: AsyncSession, detail_id: uuid.UUID) -> BillingDetail:
    result = await db.execute(
        select(BillingDetail).where(
            BillingDetail.id == detail_id, BillingDetail.is_deleted.is_(False)
        )
    )
    detail = result.scalar_one_or_none()
    if not detail:
        raise NotFoundError("Billing detail", str(detail_id))
    detail.is_deleted = True
    detail.deleted_at = utcnow()
    await db.flush()
    return detail
