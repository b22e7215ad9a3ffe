import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.enums import PhaseLabel
from paintops.common.exceptions import BadRequestError, NotFoundError
from paintops.common.logging import get_logger
from paintops.core.billing.service import refresh_job_total
from paintops.core.jobs.schemas import JobCreate, JobUpdate, WorkOrderSubmit
from paintops.core.phases.catalog import get_phase
from paintops.db.base import utcnow
from paintops.db.models.approval import ApprovalToken
from paintops.db.models.email import EmailAttachment, EmailLog
from paintops.db.models.job import Job, JobImage, JobPhase, JobPhaseChange
from paintops.db.models.notification import Notification
from paintops.db.models.profile import Profile
from paintops.db.models.property import Property
from paintops.db.models.work_order import WorkOrder
from paintops.integrations.storage import StorageClient

logger = get_logger("jobs.service")


def job_number(work_order_num: int) -> str:
    return f"WO-{work_order_num:06d}"


async def load_job(db: AsyncSession, job_id: uuid.UUID) -> Job:
    """Fetch a job with its relationships freshly loaded from the database."""
    result = await db.execute(
        select(Job)
        .where(Job.id == job_id, Job.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    job = result.scalar_one_or_none()
    if not job:
        raise NotFoundError("Job", str(job_id))
    return job


async def next_work_order_num(db: AsyncSession) -> int:
    result = await db.execute(select(func.max(Job.work_order_num)))
    return (result.scalar() or 0) + 1


async def create_job(db: AsyncSession, body: JobCreate, created_by: Profile | None) -> Job:
    result = await db.execute(
        select(Property).where(Property.id == body.property_id, Property.is_deleted.is_(False))
    )
    if not result.scalar_one_or_none():
        raise NotFoundError("Property", str(body.property_id))

    phase = await get_phase(db, PhaseLabel.JOB_REQUEST)
    job = Job(
        **body.model_dump(),
        work_order_num=await next_work_order_num(db),
        current_phase_id=phase.id,
        created_by=created_by.id if created_by else None,
    )
    db.add(job)
    await db.flush()

    logger.info("Job request created: %s (%s)", job.id, job_number(job.work_order_num))
    return await load_job(db, job.id)


async def update_job(db: AsyncSession, job: Job, body: JobUpdate) -> Job:
    changes = body.model_dump(exclude_unset=True)
    if changes.get("unit_number", "") is None:
        raise BadRequestError("unit_number cannot be cleared")
    for field, value in changes.items():
        setattr(job, field, value)
    await db.flush()

    if {"unit_size_id", "job_category_id"} & changes.keys():
        job = await load_job(db, job.id)
        await refresh_job_total(db, job)
    return await load_job(db, job.id)


async def assign_job(db: AsyncSession, job: Job, assignee_id: uuid.UUID | None) -> Job:
    if assignee_id is not None:
        result = await db.execute(
            select(Profile).where(Profile.id == assignee_id, Profile.is_deleted.is_(False))
        )
        if not result.scalar_one_or_none():
            raise NotFoundError("Profile", str(assignee_id))
    job.assigned_to = assignee_id
    await db.flush()
    logger.info("Job %s assigned to %s", job.id, assignee_id)
    return await load_job(db, job.id)


def list_jobs_query(
    phase: PhaseLabel | None = None,
    property_id: uuid.UUID | None = None,
    assigned_to: uuid.UUID | None = None,
):
    query = select(Job).where(Job.is_deleted.is_(False))
    if phase is not None:
        query = query.join(JobPhase, Job.current_phase_id == JobPhase.id).where(
            JobPhase.job_phase_label == phase.value
        )
    if property_id is not None:
        query = query.where(Job.property_id == property_id)
    if assigned_to is not None:
        query = query.where(Job.assigned_to == assigned_to)
    return query.order_by(Job.work_order_num.desc()).execution_options(populate_existing=True)


async def save_work_order(
    db: AsyncSession, job: Job, body: WorkOrderSubmit, prepared_by: Profile | None
) -> Job:
    """Create or update the job's work order and refresh the cached billing total."""
    values = body.model_dump(exclude={"extra_charges_line_items"})
    values["extra_charges_line_items"] = [
        item.model_dump(mode="json") for item in body.extra_charges_line_items or []
    ]
    values["accent_wall_type"] = body.accent_wall_type.value if body.accent_wall_type else None

    if not body.has_accent_wall and body.accent_wall_type is not None:
        raise BadRequestError("accent_wall_type requires has_accent_wall")

    work_order = job.work_order
    if work_order is None:
        work_order = WorkOrder(job_id=job.id)
        db.add(work_order)
    for field, value in values.items():
        setattr(work_order, field, value)
    work_order.prepared_by = prepared_by.id if prepared_by else work_order.prepared_by
    work_order.submission_date = utcnow()
    await db.flush()

    job = await load_job(db, job.id)
    await refresh_job_total(db, job)
    return job


# ---------- Details ----------


def _property_dict(prop: Property | None) -> dict | None:
    if prop is None:
        return None
    return {
        "id": prop.id,
        "property_name": prop.property_name,
        "address": prop.address,
        "address_2": prop.address_2,
        "city": prop.city,
        "state": prop.state,
        "zip": prop.zip,
        "ap_name": prop.ap_name,
        "ap_email": prop.ap_email,
    }


def _work_order_dict(wo: WorkOrder | None) -> dict | None:
    if wo is None:
        return None
    return {
        "id": wo.id,
        "prepared_by": wo.prepared_by,
        "submission_date": wo.submission_date,
        "is_occupied": wo.is_occupied,
        "is_full_paint": wo.is_full_paint,
        "painted_patio": wo.painted_patio,
        "painted_garage": wo.painted_garage,
        "painted_cabinets": wo.painted_cabinets,
        "painted_crown_molding": wo.painted_crown_molding,
        "painted_front_door": wo.painted_front_door,
        "painted_ceilings": wo.painted_ceilings,
        "ceiling_billing_detail_id": wo.ceiling_billing_detail_id,
        "ceiling_display_label": wo.ceiling_display_label,
        "individual_ceiling_count": wo.individual_ceiling_count,
        "has_accent_wall": wo.has_accent_wall,
        "accent_wall_type": wo.accent_wall_type,
        "accent_wall_count": wo.accent_wall_count,
        "accent_wall_billing_detail_id": wo.accent_wall_billing_detail_id,
        "has_extra_charges": wo.has_extra_charges,
        "extra_charges_line_items": wo.extra_charges_line_items or [],
        "extra_charges_description": wo.extra_charges_description,
        "extra_hours": wo.extra_hours,
        "extra_hourly_rate": wo.extra_hourly_rate,
        "extra_sub_pay_rate": wo.extra_sub_pay_rate,
        "additional_comments": wo.additional_comments,
    }


def job_details(job: Job) -> dict:
    """Nested view of a loaded job: property, phase, work order and assignee."""
    return {
        "id": job.id,
        "work_order_num": job.work_order_num,
        "job_number": job_number(job.work_order_num),
        "unit_number": job.unit_number,
        "job_type": job.job_type,
        "description": job.description,
        "scheduled_date": job.scheduled_date,
        "completed_date": job.completed_date,
        "invoice_sent": job.invoice_sent,
        "invoice_sent_date": job.invoice_sent_date,
        "invoice_paid": job.invoice_paid,
        "invoice_paid_date": job.invoice_paid_date,
        "total_billing_amount": job.total_billing_amount,
        "created_by": job.created_by,
        "property": _property_dict(job.property),
        "unit_size": (
            {"id": job.unit_size.id, "unit_size_label": job.unit_size.unit_size_label}
            if job.unit_size else None
        ),
        "job_category": (
            {"id": job.job_category.id, "name": job.job_category.name}
            if job.job_category else None
        ),
        "job_phase": (
            {
                "id": job.phase.id,
                "job_phase_label": job.phase.job_phase_label,
                "color": job.phase.color,
            }
            if job.phase else None
        ),
        "assigned_to": (
            {
                "id": job.assignee.id,
                "full_name": job.assignee.full_name,
                "email": job.assignee.email,
            }
            if job.assignee else None
        ),
        "work_order": _work_order_dict(job.work_order),
    }


async def get_job_details(db: AsyncSession, job_id: uuid.UUID) -> dict:
    return job_details(await load_job(db, job_id))


# ---------- Delete ----------


async def delete_job(db: AsyncSession, job_id: uuid.UUID) -> list[str]:
    """Remove a job and every dependent row in the current transaction.

    Returns the storage prefixes to purge once the transaction has committed.
    """
    job = await load_job(db, job_id)
    prefixes = [f"{job.id}/"]
    if job.work_order is not None:
        prefixes.insert(0, f"{job.work_order.id}/")

    log_ids = select(EmailLog.id).where(EmailLog.job_id == job.id).scalar_subquery()
    await db.execute(delete(EmailAttachment).where(EmailAttachment.email_log_id.in_(log_ids)))
    await db.execute(delete(EmailLog).where(EmailLog.job_id == job.id))
    await db.execute(delete(ApprovalToken).where(ApprovalToken.job_id == job.id))
    await db.execute(delete(JobPhaseChange).where(JobPhaseChange.job_id == job.id))
    await db.execute(delete(JobImage).where(JobImage.job_id == job.id))
    await db.execute(delete(Notification).where(Notification.job_id == job.id))
    await db.execute(delete(WorkOrder).where(WorkOrder.job_id == job.id))
    await db.execute(delete(Job).where(Job.id == job.id))
    await db.flush()

    logger.info("Job %s deleted with dependent rows", job_id)
    return prefixes


async def purge_job_files(storage: StorageClient, prefixes: list[str]) -> int:
    """Delete stored objects under each prefix. Failures are logged, not raised."""
    removed = 0
    for prefix in prefixes:
        try:
            keys = await storage.list_files(prefix)
        except Exception as e:
            logger.error("Listing storage prefix %s failed: %s", prefix, e)
            continue
        for key in keys:
            try:
                if await storage.delete_file(key):
                    removed += 1
            except Exception as e:
                logger.error("Deleting storage object %s failed: %s", key, e)
    logger.info("Purged %d stored files for prefixes %s", removed, prefixes)
    return removed
