"""Job phase transitions.

Every transition updates the job and appends a ``job_phase_changes`` row in
the caller's transaction; ``get_db`` commits both or neither.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.enums import (
    ApprovalStatus,
    ApprovalType,
    NotificationCategory,
    PhaseDecision,
    PhaseLabel,
)
from paintops.common.events import queue_event
from paintops.common.exceptions import BadRequestError, ConflictError, NotFoundError
from paintops.common.logging import get_logger
from paintops.core.approvals.service import (
    effective_decision,
    ensure_decidable,
    get_token,
    record_decision,
    supersede_pending_tokens,
)
from paintops.core.jobs.schemas import WorkOrderSubmit
from paintops.core.jobs.service import job_number, load_job, save_work_order
from paintops.core.notifications.service import create_notification
from paintops.core.phases import workflow
from paintops.core.phases.catalog import get_phase
from paintops.db.base import utcnow
from paintops.db.models.approval import ApprovalToken
from paintops.db.models.job import Job, JobPhase, JobPhaseChange
from paintops.db.models.profile import Profile

logger = get_logger("phases.service")


def current_phase(job: Job) -> PhaseLabel:
    return PhaseLabel(job.phase.job_phase_label)


async def _record_change(
    db: AsyncSession,
    job: Job,
    to_phase: JobPhase,
    changed_by: uuid.UUID | None,
    change_reason: str | None,
    decision: PhaseDecision | None = None,
) -> JobPhaseChange:
    change = JobPhaseChange(
        job_id=job.id,
        changed_by=changed_by,
        from_phase_id=job.current_phase_id,
        to_phase_id=to_phase.id,
        change_reason=change_reason,
        decision=decision.value if decision else None,
        changed_at=utcnow(),
    )
    from_label = job.phase.job_phase_label if job.phase else None
    job.current_phase_id = to_phase.id
    job.phase = to_phase
    db.add(change)
    await db.flush()

    logger.info(
        "Job %s phase %s -> %s (decision=%s)",
        job.id, from_label, to_phase.job_phase_label, change.decision,
    )
    queue_event(db, str(job.id), "job.updated", {
        "job_id": str(job.id),
        "from_phase": from_label,
        "to_phase": to_phase.job_phase_label,
    })
    return change


async def _transition(
    db: AsyncSession,
    job: Job,
    target: PhaseLabel,
    actor: Profile | None,
    reason: str,
    decision: PhaseDecision | None = None,
) -> Job:
    to_phase = await get_phase(db, target)
    await _record_change(db, job, to_phase, actor.id if actor else None, reason, decision)
    return job


def _actor_name(actor: Profile | None) -> str:
    return actor.full_name if actor else "system"


# ---------- RPC equivalents ----------


async def update_job_phase(
    db: AsyncSession,
    job_id: uuid.UUID,
    new_phase_id: uuid.UUID,
    changed_by: uuid.UUID | None,
    change_reason: str | None,
    decision: PhaseDecision | None = None,
) -> JobPhaseChange:
    """Move a job to any phase by id and write the audit row."""
    job = await load_job(db, job_id)
    result = await db.execute(
        select(JobPhase).where(JobPhase.id == new_phase_id, JobPhase.is_deleted.is_(False))
    )
    to_phase = result.scalar_one_or_none()
    if not to_phase:
        raise NotFoundError("Job phase", str(new_phase_id))
    if to_phase.id == job.current_phase_id:
        raise BadRequestError(f"Job is already in '{to_phase.job_phase_label}'")
    return await _record_change(db, job, to_phase, changed_by, change_reason, decision)


async def get_job_phase_changes(db: AsyncSession, job_id: uuid.UUID) -> list[dict]:
    result = await db.execute(
        select(JobPhaseChange)
        .where(JobPhaseChange.job_id == job_id, JobPhaseChange.is_deleted.is_(False))
        .order_by(JobPhaseChange.changed_at.desc())
        .execution_options(populate_existing=True)
    )
    return [
        {
            "id": c.id,
            "job_id": c.job_id,
            "from_phase": c.from_phase.job_phase_label if c.from_phase else None,
            "to_phase": c.to_phase.job_phase_label,
            "changed_by": c.changed_by,
            "changed_by_name": c.changer.full_name if c.changer else None,
            "change_reason": c.change_reason,
            "decision": c.decision,
            "changed_at": c.changed_at,
        }
        for c in result.scalars().all()
    ]


# ---------- Navigation ----------


async def advance(db: AsyncSession, job: Job, actor: Profile | None) -> Job:
    target = workflow.next_phase(current_phase(job))
    if target == PhaseLabel.COMPLETED and job.completed_date is None:
        job.completed_date = utcnow().date()
    return await _transition(db, job, target, actor, f"Advanced to {target.value} by {_actor_name(actor)}")


async def revert(db: AsyncSession, job: Job, actor: Profile | None) -> Job:
    current = current_phase(job)
    target = workflow.previous_phase(current)
    if current == PhaseLabel.COMPLETED:
        job.completed_date = None
    return await _transition(db, job, target, actor, f"Reverted to {target.value} by {_actor_name(actor)}")


# ---------- Work order ----------


async def submit_work_order(
    db: AsyncSession, job: Job, body: WorkOrderSubmit, actor: Profile | None
) -> Job:
    workflow.require_phase(current_phase(job), PhaseLabel.JOB_REQUEST, action="submit a work order")

    job = await save_work_order(db, job, body, actor)
    target = workflow.submission_target(body.has_extra_charges)
    reason = f"Work order submitted by {_actor_name(actor)}"
    if target == PhaseLabel.PENDING_WORK_ORDER:
        reason += "; extra charges require approval"
    return await _transition(db, job, target, actor, reason)


async def update_work_order(
    db: AsyncSession, job: Job, body: WorkOrderSubmit, actor: Profile | None
) -> Job:
    workflow.require_phase(
        current_phase(job),
        PhaseLabel.PENDING_WORK_ORDER, PhaseLabel.WORK_ORDER, PhaseLabel.INVOICING,
        action="edit the work order",
    )
    job = await save_work_order(db, job, body, actor)
    queue_event(db, str(job.id), "job.updated", {"job_id": str(job.id), "work_order": "updated"})
    return job


# ---------- Extra charges decisions ----------


async def approve_extra_charges(db: AsyncSession, job: Job, actor: Profile | None) -> Job:
    """Manual approval by office staff, without an approval link."""
    workflow.require_phase(
        current_phase(job), PhaseLabel.PENDING_WORK_ORDER, action="approve extra charges"
    )
    await supersede_pending_tokens(db, job.id)
    return await _transition(
        db, job, PhaseLabel.WORK_ORDER, actor,
        f"Extra charges approved by {_actor_name(actor)}",
        PhaseDecision.APPROVED,
    )


async def _notify_creator(db: AsyncSession, job: Job, approval: ApprovalToken) -> None:
    if job.created_by is None:
        return
    who = approval.approver_name or approval.approver_email or "The property contact"
    body = f"{who} {approval.status} the extra charges for {job_number(job.work_order_num)}."
    if approval.decline_reason:
        body += f" Reason: {approval.decline_reason}"
    await create_notification(
        db,
        user_id=job.created_by,
        category=NotificationCategory.APPROVAL.value,
        title=f"Extra charges {approval.status}",
        body=body,
        job_id=job.id,
        action_url=f"/jobs/{job.id}",
    )


async def decide_via_token(
    db: AsyncSession, token: str, decision: ApprovalStatus, reason: str | None = None
) -> ApprovalToken:
    """Record a decision made through an approval link and apply it to the job."""
    approval = await get_token(db, token)
    if approval.approval_type != ApprovalType.EXTRA_CHARGES.value:
        raise BadRequestError("Preview links cannot be used to approve or decline")
    ensure_decidable(approval)

    job = await load_job(db, approval.job_id)
    if current_phase(job) != PhaseLabel.PENDING_WORK_ORDER:
        raise BadRequestError(
            f"This job is no longer awaiting approval (now in '{current_phase(job).value}')"
        )
    await record_decision(db, approval, decision, reason)

    if decision == ApprovalStatus.APPROVED:
        who = approval.approver_name or approval.approver_email or "property contact"
        await _transition(
            db, job, PhaseLabel.WORK_ORDER, None,
            f"Extra charges approved by {who} via approval link",
            PhaseDecision.APPROVED,
        )
    else:
        queue_event(db, str(job.id), "job.updated", {"job_id": str(job.id), "approval": decision.value})

    await _notify_creator(db, job, approval)
    return approval


async def approve_via_token(db: AsyncSession, token: str) -> ApprovalToken:
    return await decide_via_token(db, token, ApprovalStatus.APPROVED)


async def decline_extra_charges(
    db: AsyncSession, token: str, reason: str | None = None
) -> ApprovalToken:
    return await decide_via_token(db, token, ApprovalStatus.DECLINED, reason)


async def cancel_from_decline(db: AsyncSession, job: Job, actor: Profile | None) -> Job:
    current = current_phase(job)
    if current not in workflow.CANCELLABLE:
        raise BadRequestError(f"Cannot cancel a job in '{current.value}'")
    if await effective_decision(db, job.id) != ApprovalStatus.DECLINED:
        raise BadRequestError("Only jobs whose extra charges were declined can be cancelled")
    return await _transition(
        db, job, PhaseLabel.CANCELLED, actor,
        f"Cancelled by {_actor_name(actor)} after extra charges were declined",
    )


async def reactivate(db: AsyncSession, job: Job, actor: Profile | None) -> Job:
    """Return a cancelled job to Pending Work Order and clear the previous decision."""
    workflow.require_phase(current_phase(job), PhaseLabel.CANCELLED, action="reactivate the job")
    return await _transition(
        db, job, PhaseLabel.PENDING_WORK_ORDER, actor,
        f"Reactivated by {_actor_name(actor)}",
        PhaseDecision.RESET,
    )


# ---------- Invoicing ----------


async def mark_invoice_sent(db: AsyncSession, job: Job, actor: Profile | None) -> Job:
    workflow.require_phase(current_phase(job), PhaseLabel.INVOICING, action="mark the invoice sent")
    if job.invoice_sent:
        raise ConflictError("Invoice was already marked as sent")
    job.invoice_sent = True
    job.invoice_sent_date = utcnow()
    await db.flush()
    logger.info("Job %s invoice sent (by %s)", job.id, _actor_name(actor))
    queue_event(db, str(job.id), "job.updated", {"job_id": str(job.id), "invoice_sent": True})
    return job


async def mark_invoice_paid(db: AsyncSession, job: Job, actor: Profile | None) -> Job:
    """Flag the invoice paid; a paid invoice completes the job."""
    workflow.require_phase(current_phase(job), PhaseLabel.INVOICING, action="mark the invoice paid")
    now = utcnow()
    if not job.invoice_sent:
        job.invoice_sent = True
        job.invoice_sent_date = now
    job.invoice_paid = True
    job.invoice_paid_date = now
    job.completed_date = job.completed_date or now.date()
    return await _transition(
        db, job, PhaseLabel.COMPLETED, actor,
        f"Invoice marked paid by {_actor_name(actor)}",
    )


async def archive(db: AsyncSession, job: Job, actor: Profile | None) -> Job:
    current = current_phase(job)
    if current not in workflow.ARCHIVABLE:
        raise BadRequestError(f"Only completed or cancelled jobs can be archived (job is in '{current.value}')")
    return await _transition(db, job, PhaseLabel.ARCHIVED, actor, f"Archived by {_actor_name(actor)}")
