import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.enums import ApprovalStatus, ApprovalType
from paintops.common.exceptions import BadRequestError, ConflictError, NotFoundError
from paintops.common.logging import get_logger
from paintops.core.approvals.tokens import DECIDED, expiry_for, generate_token, token_state
from paintops.core.phases.workflow import resolve_effective_decision
from paintops.db.base import as_aware, utcnow
from paintops.db.models.approval import ApprovalToken
from paintops.db.models.job import Job, JobPhaseChange

logger = get_logger("approvals.service")


async def issue_token(
    db: AsyncSession,
    job: Job,
    snapshot: dict,
    approver_email: str | None,
    approver_name: str | None,
    preview: bool = False,
) -> ApprovalToken:
    now = utcnow()
    approval_type = (
        ApprovalType.EXTRA_CHARGES_PREVIEW if preview else ApprovalType.EXTRA_CHARGES
    )
    token = ApprovalToken(
        job_id=job.id,
        token=generate_token(job.id, now),
        approval_type=approval_type.value,
        extra_charges_data=snapshot,
        approver_email=approver_email or None,
        approver_name=approver_name or None,
        expires_at=expiry_for(now, preview),
        sent_at=None if preview else now,
        status=ApprovalStatus.PENDING.value,
    )
    db.add(token)
    await db.flush()
    await db.refresh(token)

    logger.info(
        "Issued %s token for job %s (expires %s)", approval_type.value, job.id, token.expires_at
    )
    return token


async def get_token(db: AsyncSession, token: str) -> ApprovalToken:
    result = await db.execute(
        select(ApprovalToken).where(
            ApprovalToken.token == token, ApprovalToken.is_deleted.is_(False)
        )
        .execution_options(populate_existing=True)
    )
    approval = result.scalar_one_or_none()
    if not approval:
        raise NotFoundError("Approval token")
    return approval


async def resolve_pending_token(
    db: AsyncSession,
    job_id: uuid.UUID,
    approval_type: str = ApprovalType.EXTRA_CHARGES.value,
) -> ApprovalToken | None:
    """Return the unexpired, undecided token for a job, if any."""
    result = await db.execute(
        select(ApprovalToken)
        .where(
            ApprovalToken.job_id == job_id,
            ApprovalToken.approval_type == approval_type,
            ApprovalToken.status == ApprovalStatus.PENDING.value,
            ApprovalToken.is_deleted.is_(False),
        )
        .order_by(ApprovalToken.expires_at.desc())
        .execution_options(populate_existing=True)
    )
    now = utcnow()
    for token in result.scalars().all():
        if token_state(token, now) == ApprovalStatus.PENDING:
            return token
    return None


async def latest_decided_token(
    db: AsyncSession,
    job_id: uuid.UUID,
    approval_type: str = ApprovalType.EXTRA_CHARGES.value,
) -> ApprovalToken | None:
    result = await db.execute(
        select(ApprovalToken)
        .where(
            ApprovalToken.job_id == job_id,
            ApprovalToken.approval_type == approval_type,
            ApprovalToken.status.in_(DECIDED),
            ApprovalToken.is_deleted.is_(False),
        )
        .order_by(ApprovalToken.decided_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def resolve_latest_decision(
    db: AsyncSession,
    job_id: uuid.UUID,
    approval_type: str = ApprovalType.EXTRA_CHARGES.value,
) -> ApprovalStatus | None:
    """Outcome of the most recently decided token; None means nothing decided yet."""
    token = await latest_decided_token(db, job_id, approval_type)
    return ApprovalStatus(token.status) if token else None


def ensure_decidable(approval: ApprovalToken) -> None:
    """Raise unless the token can still take a decision."""
    state = token_state(approval)
    if state in (ApprovalStatus.APPROVED, ApprovalStatus.DECLINED):
        raise ConflictError(f"This approval request was already {state.value}")
    if state == ApprovalStatus.EXPIRED:
        raise BadRequestError("This approval link has expired")


async def record_decision(
    db: AsyncSession,
    approval: ApprovalToken,
    decision: ApprovalStatus,
    decline_reason: str | None = None,
) -> ApprovalToken:
    """Decide a pending token exactly once.

    The write only matches a row that is still pending and unexpired, so of
    two concurrent decisions the second finds nothing to update and fails.
    """
    if decision not in (ApprovalStatus.APPROVED, ApprovalStatus.DECLINED):
        raise BadRequestError("Decision must be approved or declined")
    ensure_decidable(approval)

    now = utcnow()
    values = {"status": decision.value, "decided_at": now}
    if decision == ApprovalStatus.DECLINED:
        values["decline_reason"] = decline_reason
    result = await db.execute(
        update(ApprovalToken)
        .where(
            ApprovalToken.id == approval.id,
            ApprovalToken.status == ApprovalStatus.PENDING.value,
            ApprovalToken.expires_at > now,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(approval)
    if result.rowcount != 1:
        ensure_decidable(approval)
        raise ConflictError("This approval request can no longer be decided")

    logger.info("Approval token %s for job %s %s", approval.id, approval.job_id, decision.value)
    return approval


async def supersede_pending_tokens(db: AsyncSession, job_id: uuid.UUID) -> int:
    """Expire every live extra-charges link for a job, e.g. after a manual decision."""
    now = utcnow()
    result = await db.execute(
        update(ApprovalToken)
        .where(
            ApprovalToken.job_id == job_id,
            ApprovalToken.approval_type == ApprovalType.EXTRA_CHARGES.value,
            ApprovalToken.status == ApprovalStatus.PENDING.value,
            ApprovalToken.expires_at > now,
            ApprovalToken.is_deleted.is_(False),
        )
        .values(expires_at=now)
        .execution_options(synchronize_session=False)
    )
    superseded = result.rowcount or 0
    if superseded:
        logger.info("Superseded %s pending approval link(s) for job %s", superseded, job_id)
    return superseded


async def effective_decision(db: AsyncSession, job_id: uuid.UUID) -> ApprovalStatus | None:
    """Current extra-charges decision, combining token outcomes with audit overrides.

    A manual approval or a reactivation writes an audit row with an explicit
    decision; whichever of that row and the last decided token is newer wins.
    """
    token = await latest_decided_token(db, job_id)
    result = await db.execute(
        select(JobPhaseChange)
        .where(JobPhaseChange.job_id == job_id, JobPhaseChange.decision.is_not(None))
        .order_by(JobPhaseChange.changed_at.desc())
        .limit(1)
    )
    change = result.scalar_one_or_none()
    return resolve_effective_decision(
        (token.status, as_aware(token.decided_at)) if token else None,
        (change.decision, as_aware(change.changed_at)) if change else None,
    )
