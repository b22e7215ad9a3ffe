import uuid
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.api.deps import STAFF_ROLES, get_current_user, get_db, require_role, verify_job_access
from paintops.common.enums import ApprovalStatus
from paintops.core.approvals import service as approval_service
from paintops.core.approvals.tokens import (
    approval_url,
    build_extra_charges_snapshot,
    seconds_remaining,
    token_state,
)
from paintops.core.billing.service import compute_job_billing
from paintops.core.jobs.service import job_details, load_job
from paintops.core.phases import service as phase_service
from paintops.db.models.profile import Profile

router = APIRouter(tags=["Approvals"])


# ---------- Schemas ----------


class PendingApprovalResponse(BaseModel):
    pending: bool
    token_id: uuid.UUID | None = None
    expires_at: datetime | None = None
    seconds_remaining: int = 0


class DecisionStateResponse(BaseModel):
    latest_token_decision: str | None
    effective_decision: str | None


class PreviewResponse(BaseModel):
    token: str
    url: str
    expires_at: datetime


class ApprovalView(BaseModel):
    job_id: uuid.UUID
    state: str
    approver_name: str | None
    approver_email: str | None
    expires_at: datetime
    decided_at: datetime | None
    extra_charges: dict


class DecisionRequest(BaseModel):
    decision: Literal["approved", "declined"]
    reason: str | None = None


# ---------- Endpoints ----------


@router.get("/jobs/{job_id}/approvals/pending", response_model=PendingApprovalResponse)
async def get_pending_approval(
    job_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await load_job(db, job_id)
    verify_job_access(job, current_user)
    token = await approval_service.resolve_pending_token(db, job.id)
    if token is None:
        return PendingApprovalResponse(pending=False)
    return PendingApprovalResponse(
        pending=True,
        token_id=token.id,
        expires_at=token.expires_at,
        seconds_remaining=seconds_remaining(token),
    )


@router.get("/jobs/{job_id}/approvals/decision", response_model=DecisionStateResponse)
async def get_decision(
    job_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await load_job(db, job_id)
    verify_job_access(job, current_user)
    latest = await approval_service.resolve_latest_decision(db, job.id)
    effective = await approval_service.effective_decision(db, job.id)
    return DecisionStateResponse(
        latest_token_decision=latest.value if latest else None,
        effective_decision=effective.value if effective else None,
    )


@router.post("/jobs/{job_id}/approvals/preview", response_model=PreviewResponse, status_code=201)
async def create_preview(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Short-lived link that shows the approval page without being able to decide."""
    job = await load_job(db, job_id)
    breakdown = await compute_job_billing(db, job)
    snapshot = build_extra_charges_snapshot(job_details(job), breakdown)
    token = await approval_service.issue_token(
        db, job, snapshot, current_user.email, current_user.full_name, preview=True
    )
    return PreviewResponse(token=token.token, url=approval_url(token.token), expires_at=token.expires_at)


@router.get("/approvals/{token}", response_model=ApprovalView)
async def view_approval(token: str, db: AsyncSession = Depends(get_db)):
    approval = await approval_service.get_token(db, token)
    return ApprovalView(
        job_id=approval.job_id,
        state=token_state(approval).value,
        approver_name=approval.approver_name,
        approver_email=approval.approver_email,
        expires_at=approval.expires_at,
        decided_at=approval.decided_at,
        extra_charges=approval.extra_charges_data or {},
    )


@router.post("/approvals/{token}/decision", response_model=ApprovalView)
async def decide(token: str, body: DecisionRequest, db: AsyncSession = Depends(get_db)):
    approval = await phase_service.decide_via_token(
        db, token, ApprovalStatus(body.decision), body.reason
    )
    return ApprovalView(
        job_id=approval.job_id,
        state=approval.status,
        approver_name=approval.approver_name,
        approver_email=approval.approver_email,
        expires_at=approval.expires_at,
        decided_at=approval.decided_at,
        extra_charges=approval.extra_charges_data or {},
    )
