import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.api.deps import STAFF_ROLES, get_current_user, get_db, require_role, verify_job_access
from paintops.common.enums import UserRole
from paintops.core.jobs.schemas import JobResponse, PhaseChangeResponse
from paintops.core.jobs.service import load_job
from paintops.core.phases import service as phase_service
from paintops.db.models.job import JobPhase
from paintops.db.models.profile import Profile

router = APIRouter(tags=["Phases"])


# ---------- Schemas ----------


class PhaseResponse(BaseModel):
    id: uuid.UUID
    job_phase_label: str
    sort_order: int
    color: str | None

    model_config = {"from_attributes": True}


class PhaseUpdateRequest(BaseModel):
    new_phase_id: uuid.UUID
    change_reason: str | None = None


# ---------- Endpoints ----------


@router.get("/phases", response_model=list[PhaseResponse])
async def list_phases(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(JobPhase).where(JobPhase.is_deleted.is_(False)).order_by(JobPhase.sort_order)
    )
    return result.scalars().all()


@router.get("/jobs/{job_id}/phase-changes", response_model=list[PhaseChangeResponse])
async def list_phase_changes(
    job_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await load_job(db, job_id)
    verify_job_access(job, current_user)
    return await phase_service.get_job_phase_changes(db, job_id)


@router.put("/jobs/{job_id}/phase", response_model=PhaseChangeResponse)
async def set_job_phase(
    job_id: uuid.UUID,
    body: PhaseUpdateRequest,
    current_user: Profile = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    change = await phase_service.update_job_phase(
        db, job_id, body.new_phase_id, current_user.id, body.change_reason
    )
    changes = await phase_service.get_job_phase_changes(db, job_id)
    return next(c for c in changes if c["id"] == change.id)


async def _run(action, job_id: uuid.UUID, current_user: Profile, db: AsyncSession) -> JobResponse:
    job = await load_job(db, job_id)
    job = await action(db, job, current_user)
    return JobResponse.from_orm_instance(job)


@router.post("/jobs/{job_id}/phase/advance", response_model=JobResponse)
async def advance_phase(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await _run(phase_service.advance, job_id, current_user, db)


@router.post("/jobs/{job_id}/phase/revert", response_model=JobResponse)
async def revert_phase(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await _run(phase_service.revert, job_id, current_user, db)


@router.post("/jobs/{job_id}/phase/approve-extra-charges", response_model=JobResponse)
async def approve_extra_charges(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await _run(phase_service.approve_extra_charges, job_id, current_user, db)


@router.post("/jobs/{job_id}/phase/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await _run(phase_service.cancel_from_decline, job_id, current_user, db)


@router.post("/jobs/{job_id}/phase/reactivate", response_model=JobResponse)
async def reactivate_job(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await _run(phase_service.reactivate, job_id, current_user, db)


@router.post("/jobs/{job_id}/invoice/sent", response_model=JobResponse)
async def mark_invoice_sent(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await _run(phase_service.mark_invoice_sent, job_id, current_user, db)


@router.post("/jobs/{job_id}/invoice/paid", response_model=JobResponse)
async def mark_invoice_paid(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await _run(phase_service.mark_invoice_paid, job_id, current_user, db)


@router.post("/jobs/{job_id}/phase/archive", response_model=JobResponse)
async def archive_job(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await _run(phase_service.archive, job_id, current_user, db)
