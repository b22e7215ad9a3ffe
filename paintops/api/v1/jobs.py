import uuid

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.api.deps import STAFF_ROLES, get_current_user, get_db, is_staff, require_role, verify_job_access
from paintops.common.enums import PhaseLabel, UserRole
from paintops.common.pagination import PaginationParams, page_response, paginate
from paintops.core.approvals.service import effective_decision, resolve_pending_token
from paintops.core.approvals.tokens import seconds_remaining
from paintops.core.billing.schemas import JobBillingBreakdown
from paintops.core.billing.service import compute_job_billing
from paintops.core.jobs import service as job_service
from paintops.core.jobs.schemas import JobAssign, JobCreate, JobResponse, JobUpdate, WorkOrderSubmit
from paintops.core.phases import service as phase_service
from paintops.db.models.profile import Profile
from paintops.integrations.storage import StorageClient

router = APIRouter(prefix="/jobs", tags=["Jobs"])


# ---------- Endpoints ----------


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    body: JobCreate,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.create_job(db, body, current_user)
    return JobResponse.from_orm_instance(job)


@router.get("")
async def list_jobs(
    phase: PhaseLabel | None = Query(None),
    property_id: uuid.UUID | None = Query(None),
    params: PaginationParams = Depends(),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    assigned_to = None if is_staff(current_user) else current_user.id
    query = job_service.list_jobs_query(phase, property_id, assigned_to)
    jobs, total = await paginate(db, query, params)
    return page_response([JobResponse.from_orm_instance(j) for j in jobs], total, params)


@router.get("/{job_id}")
async def get_job(
    job_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.load_job(db, job_id)
    verify_job_access(job, current_user)

    details = job_service.job_details(job)
    breakdown = await compute_job_billing(db, job)
    decision = await effective_decision(db, job.id)
    pending = await resolve_pending_token(db, job.id)
    details["billing"] = breakdown.model_dump(mode="json")
    details["approval"] = {
        "decision": decision.value if decision else None,
        "pending_token_expires_in": seconds_remaining(pending) if pending else None,
    }
    return details


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: uuid.UUID,
    body: JobUpdate,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.load_job(db, job_id)
    job = await job_service.update_job(db, job, body)
    return JobResponse.from_orm_instance(job)


@router.put("/{job_id}/assignment", response_model=JobResponse)
async def assign_job(
    job_id: uuid.UUID,
    body: JobAssign,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.load_job(db, job_id)
    job = await job_service.assign_job(db, job, body.assigned_to)
    return JobResponse.from_orm_instance(job)


@router.delete("/{job_id}", status_code=204)
async def delete_job(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    prefixes = await job_service.delete_job(db, job_id)
    # files go only once the rows are gone for good
    await db.commit()
    await job_service.purge_job_files(StorageClient(), prefixes)
    return Response(status_code=204)


@router.get("/{job_id}/billing", response_model=JobBillingBreakdown)
async def get_job_billing(
    job_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.load_job(db, job_id)
    verify_job_access(job, current_user)
    return await compute_job_billing(db, job)


@router.post("/{job_id}/work-order", response_model=JobResponse)
async def submit_work_order(
    job_id: uuid.UUID,
    body: WorkOrderSubmit,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.load_job(db, job_id)
    verify_job_access(job, current_user)
    job = await phase_service.submit_work_order(db, job, body, current_user)
    return JobResponse.from_orm_instance(job)


@router.put("/{job_id}/work-order", response_model=JobResponse)
async def update_work_order(
    job_id: uuid.UUID,
    body: WorkOrderSubmit,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.load_job(db, job_id)
    job = await phase_service.update_work_order(db, job, body, current_user)
    return JobResponse.from_orm_instance(job)
