import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.api.deps import STAFF_ROLES, get_current_user, get_db, require_role, verify_job_access
from paintops.core.billing.service import compute_job_billing
from paintops.core.exports.pdf import render_invoice_pdf, render_work_order_pdf
from paintops.core.jobs.service import job_details, load_job
from paintops.db.models.profile import Profile

router = APIRouter(prefix="/jobs/{job_id}/exports", tags=["Exports"])


def _pdf(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/work-order.pdf")
async def export_work_order(
    job_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await load_job(db, job_id)
    verify_job_access(job, current_user)
    details = job_details(job)
    content = render_work_order_pdf(details, await compute_job_billing(db, job))
    return _pdf(content, f"{details['job_number']}-work-order.pdf")


@router.get("/invoice.pdf")
async def export_invoice(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    job = await load_job(db, job_id)
    details = job_details(job)
    content = render_invoice_pdf(details, await compute_job_billing(db, job))
    return _pdf(content, f"{details['job_number']}-invoice.pdf")
