from decimal import Decimal

import pytest

from paintops.core.billing.service import compute_job_billing
from paintops.core.exports.pdf import render_invoice_pdf, render_work_order_pdf
from paintops.core.jobs.schemas import WorkOrderSubmit
from paintops.core.jobs.service import job_details
from paintops.core.phases import service as phase_service


@pytest.mark.asyncio
async def test_work_order_pdf(db_session, job, sub_user):
    body = WorkOrderSubmit(
        is_full_paint=True,
        painted_ceilings=True,
        ceiling_display_label="2 Bedroom",
        has_extra_charges=True,
        extra_charges_description="Patch <drywall> & trim",
        extra_hours=Decimal("2"),
        additional_comments="Tenant pets on site",
    )
    job = await phase_service.submit_work_order(db_session, job, body, sub_user)
    breakdown = await compute_job_billing(db_session, job)

    content = render_work_order_pdf(job_details(job), breakdown)
    assert content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_invoice_pdf_without_work_order(db_session, job):
    breakdown = await compute_job_billing(db_session, job)
    content = render_invoice_pdf(job_details(job), breakdown)
    assert content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_pdf_exports_over_http(client, job, admin_headers, sub_headers):
    response = await client.get(f"/api/v1/jobs/{job.id}/exports/work-order.pdf", headers=sub_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert "WO-000001-work-order.pdf" in response.headers["content-disposition"]

    response = await client.get(f"/api/v1/jobs/{job.id}/exports/invoice.pdf", headers=sub_headers)
    assert response.status_code == 403

    response = await client.get(f"/api/v1/jobs/{job.id}/exports/invoice.pdf", headers=admin_headers)
    assert response.status_code == 200
