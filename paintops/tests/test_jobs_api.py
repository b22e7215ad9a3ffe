import pytest
from sqlalchemy import func, select

from paintops.db.models.approval import ApprovalToken
from paintops.db.models.job import Job, JobPhaseChange


@pytest.mark.asyncio
async def test_create_job(client, manager_headers, phases, rate_card):
    response = await client.post(
        "/api/v1/jobs",
        headers=manager_headers,
        json={
            "property_id": str(rate_card["property"].id),
            "unit_number": "301",
            "unit_size_id": str(rate_card["unit_size"].id),
            "job_category_id": str(rate_card["categories"]["Full Paint"].id),
            "scheduled_date": "2026-03-05",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["phase"] == "Job Request"
    assert data["job_number"] == "WO-000001"
    assert data["property_name"] == "Maple Court"


@pytest.mark.asyncio
async def test_subcontractor_cannot_create_job(client, sub_headers, phases, rate_card):
    response = await client.post(
        "/api/v1/jobs",
        headers=sub_headers,
        json={"property_id": str(rate_card["property"].id), "unit_number": "301"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_jobs_scoped_for_subcontractors(client, job, manager_headers, sub_headers, admin_headers):
    await client.put(f"/api/v1/jobs/{job.id}/assignment", headers=manager_headers, json={"assigned_to": None})

    response = await client.get("/api/v1/jobs", headers=sub_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 0

    response = await client.get("/api/v1/jobs?phase=Job Request", headers=admin_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == str(job.id)


@pytest.mark.asyncio
async def test_job_details_include_billing_and_approval(client, job, sub_headers):
    response = await client.get(f"/api/v1/jobs/{job.id}", headers=sub_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["property"]["property_name"] == "Maple Court"
    assert data["job_phase"]["job_phase_label"] == "Job Request"
    assert data["billing"]["totals"]["bill_total"] == "500.00"
    assert data["approval"] == {"decision": None, "pending_token_expires_in": None}


@pytest.mark.asyncio
async def test_unassigned_subcontractor_denied(client, job, manager_headers, sub_headers):
    await client.put(f"/api/v1/jobs/{job.id}/assignment", headers=manager_headers, json={"assigned_to": None})
    response = await client.get(f"/api/v1/jobs/{job.id}", headers=sub_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_job_refreshes_total(client, job, manager_headers, rate_card):
    response = await client.patch(
        f"/api/v1/jobs/{job.id}",
        headers=manager_headers,
        json={"job_category_id": str(rate_card["categories"]["Accent Wall"].id)},
    )
    assert response.status_code == 200
    assert response.json()["total_billing_amount"] == "0.00"

    response = await client.patch(f"/api/v1/jobs/{job.id}", headers=manager_headers, json={"unit_number": None})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_work_order_flow_over_http(client, job, sub_headers, manager_headers):
    response = await client.post(
        f"/api/v1/jobs/{job.id}/work-order",
        headers=sub_headers,
        json={
            "is_full_paint": True,
            "painted_ceilings": True,
            "ceiling_display_label": "2 Bedroom",
            "has_accent_wall": True,
            "accent_wall_count": 2,
        },
    )
    assert response.status_code == 200
    assert response.json()["phase"] == "Work Order"
    assert response.json()["total_billing_amount"] == "800.00"

    response = await client.get(f"/api/v1/jobs/{job.id}/billing", headers=sub_headers)
    billing = response.json()
    assert [line["key"] for line in billing["lines"]] == ["painted_ceilings", "accent_wall"]
    assert billing["totals"]["profit_total"] == "310.00"

    # a second submission is rejected; staff edit instead
    response = await client.post(f"/api/v1/jobs/{job.id}/work-order", headers=sub_headers, json={})
    assert response.status_code == 400

    response = await client.put(
        f"/api/v1/jobs/{job.id}/work-order",
        headers=manager_headers,
        json={"is_full_paint": True},
    )
    assert response.status_code == 200
    assert response.json()["total_billing_amount"] == "500.00"

    response = await client.get(f"/api/v1/jobs/{job.id}/phase-changes", headers=sub_headers)
    changes = response.json()
    assert len(changes) == 1
    assert changes[0]["to_phase"] == "Work Order"


@pytest.mark.asyncio
async def test_extra_charges_approval_over_http(
    client, job, sub_headers, manager_headers, extra_charges_template
):
    response = await client.post(
        f"/api/v1/jobs/{job.id}/work-order",
        headers=sub_headers,
        json={"has_extra_charges": True, "extra_hours": "2", "extra_charges_description": "Patch"},
    )
    assert response.json()["phase"] == "Pending Work Order"

    response = await client.post(
        f"/api/v1/jobs/{job.id}/emails",
        headers=manager_headers,
        json={"notification_type": "extra_charges", "recipient_name": "Pat Lee"},
    )
    assert response.status_code == 201
    assert response.json()["status"] == "sent"

    response = await client.post(
        f"/api/v1/jobs/{job.id}/emails",
        headers=manager_headers,
        json={"notification_type": "extra_charges"},
    )
    assert response.status_code == 409

    response = await client.get(f"/api/v1/jobs/{job.id}/approvals/pending", headers=sub_headers)
    assert response.json()["pending"] is True

    response = await client.get(f"/api/v1/jobs/{job.id}", headers=sub_headers)
    assert response.json()["approval"]["pending_token_expires_in"] > 0


@pytest.mark.asyncio
async def test_public_approval_page_and_decision(client, db_session, job, sub_headers, manager_headers, extra_charges_template):
    await client.post(
        f"/api/v1/jobs/{job.id}/work-order",
        headers=sub_headers,
        json={"has_extra_charges": True, "extra_hours": "2"},
    )
    await client.post(
        f"/api/v1/jobs/{job.id}/emails",
        headers=manager_headers,
        json={"notification_type": "extra_charges"},
    )
    token = (await db_session.execute(select(ApprovalToken.token))).scalar_one()

    response = await client.get(f"/api/v1/approvals/{token}")
    assert response.status_code == 200
    view = response.json()
    assert view["state"] == "pending"
    assert view["extra_charges"]["total"] == "100.00"

    response = await client.post(f"/api/v1/approvals/{token}/decision", json={"decision": "approved"})
    assert response.status_code == 200
    assert response.json()["state"] == "approved"

    response = await client.post(f"/api/v1/approvals/{token}/decision", json={"decision": "declined"})
    assert response.status_code == 409

    response = await client.get(f"/api/v1/jobs/{job.id}/approvals/decision", headers=sub_headers)
    assert response.json() == {"latest_token_decision": "approved", "effective_decision": "approved"}

    response = await client.get(f"/api/v1/jobs/{job.id}", headers=sub_headers)
    assert response.json()["job_phase"]["job_phase_label"] == "Work Order"


@pytest.mark.asyncio
async def test_preview_link(client, job, manager_headers):
    response = await client.post(f"/api/v1/jobs/{job.id}/approvals/preview", headers=manager_headers)
    assert response.status_code == 201
    token = response.json()["token"]
    assert response.json()["url"].endswith(f"/approval/{token}")

    response = await client.post(f"/api/v1/approvals/{token}/decision", json={"decision": "approved"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_phase_actions_over_http(client, job, sub_headers, manager_headers, admin_headers, phases):
    await client.post(f"/api/v1/jobs/{job.id}/work-order", headers=sub_headers, json={})

    response = await client.post(f"/api/v1/jobs/{job.id}/phase/advance", headers=sub_headers)
    assert response.status_code == 403

    response = await client.post(f"/api/v1/jobs/{job.id}/phase/advance", headers=manager_headers)
    assert response.json()["phase"] == "Invoicing"

    response = await client.post(f"/api/v1/jobs/{job.id}/invoice/sent", headers=manager_headers)
    assert response.json()["invoice_sent"] is True

    response = await client.post(f"/api/v1/jobs/{job.id}/invoice/paid", headers=manager_headers)
    assert response.json()["phase"] == "Completed"

    response = await client.post(f"/api/v1/jobs/{job.id}/phase/archive", headers=manager_headers)
    assert response.json()["phase"] == "Archived"

    response = await client.put(
        f"/api/v1/jobs/{job.id}/phase",
        headers=manager_headers,
        json={"new_phase_id": str(phases["Work Order"].id)},
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/v1/jobs/{job.id}/phase",
        headers=admin_headers,
        json={"new_phase_id": str(phases["Work Order"].id), "change_reason": "Reopened"},
    )
    assert response.status_code == 200
    assert response.json()["from_phase"] == "Archived"
    assert response.json()["change_reason"] == "Reopened"


@pytest.mark.asyncio
async def test_delete_job_removes_dependents_and_files(
    client, db_session, job, sub_headers, admin_headers, manager_headers, local_storage
):
    from paintops.integrations.storage import StorageClient

    await client.post(f"/api/v1/jobs/{job.id}/work-order", headers=sub_headers, json={})
    await StorageClient().upload_file(b"photo", f"{job.id}/before.jpg")

    response = await client.delete(f"/api/v1/jobs/{job.id}", headers=manager_headers)
    assert response.status_code == 403

    response = await client.delete(f"/api/v1/jobs/{job.id}", headers=admin_headers)
    assert response.status_code == 204

    assert (await db_session.execute(select(func.count(Job.id)))).scalar() == 0
    assert (await db_session.execute(select(func.count(JobPhaseChange.id)))).scalar() == 0
    assert not (local_storage / str(job.id) / "before.jpg").exists()

    response = await client.get(f"/api/v1/jobs/{job.id}", headers=admin_headers)
    assert response.status_code == 404
