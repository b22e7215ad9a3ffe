import pytest
from sqlalchemy import select

from paintops.db.models.job import JobImage


@pytest.mark.asyncio
async def test_template_crud_and_preview(client, manager_headers, job, phases):
    response = await client.post(
        "/api/v1/email-templates",
        headers=manager_headers,
        json={
            "name": "Work order ready",
            "subject": "Work order {{job_number}}",
            "body": "Hello {{ap_contact_name}},\n\nJob Information:\n• Unit {{unit_number}}",
            "notification_type": "work_order",
            "trigger_phase_id": str(phases["Work Order"].id),
        },
    )
    assert response.status_code == 201

    response = await client.get("/api/v1/email-templates?notification_type=work_order", headers=manager_headers)
    assert [t["name"] for t in response.json()] == ["Work order ready"]

    response = await client.post(
        "/api/v1/email-templates/preview",
        headers=manager_headers,
        json={
            "subject": "Work order {{job_number}}",
            "body": "Hello {{ap_contact_name}},\n\nJob Information:\n• Unit {{unit_number}}",
            "job_id": str(job.id),
        },
    )
    data = response.json()
    assert data["subject"] == "Work order WO-000001"
    assert "Hello Dana Whitfield," in data["body"]
    assert "Unit 204" in data["html"]


@pytest.mark.asyncio
async def test_email_configuration_applies_defaults(
    client, db_session, job, manager_headers, phases, mock_send_email
):
    response = await client.put(
        "/api/v1/email-configuration",
        headers=manager_headers,
        json={"from_email": "office@paintco.com", "from_name": "Paint Co", "default_bcc": "records@paintco.com"},
    )
    assert response.status_code == 200

    await client.post(
        "/api/v1/email-templates",
        headers=manager_headers,
        json={"name": "Invoice", "subject": "Invoice", "body": "Invoice attached.", "notification_type": "invoice"},
    )
    image = JobImage(job_id=job.id, file_path=f"{job.id}/before.jpg", file_name="before.jpg")
    db_session.add(image)
    await db_session.flush()

    response = await client.post(
        f"/api/v1/jobs/{job.id}/emails",
        headers=manager_headers,
        json={
            "notification_type": "invoice",
            "recipient": "owner@oakridge.com",
            "bcc": "records@paintco.com; boss@paintco.com",
            "image_ids": [str(image.id)],
        },
    )
    assert response.status_code == 201
    assert response.json()["approval_token_id"] is None

    kwargs = mock_send_email.call_args.kwargs
    assert kwargs["to"] == "owner@oakridge.com"
    assert kwargs["from_email"] == "office@paintco.com"
    assert kwargs["from_name"] == "Paint Co"
    assert kwargs["bcc"] == "records@paintco.com, boss@paintco.com"
    assert "before.jpg" in kwargs["html"]
    assert "signature=" in kwargs["html"]

    logs = await client.get(f"/api/v1/jobs/{job.id}/emails", headers=manager_headers)
    assert len(logs.json()) == 1


@pytest.mark.asyncio
async def test_missing_template_is_404(client, job, manager_headers):
    response = await client.post(
        f"/api/v1/jobs/{job.id}/emails",
        headers=manager_headers,
        json={"notification_type": "completion"},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_notifications_feed(client, db_session, admin_user, admin_headers, job):
    from paintops.core.notifications.service import create_notification

    await create_notification(db_session, admin_user.id, "approval", "Extra charges approved", "Done", job_id=job.id)
    await create_notification(db_session, admin_user.id, "assignment", "Assigned", "Unit 204")

    response = await client.get("/api/v1/notifications", headers=admin_headers)
    data = response.json()
    assert data["total"] == 2
    assert data["unread_count"] == 2

    first = data["items"][0]["id"]
    response = await client.post(f"/api/v1/notifications/{first}/read", headers=admin_headers)
    assert response.json()["is_read"] is True

    response = await client.post("/api/v1/notifications/read-all", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["updated"] == 1
    response = await client.get("/api/v1/notifications?unread_only=true", headers=admin_headers)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_notifications_filtered_and_dismissed(client, db_session, admin_user, admin_headers, job):
    from paintops.core.notifications.service import create_notification

    on_job = await create_notification(db_session, admin_user.id, "approval", "Approved", "Unit 204", job_id=job.id)
    await create_notification(db_session, admin_user.id, "assignment", "Assigned", "Unit 301")

    response = await client.get(f"/api/v1/notifications?job_id={job.id}", headers=admin_headers)
    assert [n["title"] for n in response.json()["items"]] == ["Approved"]

    response = await client.get("/api/v1/notifications?category=assignment", headers=admin_headers)
    assert response.json()["total"] == 1

    response = await client.delete(f"/api/v1/notifications/{on_job.id}", headers=admin_headers)
    assert response.status_code == 204
    response = await client.get("/api/v1/notifications", headers=admin_headers)
    assert response.json()["total"] == 1
    assert response.json()["unread_count"] == 1

    response = await client.post(f"/api/v1/notifications/{on_job.id}/read", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_notifications_are_private(client, db_session, admin_user, manager_headers):
    from paintops.core.notifications.service import create_notification

    note = await create_notification(db_session, admin_user.id, "assignment", "Assigned", "Unit 204")
    response = await client.get("/api/v1/notifications", headers=manager_headers)
    assert response.json()["total"] == 0
    response = await client.post(f"/api/v1/notifications/{note.id}/read", headers=manager_headers)
    assert response.status_code == 404
