from datetime import date, datetime

import pytest
import pytz

from paintops.core.jobs.schemas import JobCreate
from paintops.core.jobs.service import create_job
from paintops.core.notifications.agenda import build_daily_agenda, company_today, send_daily_agenda
from paintops.core.phases import service as phase_service

DAY = date(2026, 3, 5)


async def _scheduled_job(db_session, rate_card, admin_user, unit):
    body = JobCreate(property_id=rate_card["property"].id, unit_number=unit, scheduled_date=DAY)
    return await create_job(db_session, body, admin_user)


def test_company_today_uses_company_timezone():
    # 02:30 UTC is still the previous evening in New York
    now = pytz.UTC.localize(datetime(2026, 3, 6, 2, 30))
    assert company_today(now) == date(2026, 3, 5)


@pytest.mark.asyncio
async def test_agenda_lists_scheduled_jobs(db_session, phases, rate_card, admin_user, sub_user):
    first = await _scheduled_job(db_session, rate_card, admin_user, "101")
    first.assigned_to = sub_user.id
    await _scheduled_job(db_session, rate_card, admin_user, "102")
    await create_job(
        db_session,
        JobCreate(property_id=rate_card["property"].id, unit_number="999", scheduled_date=date(2026, 3, 6)),
        admin_user,
    )
    await db_session.flush()

    rows = await build_daily_agenda(db_session, DAY)
    assert [r["unit_number"] for r in rows] == ["101", "102"]
    assert rows[0]["assigned_to"] == sub_user.full_name
    assert rows[0]["property_name"] == "Maple Court"
    assert rows[1]["phase"] == "Job Request"


@pytest.mark.asyncio
async def test_agenda_skips_archived_jobs(db_session, phases, rate_card, admin_user):
    job = await _scheduled_job(db_session, rate_card, admin_user, "101")
    await phase_service.update_job_phase(
        db_session, job.id, phases["Archived"].id, admin_user.id, "Old job"
    )
    assert await build_daily_agenda(db_session, DAY) == []


@pytest.mark.asyncio
async def test_send_daily_agenda(db_session, phases, rate_card, admin_user, mock_send_email):
    await _scheduled_job(db_session, rate_card, admin_user, "101")

    result = await send_daily_agenda(db_session, recipients=["office@test.com"], day=DAY)
    assert result == {"status": "sent", "jobs": 1}
    kwargs = mock_send_email.call_args.kwargs
    assert kwargs["to"] == ["office@test.com"]
    assert kwargs["subject"] == "Daily Agenda - 03/05/2026 (1 jobs)"
    assert "101" in kwargs["html"]


@pytest.mark.asyncio
async def test_send_daily_agenda_without_recipients(db_session, mock_send_email):
    result = await send_daily_agenda(db_session, recipients=[], day=DAY)
    assert result == {"status": "skipped", "jobs": 0}
    mock_send_email.assert_not_called()
