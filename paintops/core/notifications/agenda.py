"""Daily agenda email: the jobs scheduled for today in company time."""

from __future__ import annotations

from datetime import date, datetime

import pytz
from jinja2 import Environment, select_autoescape
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.enums import PhaseLabel
from paintops.common.logging import get_logger
from paintops.config import settings
from paintops.core.jobs.service import job_number
from paintops.db.models.job import Job, JobPhase
from paintops.integrations.sendgrid import EmailClient

logger = get_logger("notifications.agenda")

EXCLUDED_PHASES = (PhaseLabel.CANCELLED.value, PhaseLabel.ARCHIVED.value)

_env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))

AGENDA_TEMPLATE = _env.from_string(
    """<h2 style="margin: 0 0 12px 0; color: #1f2937;">Today's Agenda: {{ day }}</h2>
{% if rows %}<table style="border-collapse: collapse; width: 100%;">
<tr>{% for h in ["Job", "Property", "Unit", "Phase", "Assigned To"] %}<th style="text-align: left; padding: 6px; border-bottom: 2px solid #e5e7eb;">{{ h }}</th>{% endfor %}</tr>
{% for row in rows %}<tr>
<td style="padding: 6px; border-bottom: 1px solid #f3f4f6;">{{ row.job_number }}</td>
<td style="padding: 6px; border-bottom: 1px solid #f3f4f6;">{{ row.property_name }}</td>
<td style="padding: 6px; border-bottom: 1px solid #f3f4f6;">{{ row.unit_number }}</td>
<td style="padding: 6px; border-bottom: 1px solid #f3f4f6;">{{ row.phase }}</td>
<td style="padding: 6px; border-bottom: 1px solid #f3f4f6;">{{ row.assigned_to or "Unassigned" }}</td>
</tr>{% endfor %}
</table>{% else %}<p>No jobs are scheduled for today.</p>{% endif %}"""
)


def company_today(now: datetime | None = None) -> date:
    tz = pytz.timezone(settings.COMPANY_TIMEZONE)
    now = now or datetime.now(pytz.UTC)
    if now.tzinfo is None:
        now = pytz.UTC.localize(now)
    return now.astimezone(tz).date()


def agenda_recipients() -> list[str]:
    return [r.strip() for r in settings.DAILY_AGENDA_RECIPIENTS.split(",") if r.strip()]


async def build_daily_agenda(db: AsyncSession, day: date | None = None) -> list[dict]:
    day = day or company_today()
    result = await db.execute(
        select(Job)
        .join(JobPhase, Job.current_phase_id == JobPhase.id)
        .where(
            Job.scheduled_date == day,
            Job.is_deleted.is_(False),
            JobPhase.job_phase_label.not_in(EXCLUDED_PHASES),
        )
        .order_by(Job.work_order_num)
        .execution_options(populate_existing=True)
    )
    return [
        {
            "job_id": str(job.id),
            "job_number": job_number(job.work_order_num),
            "property_name": job.property.property_name if job.property else None,
            "unit_number": job.unit_number,
            "phase": job.phase.job_phase_label if job.phase else None,
            "assigned_to": job.assignee.full_name if job.assignee else None,
        }
        for job in result.scalars().all()
    ]


async def send_daily_agenda(
    db: AsyncSession,
    recipients: list[str] | None = None,
    day: date | None = None,
    email_client: EmailClient | None = None,
) -> dict:
    recipients = recipients if recipients is not None else agenda_recipients()
    day = day or company_today()
    if not recipients:
        logger.info("Daily agenda skipped: no recipients configured")
        return {"status": "skipped", "jobs": 0}

    rows = await build_daily_agenda(db, day)
    html = AGENDA_TEMPLATE.render(day=day.strftime("%A, %B %d, %Y"), rows=rows)
    client = email_client or EmailClient()
    result = await client.send_email(
        to=recipients,
        subject=f"Daily Agenda - {day.strftime('%m/%d/%Y')} ({len(rows)} jobs)",
        html=html,
    )
    logger.info("Daily agenda for %s sent to %d recipients: %d jobs", day, len(recipients), len(rows))
    return {"status": result.get("status"), "jobs": len(rows)}
