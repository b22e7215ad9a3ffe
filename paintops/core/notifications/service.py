"""Notification service: in-app notifications and job emails."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.enums import ApprovalType, EmailStatus, NotificationType
from paintops.common.events import queue_event
from paintops.common.exceptions import BadRequestError, ConflictError, NotFoundError
from paintops.common.logging import get_logger
from paintops.config import settings
from paintops.core.approvals.service import issue_token, resolve_pending_token
from paintops.core.approvals.tokens import (
    approval_url,
    build_extra_charges_snapshot,
    seconds_remaining,
)
from paintops.core.billing.service import compute_job_billing
from paintops.core.jobs.service import job_details, load_job
from paintops.core.notifications.composer import (
    approval_button_html,
    build_context,
    compose,
    photo_links_html,
)
from paintops.core.notifications.formatter import render_email_html
from paintops.db.base import utcnow
from paintops.db.models.email import EmailAttachment, EmailConfiguration, EmailLog, EmailTemplate
from paintops.db.models.job import JobImage
from paintops.db.models.notification import Notification
from paintops.db.models.profile import Profile
from paintops.integrations.sendgrid import EmailClient
from paintops.integrations.storage import StorageClient

logger = get_logger("notifications.service")


async def create_notification(
    db: AsyncSession,
    user_id: uuid.UUID,
    category: str,
    title: str,
    body: str,
    job_id: uuid.UUID | None = None,
    action_url: str | None = None,
) -> Notification:
    """Create an in-app notification and push it to any open job subscription."""
    notification = Notification(
        user_id=user_id,
        job_id=job_id,
        category=category,
        title=title,
        body=body,
        action_url=action_url,
    )
    db.add(notification)
    await db.flush()
    await db.refresh(notification)

    logger.info("Created notification: category=%s user=%s title='%s'", category, user_id, title)

    if job_id is not None:
        queue_event(db, str(job_id), "notification.created", {
            "id": str(notification.id),
            "user_id": str(user_id),
            "title": title,
        })
    return notification


def _feed_filter(user_id: uuid.UUID):
    return (Notification.user_id == user_id, Notification.is_deleted.is_(False))


def notification_feed_query(
    user_id: uuid.UUID,
    job_id: uuid.UUID | None = None,
    category: str | None = None,
    unread_only: bool = False,
):
    query = select(Notification).where(*_feed_filter(user_id))
    if job_id is not None:
        query = query.where(Notification.job_id == job_id)
    if category:
        query = query.where(Notification.category == category)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc())


async def unread_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            *_feed_filter(user_id), Notification.is_read.is_(False)
        )
    )
    return result.scalar() or 0


async def get_notification(
    db: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID
) -> Notification:
    result = await db.execute(
        select(Notification).where(Notification.id == notification_id, *_feed_filter(user_id))
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification", str(notification_id))
    return notification


async def mark_all_read(db: AsyncSession, user_id: uuid.UUID, job_id: uuid.UUID | None = None) -> int:
    stmt = update(Notification).where(*_feed_filter(user_id), Notification.is_read.is_(False))
    if job_id is not None:
        stmt = stmt.where(Notification.job_id == job_id)
    result = await db.execute(stmt.values(is_read=True).execution_options(synchronize_session=False))
    await db.flush()
    return result.rowcount or 0


async def get_active_email_configuration(db: AsyncSession) -> EmailConfiguration | None:
    result = await db.execute(
        select(EmailConfiguration)
        .where(EmailConfiguration.is_active.is_(True), EmailConfiguration.is_deleted.is_(False))
        .order_by(EmailConfiguration.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def find_template(
    db: AsyncSession,
    notification_type: NotificationType,
    template_id: uuid.UUID | None = None,
) -> EmailTemplate:
    query = select(EmailTemplate).where(EmailTemplate.is_deleted.is_(False))
    if template_id is not None:
        query = query.where(EmailTemplate.id == template_id)
    else:
        query = query.where(
            EmailTemplate.notification_type == notification_type.value,
            EmailTemplate.is_active.is_(True),
        ).order_by(EmailTemplate.created_at.desc())
    result = await db.execute(query.limit(1))
    template = result.scalar_one_or_none()
    if not template:
        raise NotFoundError("Email template", str(template_id) if template_id else notification_type.value)
    return template


def _merge_addresses(*values: str | None) -> str | None:
    seen: list[str] = []
    for value in values:
        for address in (value or "").replace(";", ",").split(","):
            address = address.strip()
            if address and address.lower() not in (s.lower() for s in seen):
                seen.append(address)
    return ", ".join(seen) or None


async def _attachment_links(
    db: AsyncSession, job_id: uuid.UUID, image_ids: list[uuid.UUID], storage: StorageClient
) -> list[tuple[JobImage, str]]:
    if not image_ids:
        return []
    result = await db.execute(
        select(JobImage).where(
            JobImage.job_id == job_id,
            JobImage.id.in_(image_ids),
            JobImage.is_deleted.is_(False),
        )
    )
    images = result.scalars().all()
    return [(image, await storage.get_preview_url(image.file_path)) for image in images]


async def send_job_notification(
    db: AsyncSession,
    job_id: uuid.UUID,
    notification_type: NotificationType,
    sent_by: Profile | None,
    recipient: str | None = None,
    recipient_name: str | None = None,
    cc: str | None = None,
    bcc: str | None = None,
    template_id: uuid.UUID | None = None,
    image_ids: list[uuid.UUID] | None = None,
    email_client: EmailClient | None = None,
    storage: StorageClient | None = None,
) -> EmailLog:
    """Compose and send a templated job email, logging the outcome.

    Extra-charges emails carry a one-click approval link; only one such link
    may be pending per job at a time.
    """
    job = await load_job(db, job_id)
    details = job_details(job)
    breakdown = await compute_job_billing(db, job)

    is_approval = notification_type == NotificationType.EXTRA_CHARGES
    if is_approval:
        if job.work_order is None or not job.work_order.has_extra_charges:
            raise BadRequestError("This job has no extra charges to approve")
        pending = await resolve_pending_token(db, job.id, ApprovalType.EXTRA_CHARGES.value)
        if pending is not None:
            minutes = seconds_remaining(pending) // 60
            raise ConflictError(
                f"An approval request is already pending for this job (expires in {minutes} minutes)"
            )

    prop = details["property"] or {}
    to = recipient or prop.get("ap_email")
    if not to:
        raise BadRequestError("No recipient email address; set the property's AP email or pass one")

    template = await find_template(db, notification_type, template_id)
    context = build_context(details, breakdown, recipient_name)
    composed = compose(template.subject, template.body, template.signature, context)

    approval = None
    button = ""
    if is_approval:
        snapshot = build_extra_charges_snapshot(details, breakdown)
        approval = await issue_token(db, job, snapshot, to, recipient_name or prop.get("ap_name"))
        button = approval_button_html(approval_url(approval.token), breakdown.totals.extra_bill_total)

    storage = storage or StorageClient()
    links = await _attachment_links(db, job.id, image_ids or [], storage)
    photos = photo_links_html([(image.file_name, url) for image, url in links])
    html = render_email_html(composed.body, composed.signature, button + photos)

    config = await get_active_email_configuration(db)
    payload = {
        "to": to,
        "cc": _merge_addresses(cc, config.default_cc if config else None),
        "bcc": _merge_addresses(bcc, config.default_bcc if config else None),
        "subject": composed.subject,
        "html": html,
        "from": (config.from_email if config else None) or settings.FROM_EMAIL,
    }

    client = email_client or EmailClient()
    result = await client.send_email(
        to=payload["to"],
        subject=payload["subject"],
        html=payload["html"],
        cc=payload["cc"],
        bcc=payload["bcc"],
        from_email=payload["from"],
        from_name=config.from_name if config else None,
    )
    status = EmailStatus.SENT if result.get("status") == "sent" else EmailStatus.FAILED

    if status == EmailStatus.FAILED and approval is not None:
        # an unsent link must not block the next attempt
        approval.expires_at = utcnow()
        approval.sent_at = None

    log = EmailLog(
        job_id=job.id,
        template_id=template.id,
        approval_token_id=approval.id if approval else None,
        notification_type=notification_type.value,
        recipient=payload["to"],
        cc=payload["cc"],
        bcc=payload["bcc"],
        subject=payload["subject"],
        body=payload["html"],
        status=status.value,
        message_id=result.get("message_id"),
        error=result.get("error"),
        sent_by=sent_by.id if sent_by else None,
    )
    db.add(log)
    await db.flush()
    for image, _url in links:
        db.add(EmailAttachment(email_log_id=log.id, file_path=image.file_path, file_name=image.file_name))
    await db.flush()
    await db.refresh(log)

    if status == EmailStatus.FAILED:
        logger.error("Email for job %s to %s failed: %s", job.id, to, result.get("error"))
    else:
        logger.info("Email %s for job %s sent to %s", notification_type.value, job.id, to)
    return log
