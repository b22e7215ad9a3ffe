import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.api.deps import STAFF_ROLES, get_db, require_role
from paintops.common.enums import NotificationType
from paintops.common.exceptions import NotFoundError
from paintops.core.billing.service import compute_job_billing
from paintops.core.jobs.service import job_details, load_job
from paintops.core.notifications import service as notification_service
from paintops.core.notifications.composer import build_context, compose
from paintops.core.notifications.formatter import render_visual_preview
from paintops.db.models.email import EmailConfiguration, EmailLog, EmailTemplate
from paintops.db.models.job import JobPhase
from paintops.db.models.profile import Profile

router = APIRouter(tags=["Email"])


# ---------- Schemas ----------


class TemplateRequest(BaseModel):
    name: str
    subject: str
    body: str
    signature: str | None = None
    trigger_phase_id: uuid.UUID | None = None
    notification_type: NotificationType
    is_active: bool = True


class TemplateResponse(BaseModel):
    id: uuid.UUID
    name: str
    subject: str
    body: str
    signature: str | None
    trigger_phase_id: uuid.UUID | None
    notification_type: str
    is_active: bool

    model_config = {"from_attributes": True}


class PreviewRequest(BaseModel):
    subject: str = ""
    body: str
    signature: str | None = None
    job_id: uuid.UUID | None = None


class PreviewResponse(BaseModel):
    subject: str
    body: str
    html: str


class EmailConfigurationRequest(BaseModel):
    from_email: EmailStr
    from_name: str | None = None
    default_cc: str | None = None
    default_bcc: str | None = None


class EmailConfigurationResponse(BaseModel):
    id: uuid.UUID
    from_email: str
    from_name: str | None
    default_cc: str | None
    default_bcc: str | None
    is_active: bool

    model_config = {"from_attributes": True}


class SendEmailRequest(BaseModel):
    notification_type: NotificationType
    recipient: EmailStr | None = None
    recipient_name: str | None = None
    cc: str | None = None
    bcc: str | None = None
    template_id: uuid.UUID | None = None
    image_ids: list[uuid.UUID] = []


class EmailLogResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID | None
    template_id: uuid.UUID | None
    approval_token_id: uuid.UUID | None
    notification_type: str | None
    recipient: str
    cc: str | None
    bcc: str | None
    subject: str
    status: str
    message_id: str | None
    error: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------- Endpoints ----------


@router.post("/email-templates", response_model=TemplateResponse, status_code=201)
async def create_template(
    body: TemplateRequest,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    if body.trigger_phase_id is not None:
        result = await db.execute(select(JobPhase).where(JobPhase.id == body.trigger_phase_id))
        if not result.scalar_one_or_none():
            raise NotFoundError("Job phase", str(body.trigger_phase_id))
    template = EmailTemplate(**body.model_dump(exclude={"notification_type"}), notification_type=body.notification_type.value)
    db.add(template)
    await db.flush()
    await db.refresh(template)
    return template


@router.get("/email-templates", response_model=list[TemplateResponse])
async def list_templates(
    notification_type: NotificationType | None = Query(None),
    trigger_phase_id: uuid.UUID | None = Query(None),
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    query = select(EmailTemplate).where(EmailTemplate.is_deleted.is_(False))
    if notification_type is not None:
        query = query.where(EmailTemplate.notification_type == notification_type.value)
    if trigger_phase_id is not None:
        query = query.where(EmailTemplate.trigger_phase_id == trigger_phase_id)
    result = await db.execute(query.order_by(EmailTemplate.name))
    return result.scalars().all()


@router.post("/email-templates/preview", response_model=PreviewResponse)
async def preview_template(
    body: PreviewRequest,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    context: dict[str, str] = {}
    if body.job_id is not None:
        job = await load_job(db, body.job_id)
        context = build_context(job_details(job), await compute_job_billing(db, job))
    composed = compose(body.subject, body.body, body.signature, context)
    html = render_visual_preview(composed.body)
    if composed.signature:
        html += "\n" + render_visual_preview(composed.signature)
    return PreviewResponse(subject=composed.subject, body=composed.body, html=html)


@router.get("/email-configuration", response_model=EmailConfigurationResponse | None)
async def get_email_configuration(
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.get_active_email_configuration(db)


@router.put("/email-configuration", response_model=EmailConfigurationResponse)
async def set_email_configuration(
    body: EmailConfigurationRequest,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(EmailConfiguration).where(EmailConfiguration.is_active.is_(True)))
    for existing in result.scalars().all():
        existing.is_active = False
    config = EmailConfiguration(**body.model_dump(), is_active=True)
    db.add(config)
    await db.flush()
    await db.refresh(config)
    return config


@router.post("/jobs/{job_id}/emails", response_model=EmailLogResponse, status_code=201)
async def send_job_email(
    job_id: uuid.UUID,
    body: SendEmailRequest,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.send_job_notification(
        db,
        job_id,
        body.notification_type,
        current_user,
        recipient=body.recipient,
        recipient_name=body.recipient_name,
        cc=body.cc,
        bcc=body.bcc,
        template_id=body.template_id,
        image_ids=body.image_ids,
    )


@router.get("/jobs/{job_id}/emails", response_model=list[EmailLogResponse])
async def list_job_emails(
    job_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(EmailLog)
        .where(EmailLog.job_id == job_id, EmailLog.is_deleted.is_(False))
        .order_by(EmailLog.created_at.desc())
    )
    return result.scalars().all()
