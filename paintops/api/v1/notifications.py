"""In-app notification feed for the signed-in user."""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.api.deps import get_current_user, get_db
from paintops.common.pagination import PaginatedResponse, PaginationParams, page_response, paginate
from paintops.core.notifications import service as notification_service
from paintops.db.base import utcnow
from paintops.db.models.profile import Profile

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# ---------- Schemas ----------


class NotificationResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID | None
    category: str
    title: str
    body: str
    is_read: bool
    action_url: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationFeed(PaginatedResponse[NotificationResponse]):
    unread_count: int


# ---------- Endpoints ----------


@router.get("", response_model=NotificationFeed)
async def list_notifications(
    job_id: uuid.UUID | None = Query(None),
    category: str | None = Query(None),
    unread_only: bool = False,
    params: PaginationParams = Depends(),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = notification_service.notification_feed_query(
        current_user.id, job_id=job_id, category=category, unread_only=unread_only
    )
    items, total = await paginate(db, query, params)
    return NotificationFeed(
        **page_response([NotificationResponse.model_validate(n) for n in items], total, params),
        unread_count=await notification_service.unread_count(db, current_user.id),
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.get_notification(db, current_user.id, notification_id)
    notification.is_read = True
    await db.flush()
    return notification


@router.post("/read-all")
async def mark_all_read(
    job_id: uuid.UUID | None = Query(None),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_all_read(db, current_user.id, job_id)
    return {"updated": updated}


@router.delete("/{notification_id}", status_code=204)
async def dismiss(
    notification_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.get_notification(db, current_user.id, notification_id)
    notification.is_deleted = True
    notification.deleted_at = utcnow()
    await db.flush()
    return Response(status_code=204)
