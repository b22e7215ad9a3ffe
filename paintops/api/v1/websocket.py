"""WebSocket endpoint for real-time job updates.

Clients connect to /api/v1/ws/jobs/{job_id}?token=<jwt> and receive
``job.updated`` and ``notification.created`` events, throttled per job.
"""

from __future__ import annotations

import json
import uuid

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from sqlalchemy import select

from paintops.api.deps import is_staff
from paintops.api.ws import manager
from paintops.common.logging import get_logger
from paintops.common.security import decode_token
from paintops.db.models.job import Job
from paintops.db.models.profile import Profile
from paintops.db.session import async_session_factory

logger = get_logger("api.v1.websocket")

router = APIRouter(tags=["WebSocket"])


async def _authorize(token: str, job_id: str) -> Profile | None:
    try:
        payload = decode_token(token)
    except ValueError:
        return None
    if payload.get("type") != "access" or not payload.get("sub"):
        return None
    try:
        user_uuid, job_uuid = uuid.UUID(payload["sub"]), uuid.UUID(job_id)
    except ValueError:
        return None

    async with async_session_factory() as db:
        result = await db.execute(
            select(Profile).where(Profile.id == user_uuid, Profile.is_deleted.is_(False))
        )
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            return None
        result = await db.execute(select(Job).where(Job.id == job_uuid, Job.is_deleted.is_(False)))
        job = result.scalar_one_or_none()
        if job is None:
            return None
        if not is_staff(user) and job.assigned_to != user.id:
            return None
        return user


@router.websocket("/ws/jobs/{job_id}")
async def job_websocket(
    websocket: WebSocket,
    job_id: str,
    token: str = Query(...),
):
    user = await _authorize(token, job_id)
    if not user:
        await websocket.close(code=4003, reason="Access denied")
        return

    conn_id = await manager.connect(job_id, websocket)
    await manager.send_personal(job_id, conn_id, "connected", {
        "message": "Subscribed to job updates",
        "user_id": str(user.id),
    })

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await manager.send_personal(job_id, conn_id, "error", {"message": "Invalid JSON"})
                continue

            if msg.get("action") == "ping":
                await manager.send_personal(job_id, conn_id, "pong", {})
            else:
                await manager.send_personal(job_id, conn_id, "error", {
                    "message": f"Unknown action: {msg.get('action')}"
                })

    except WebSocketDisconnect:
        manager.disconnect(job_id, conn_id)
    except Exception as e:
        logger.error("WebSocket error: %s", e)
        manager.disconnect(job_id, conn_id)
