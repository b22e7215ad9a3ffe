"""Event bus for broadcasting job changes to WebSocket subscribers.

Services queue events on the database session; ``get_db`` publishes them
once the transaction has committed and drops them on rollback.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.logging import get_logger

logger = get_logger("events")

PENDING_EVENTS = "pending_events"


def queue_event(db: AsyncSession, job_id: str, event: str, data: dict) -> None:
    db.info.setdefault(PENDING_EVENTS, []).append((str(job_id), event, data))


def discard_events(db: AsyncSession) -> None:
    dropped = db.info.pop(PENDING_EVENTS, None)
    if dropped:
        logger.debug("Dropped %d event(s) from a rolled back transaction", len(dropped))


async def publish_events(db: AsyncSession) -> int:
    events = db.info.pop(PENDING_EVENTS, [])
    for job_id, event, data in events:
        await emit(job_id, event, data)
    return len(events)


async def emit(job_id: str, event: str, data: dict) -> None:
    """Broadcast an event to every WebSocket subscribed to a job.

    Safe to call from anywhere; no-ops when nobody is listening.
    """
    try:
        from paintops.api.ws import manager
        await manager.broadcast(str(job_id), event, data)
    except Exception as e:
        logger.debug("Event emit failed (non-critical): %s", e)
