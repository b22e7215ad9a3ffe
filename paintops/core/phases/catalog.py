from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.enums import PhaseLabel
from paintops.common.exceptions import NotFoundError
from paintops.common.logging import get_logger
from paintops.core.phases.workflow import DEFAULT_PHASES
from paintops.db.models.job import JobPhase

logger = get_logger("phases.catalog")


async def get_phase(db: AsyncSession, label: PhaseLabel) -> JobPhase:
    result = await db.execute(
        select(JobPhase).where(
            JobPhase.job_phase_label == label.value, JobPhase.is_deleted.is_(False)
        )
    )
    phase = result.scalar_one_or_none()
    if not phase:
        raise NotFoundError("Job phase", label.value)
    return phase


async def ensure_default_phases(db: AsyncSession) -> list[JobPhase]:
    """Create any missing built-in phases. Safe to run repeatedly."""
    result = await db.execute(select(JobPhase))
    existing = {p.job_phase_label: p for p in result.scalars().all()}

    created = 0
    for label, sort_order, color in DEFAULT_PHASES:
        if label.value not in existing:
            phase = JobPhase(job_phase_label=label.value, sort_order=sort_order, color=color)
            db.add(phase)
            existing[label.value] = phase
            created += 1
    if created:
        await db.flush()
        logger.info("Seeded %d job phases", created)
    return sorted(existing.values(), key=lambda p: p.sort_order)
