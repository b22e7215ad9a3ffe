import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.common.enums import UserRole
from paintops.common.events import discard_events, publish_events
from paintops.common.exceptions import NotFoundError, PermissionDeniedError
from paintops.common.security import decode_token
from paintops.db.models.job import Job
from paintops.db.models.profile import Profile
from paintops.db.session import async_session_factory

STAFF_ROLES = (UserRole.ADMIN, UserRole.JG_MANAGEMENT)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            discard_events(session)
            await session.rollback()
            raise
        await publish_events(session)


async def get_current_user(
    authorization: str = Header(..., description="Bearer <token>"),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    if not authorization.startswith("Bearer "):
        raise PermissionDeniedError("Invalid authorization header format")

    token = authorization[len("Bearer "):]
    try:
        payload = decode_token(token)
    except ValueError:
        raise PermissionDeniedError("Invalid or expired token")

    if payload.get("type") != "access":
        raise PermissionDeniedError("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise PermissionDeniedError("Invalid token payload")

    result = await db.execute(
        select(Profile).where(Profile.id == uuid.UUID(user_id), Profile.is_deleted.is_(False))
    )
    user = result.scalar_one_or_none()

    if not user:
        raise NotFoundError("User")
    if not user.is_active:
        raise PermissionDeniedError("User account is inactive")

    return user


def require_role(*roles: UserRole):
    async def role_checker(current_user: Profile = Depends(get_current_user)) -> Profile:
        if current_user.role not in [r.value for r in roles]:
            raise PermissionDeniedError(
                f"This action requires one of the following roles: {', '.join(r.value for r in roles)}"
            )
        return current_user

    return role_checker


def is_staff(user: Profile) -> bool:
    return user.role in [r.value for r in STAFF_ROLES]


def verify_job_access(job: Job, user: Profile) -> None:
    """Staff see every job; subcontractors only the jobs assigned to them."""
    if is_staff(user):
        return
    if job.assigned_to != user.id:
        raise PermissionDeniedError("You do not have access to this job")
