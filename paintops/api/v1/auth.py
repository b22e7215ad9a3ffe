import uuid

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.api.deps import STAFF_ROLES, get_current_user, get_db, require_role
from paintops.common.enums import UserRole
from paintops.common.exceptions import BadRequestError, NotFoundError, PermissionDeniedError
from paintops.common.logging import get_logger
from paintops.common.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from paintops.db.base import utcnow
from paintops.db.models.profile import Profile

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger("api.v1.auth")

MIN_PASSWORD_LENGTH = 8


# ---------- Schemas ----------


class ProfileCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    full_name: str = Field(min_length=1)
    phone: str | None = None
    role: UserRole = UserRole.SUBCONTRACTOR


class PasswordReset(BaseModel):
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class Credentials(BaseModel):
    email: EmailStr
    password: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


class ProfileResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    phone: str | None
    role: str
    is_active: bool

    model_config = {"from_attributes": True}


def _token_pair(profile: Profile) -> TokenPair:
    return TokenPair(
        access_token=create_access_token({"sub": str(profile.id), "role": profile.role}),
        refresh_token=create_refresh_token({"sub": str(profile.id)}),
    )


async def _load_profile(db: AsyncSession, profile_id: uuid.UUID) -> Profile:
    result = await db.execute(
        select(Profile).where(Profile.id == profile_id, Profile.is_deleted.is_(False))
    )
    profile = result.scalar_one_or_none()
    if not profile:
        raise NotFoundError("User", str(profile_id))
    return profile


# ---------- Endpoints ----------


@router.post("/login", response_model=TokenPair)
async def login(body: Credentials, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Profile).where(Profile.email == body.email, Profile.is_deleted.is_(False))
    )
    profile = result.scalar_one_or_none()
    if not profile or not verify_password(body.password, profile.hashed_password):
        raise PermissionDeniedError("Invalid email or password")
    if not profile.is_active:
        raise PermissionDeniedError("Account is inactive")
    return _token_pair(profile)


@router.post("/refresh", response_model=TokenPair)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    try:
        payload = decode_token(body.refresh_token)
    except ValueError:
        raise PermissionDeniedError("Invalid refresh token")
    if payload.get("type") != "refresh":
        raise PermissionDeniedError("Invalid token type")

    try:
        profile = await _load_profile(db, uuid.UUID(payload.get("sub", "")))
    except (ValueError, NotFoundError):
        raise PermissionDeniedError("User not found")
    if not profile.is_active:
        raise PermissionDeniedError("Account is inactive")
    return _token_pair(profile)


@router.get("/me", response_model=ProfileResponse)
async def get_me(current_user: Profile = Depends(get_current_user)):
    return current_user


@router.get("/users", response_model=list[ProfileResponse])
async def list_users(
    role: UserRole | None = Query(None),
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    query = select(Profile).where(Profile.is_deleted.is_(False), Profile.is_active.is_(True))
    if role:
        query = query.where(Profile.role == role.value)
    result = await db.execute(query.order_by(Profile.full_name))
    return result.scalars().all()


@router.post("/users", response_model=ProfileResponse, status_code=201)
async def create_user(
    body: ProfileCreate,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    if body.role == UserRole.ADMIN and current_user.role != UserRole.ADMIN.value:
        raise PermissionDeniedError("Only admins can create admin users")

    result = await db.execute(select(Profile).where(Profile.email == body.email))
    if result.scalar_one_or_none():
        raise BadRequestError("An account with this email already exists")

    profile = Profile(
        email=body.email,
        hashed_password=get_password_hash(body.password),
        full_name=body.full_name,
        phone=body.phone,
        role=body.role.value,
    )
    db.add(profile)
    await db.flush()
    await db.refresh(profile)
    logger.info("User %s (%s) created by %s", profile.email, profile.role, current_user.id)
    return profile


@router.put("/users/{user_id}/password", status_code=204)
async def reset_password(
    user_id: uuid.UUID,
    body: PasswordReset,
    current_user: Profile = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    profile = await _load_profile(db, user_id)
    profile.hashed_password = get_password_hash(body.password)
    await db.flush()
    logger.info("Password for user %s reset by %s", user_id, current_user.id)
    return Response(status_code=204)


@router.delete("/users/{user_id}", status_code=204)
async def deactivate_user(
    user_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    if user_id == current_user.id:
        raise BadRequestError("Cannot delete your own account")

    profile = await _load_profile(db, user_id)
    profile.is_active = False
    profile.is_deleted = True
    profile.deleted_at = utcnow()
    await db.flush()
    logger.info("User %s deactivated by %s", user_id, current_user.id)
    return Response(status_code=204)
