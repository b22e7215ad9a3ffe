from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from paintops.common.enums import UserRole
from paintops.db.base import BaseModel


class Profile(BaseModel):
    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False, default=UserRole.SUBCONTRACTOR)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
