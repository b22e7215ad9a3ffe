import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from paintops.common.enums import ApprovalStatus
from paintops.db.base import BaseModel


class ApprovalToken(BaseModel):
    __tablename__ = "approval_tokens"

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("jobs.id"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    approval_type: Mapped[str] = mapped_column(String(50), nullable=False)
    # Snapshot taken at issue time; later rendering must not depend on mutable job state
    extra_charges_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True, default=dict)
    approver_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value
    )
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decline_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
