"""Approval token rules: format, lifetime and state."""

from __future__ import annotations

import secrets
import string
import uuid
from datetime import datetime, timedelta

from paintops.common.enums import ApprovalStatus
from paintops.config import settings
from paintops.core.billing.money import format_plain
from paintops.core.billing.schemas import JobBillingBreakdown
from paintops.db.base import as_aware, utcnow
from paintops.db.models.approval import ApprovalToken

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 13

DECIDED = {ApprovalStatus.APPROVED.value, ApprovalStatus.DECLINED.value}


def generate_token(job_id: uuid.UUID, now: datetime | None = None) -> str:
    """Build an opaque ``{jobId}-{timestampMillis}-{randomSuffix}`` token."""
    now = now or utcnow()
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{job_id}-{millis}-{suffix}"


def expiry_for(now: datetime, preview: bool = False) -> datetime:
    if preview:
        return now + timedelta(minutes=settings.APPROVAL_PREVIEW_TTL_MINUTES)
    return now + timedelta(days=settings.APPROVAL_TOKEN_TTL_DAYS)


def token_state(token: ApprovalToken, now: datetime | None = None) -> ApprovalStatus:
    if token.status in DECIDED:
        return ApprovalStatus(token.status)
    now = now or utcnow()
    if as_aware(token.expires_at) <= now:
        return ApprovalStatus.EXPIRED
    return ApprovalStatus.PENDING


def seconds_remaining(token: ApprovalToken, now: datetime | None = None) -> int:
    now = now or utcnow()
    return max(int((as_aware(token.expires_at) - now).total_seconds()), 0)


def approval_url(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/approval/{token}"


def build_extra_charges_snapshot(details: dict, breakdown: JobBillingBreakdown) -> dict:
    """Freeze the extra charges as they are right now for the approval page."""
    items = [
        {
            "description": line.label,
            "quantity": format_plain(line.quantity),
            "unit": line.unit_label,
            "rate": format_plain(line.rate_bill),
            "cost": format_plain(line.amount_bill),
        }
        for line in breakdown.lines
        if line.section == "extra"
    ]
    prop = details.get("property") or {}
    return {
        "items": items,
        "total": format_plain(breakdown.totals.extra_bill_total),
        "job_details": {
            "id": str(details["id"]),
            "work_order_num": details.get("work_order_num"),
            "unit_number": details.get("unit_number"),
            "property": {
                "name": prop.get("property_name"),
                "address": prop.get("address"),
            },
        },
    }
