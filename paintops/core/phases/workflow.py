"""Job phase rules, independent of persistence."""

from datetime import datetime

from paintops.common.enums import ApprovalStatus, PhaseDecision, PhaseLabel
from paintops.common.exceptions import BadRequestError

# Ordered phases reachable with next/previous. Pending Work Order, Cancelled and
# Archived are only entered through named actions.
NAVIGABLE_PHASES = [
    PhaseLabel.JOB_REQUEST,
    PhaseLabel.WORK_ORDER,
    PhaseLabel.INVOICING,
    PhaseLabel.COMPLETED,
]

DEFAULT_PHASES = [
    (PhaseLabel.JOB_REQUEST, 1, "#3B82F6"),
    (PhaseLabel.PENDING_WORK_ORDER, 2, "#F59E0B"),
    (PhaseLabel.WORK_ORDER, 3, "#8B5CF6"),
    (PhaseLabel.INVOICING, 4, "#EC4899"),
    (PhaseLabel.COMPLETED, 5, "#10B981"),
    (PhaseLabel.CANCELLED, 6, "#EF4444"),
    (PhaseLabel.ARCHIVED, 7, "#6B7280"),
]

CANCELLABLE = {
    PhaseLabel.JOB_REQUEST,
    PhaseLabel.PENDING_WORK_ORDER,
    PhaseLabel.WORK_ORDER,
}
ARCHIVABLE = {PhaseLabel.COMPLETED, PhaseLabel.CANCELLED}


def next_phase(current: PhaseLabel) -> PhaseLabel:
    if current not in NAVIGABLE_PHASES:
        raise BadRequestError(f"Cannot advance a job in '{current.value}'")
    index = NAVIGABLE_PHASES.index(current)
    if index == len(NAVIGABLE_PHASES) - 1:
        raise BadRequestError(f"'{current.value}' is the last phase")
    return NAVIGABLE_PHASES[index + 1]


def previous_phase(current: PhaseLabel) -> PhaseLabel:
    if current not in NAVIGABLE_PHASES:
        raise BadRequestError(f"Cannot revert a job in '{current.value}'")
    index = NAVIGABLE_PHASES.index(current)
    if index == 0:
        raise BadRequestError(f"'{current.value}' is the first phase")
    return NAVIGABLE_PHASES[index - 1]


def submission_target(requires_approval: bool) -> PhaseLabel:
    return PhaseLabel.PENDING_WORK_ORDER if requires_approval else PhaseLabel.WORK_ORDER


def require_phase(current: PhaseLabel, *allowed: PhaseLabel, action: str) -> None:
    if current not in allowed:
        names = ", ".join(p.value for p in allowed)
        raise BadRequestError(f"Cannot {action} while the job is in '{current.value}' (requires {names})")


def resolve_effective_decision(
    token_decision: tuple[str, datetime] | None,
    audit_decision: tuple[str, datetime] | None,
) -> ApprovalStatus | None:
    """Most recent explicit decision wins; an audit ``reset`` means pending again."""
    events = [e for e in (token_decision, audit_decision) if e is not None]
    if not events:
        return None
    decision, _ = max(events, key=lambda e: e[1])
    if decision == PhaseDecision.RESET.value:
        return None
    return ApprovalStatus(decision)
