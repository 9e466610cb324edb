"""Status condition helpers: upsert/remove by condition type."""

from __future__ import annotations

from datetime import UTC, datetime

from dvls_operator.controller.models import Condition, ConditionStatus


def find_condition(conditions: list[Condition], type_: str) -> Condition | None:
    for cond in conditions:
        if cond.type == type_:
            return cond
    return None


def set_condition(
    conditions: list[Condition],
    type_: str,
    status: ConditionStatus,
    reason: str = "",
    message: str = "",
    *,
    now: datetime | None = None,
) -> bool:
    """Upsert a condition in place. Returns True if anything changed.

    lastTransitionTime moves only when the status flips (or on insert).
    """
    now = now or datetime.now(UTC)
    existing = find_condition(conditions, type_)
    if existing is None:
        conditions.append(
            Condition(type=type_, status=status, reason=reason, message=message, last_transition_time=now)
        )
        return True

    changed = False
    if existing.status != status:
        existing.status = status
        existing.last_transition_time = now
        changed = True
    if existing.reason != reason:
        existing.reason = reason
        changed = True
    if existing.message != message:
        existing.message = message
        changed = True
    return changed


def remove_condition(conditions: list[Condition], type_: str) -> bool:
    """Delete a condition by type. Returns True if one was removed."""
    for i, cond in enumerate(conditions):
        if cond.type == type_:
            del conditions[i]
            return True
    return False
