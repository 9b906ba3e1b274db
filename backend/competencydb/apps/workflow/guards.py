from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ...statuses import OnHoldBy

GuardResult = List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def guard_batch_capacity(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: int,
    to_state: int,
) -> GuardResult:
    batch_id = _get_value(after_obj, "training_batch_id")
    spot_left = _get_value(after_obj, "spot_left")

    missing = []
    if not batch_id:
        missing.append({"field": "training_batch_id", "reason": "batch required"})
    if spot_left is None or spot_left <= 0:
        missing.append({"field": "capacity", "reason": "Number of learners cannot exceed capacity"})
    return missing


def guard_drop_off_reason(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: int,
    to_state: int,
) -> GuardResult:
    # The reason itself may be blank; the caller must still pass the key.
    if isinstance(after_obj, dict) and "drop_off_reason" in after_obj:
        return []
    return [{"field": "drop_off_reason", "reason": "drop-off reason must be recorded"}]


def guard_not_in_batch(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: int,
    to_state: int,
) -> GuardResult:
    if _get_value(before_obj, "training_batch_id"):
        return [
            {
                "field": "status",
                "reason": "Use the batch drop-off or remove actions for learners in a batch",
            }
        ]
    return []


def guard_on_hold_details(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: int,
    to_state: int,
) -> GuardResult:
    on_hold_by = _get_value(after_obj, "on_hold_by")
    if on_hold_by not in (OnHoldBy.LEARNER, OnHoldBy.TRAINER):
        return [{"field": "on_hold_by", "reason": "on hold by learner (0) or trainer (1) required"}]
    return []
