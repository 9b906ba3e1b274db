"""
Training request lifecycle.

All status changes of a training request go through `transition`, which
checks the move against the workflow registry for the triggering action
before writing it. Lifecycle code only compares integer codes; labels
live in `statuses`.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ...statuses import BATCH_MEMBER_STATUSES
from ...statuses import TrainingRequestStatus as TR
from ..workflow import apply_transition
from . import ledger, models

ENTITY_TYPE = "training_request"


def _snapshot(request: models.TrainingRequest) -> Dict[str, Any]:
    return {
        "status": request.status,
        "training_batch_id": request.training_batch_id,
        "on_hold_by": request.on_hold_by,
    }


def transition(
    db: Session,
    request: models.TrainingRequest,
    *,
    trigger: str,
    to_state: int,
    actor_user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> models.TrainingRequest:
    after = {"status": to_state}
    after.update(context or {})
    apply_transition(
        db,
        actor_user_id=actor_user_id,
        entity_type=ENTITY_TYPE,
        entity_id=request.id,
        trigger=trigger,
        from_state=request.status,
        to_state=to_state,
        before_obj=_snapshot(request),
        after_obj=after,
    )
    if to_state == TR.IN_QUEUE and request.status != TR.IN_QUEUE:
        request.in_queue_date = date.today()
    request.status = to_state
    return request


# ---------------------------------------------------------------------------
# BATCH MEMBERSHIP
# ---------------------------------------------------------------------------


def assign_to_batch(
    db: Session,
    request: models.TrainingRequest,
    batch: models.TrainingBatch,
    *,
    actor_user_id: Optional[str] = None,
) -> models.TrainingBatchLearner:
    """
    Enrol the request's learner in `batch` and move the request to In Progress.

    The caller recomputes the ledger once the roster is final.
    """
    db.flush()
    spot_left = batch.capacity - ledger.enrolled_count(db, batch.id)
    transition(
        db,
        request,
        trigger="batch_assign",
        to_state=TR.IN_PROGRESS,
        actor_user_id=actor_user_id,
        context={"training_batch_id": batch.id, "spot_left": spot_left},
    )
    request.training_batch_id = batch.id
    request.on_hold_by = None
    request.on_hold_reason = None

    row = models.TrainingBatchLearner(
        learner_user_id=request.learner_user_id,
        training_request=request,
    )
    batch.learners.append(row)
    db.flush()
    return row


def release_from_batch(
    db: Session,
    request: models.TrainingRequest,
    *,
    trigger: str,
    actor_user_id: Optional[str] = None,
    drop_off_reason: Optional[str] = None,
) -> models.TrainingRequest:
    """
    Detach a request from its batch: Drop Off for `drop_off`, In Queue for
    `remove` and `batch_delete`. The roster row is removed by the caller.

    Attendance and homework rows stay in place as the learner's history.
    """
    if trigger == "drop_off":
        reason = (drop_off_reason or "").strip() or None
        transition(
            db,
            request,
            trigger=trigger,
            to_state=TR.DROP_OFF,
            actor_user_id=actor_user_id,
            context={"drop_off_reason": reason},
        )
        request.drop_off_reason = reason
    else:
        transition(db, request, trigger=trigger, to_state=TR.IN_QUEUE, actor_user_id=actor_user_id)
    request.training_batch_id = None
    return request


# ---------------------------------------------------------------------------
# SESSION PROGRESS
# ---------------------------------------------------------------------------


def mark_session_started(db: Session, request: models.TrainingRequest, *, actor_user_id: Optional[str] = None) -> None:
    # Already In Progress or beyond: nothing to change.
    if request.status == TR.IN_PROGRESS:
        transition(db, request, trigger="session_start", to_state=TR.IN_PROGRESS, actor_user_id=actor_user_id)


def mark_sessions_completed(db: Session, request: models.TrainingRequest, *, actor_user_id: Optional[str] = None) -> None:
    if request.status == TR.IN_PROGRESS:
        transition(db, request, trigger="sessions_complete", to_state=TR.SESSIONS_COMPLETED, actor_user_id=actor_user_id)


def revoke_sessions_completed(db: Session, request: models.TrainingRequest, *, actor_user_id: Optional[str] = None) -> None:
    if request.status == TR.SESSIONS_COMPLETED:
        transition(db, request, trigger="attendance_revoked", to_state=TR.IN_PROGRESS, actor_user_id=actor_user_id)


def sync_progress(
    db: Session,
    batch: models.TrainingBatch,
    request: models.TrainingRequest,
    *,
    actor_user_id: Optional[str] = None,
) -> None:
    """
    Align a member request with its attendance on the batch's last session:
    Sessions Completed when it is attended, In Progress otherwise.

    Runs after the session count changes and when a learner re-enters a
    batch whose attendance rows are still on record.
    """
    if request.status not in BATCH_MEMBER_STATUSES:
        return
    last = batch.session_by_number(batch.session_count)
    row = None
    if last is not None and last.id is not None:
        row = db.get(
            models.TrainingBatchAttendanceSession, (batch.id, request.learner_user_id, last.id)
        )
    if row is not None and row.attended:
        mark_sessions_completed(db, request, actor_user_id=actor_user_id)
    else:
        revoke_sessions_completed(db, request, actor_user_id=actor_user_id)


# ---------------------------------------------------------------------------
# ADMINISTRATIVE EDITS
# ---------------------------------------------------------------------------


def set_status_manually(
    db: Session,
    request: models.TrainingRequest,
    to_state: int,
    *,
    actor_user_id: Optional[str] = None,
    on_hold_by: Optional[int] = None,
    on_hold_reason: Optional[str] = None,
) -> models.TrainingRequest:
    transition(
        db,
        request,
        trigger="manual",
        to_state=to_state,
        actor_user_id=actor_user_id,
        context={"on_hold_by": on_hold_by},
    )
    if to_state == TR.ON_HOLD:
        request.on_hold_by = on_hold_by
        request.on_hold_reason = on_hold_reason
    else:
        request.on_hold_by = None
        request.on_hold_reason = None
    return request
