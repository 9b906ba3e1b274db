"""
Training batch services.

Every function here only flushes. Routers wrap each call in
`database.transaction` so a batch mutation (fields, sessions, roster,
request statuses and ledger) commits or rolls back as one unit.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ...errors import NotFoundError, ValidationError
from ...statuses import BATCH_ENTRY_STATUSES
from ...utils.pagination import normalize_pagination
from ..accounts import models as account_models
from ..competencies import models as competency_models
from ..competencies import services as competency_services
from . import attendance, ledger, lifecycle, models, schemas

logger = logging.getLogger(__name__)

MISSING_FIELDS = "Missing required fields"
NOT_IN_QUEUE = "Some learners do not have training requests in queue"

_BATCH_NAME_RE = re.compile(r"^Batch\s+(\d+)$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# LOOKUPS
# ---------------------------------------------------------------------------


def get_batch(db: Session, batch_id: str) -> models.TrainingBatch:
    batch = db.get(models.TrainingBatch, batch_id)
    if batch is None:
        raise NotFoundError("Training batch not found")
    return batch


def _ensure_trainer(db: Session, trainer_user_id: str) -> None:
    if db.get(account_models.User, trainer_user_id) is None:
        raise ValidationError("Selected trainer does not exist")


def _unique(ids: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(i for i in ids if i))


def _entry_requests(
    db: Session, competency_level_id: str, learner_ids: Sequence[str]
) -> List[models.TrainingRequest]:
    """
    Return one enrollable request per learner, in `learner_ids` order, or
    raise if any learner lacks one. Nothing is mutated here.
    """
    if not learner_ids:
        return []
    rows = (
        db.query(models.TrainingRequest)
        .filter(
            models.TrainingRequest.competency_level_id == competency_level_id,
            models.TrainingRequest.learner_user_id.in_(learner_ids),
            models.TrainingRequest.status.in_(BATCH_ENTRY_STATUSES),
            models.TrainingRequest.training_batch_id.is_(None),
        )
        .all()
    )
    by_learner = {row.learner_user_id: row for row in rows}
    missing = [learner_id for learner_id in learner_ids if learner_id not in by_learner]
    if missing:
        logger.info(
            "Rejected learners without an enrollable request",
            extra={"competency_level_id": competency_level_id, "learner_ids": missing},
        )
        raise ValidationError(NOT_IN_QUEUE)
    return [by_learner[learner_id] for learner_id in learner_ids]


def _reconcile_sessions(
    batch: models.TrainingBatch,
    session_count: int,
    session_dates: Optional[Sequence[Optional[date]]],
) -> None:
    """
    Bring session rows to 1..session_count. Trailing sessions are removed
    with their attendance and homework; existing rows keep their numbers.
    """
    dates = list(session_dates or [])
    existing = {s.session_number: s for s in batch.sessions}

    for number, session in existing.items():
        if number > session_count:
            batch.sessions.remove(session)

    for number in range(1, session_count + 1):
        session = existing.get(number)
        if session is None:
            session = models.TrainingBatchSession(session_number=number)
            batch.sessions.append(session)
        if number <= len(dates) and dates[number - 1] is not None:
            session.session_date = dates[number - 1]


# ---------------------------------------------------------------------------
# CREATE / UPDATE / DELETE
# ---------------------------------------------------------------------------


def create_batch(
    db: Session,
    payload: schemas.TrainingBatchCreate,
    *,
    actor_user_id: Optional[str] = None,
) -> models.TrainingBatch:
    if not (
        (payload.batch_name or "").strip()
        and payload.competency_level_id
        and payload.trainer_user_id
        and payload.session_count
        and payload.capacity
    ) or payload.session_count < 1 or payload.capacity < 1:
        raise ValidationError(MISSING_FIELDS)

    learner_ids = _unique(payload.learner_ids)
    if len(learner_ids) > payload.capacity:
        raise ValidationError(ledger.CAPACITY_EXCEEDED)

    competency_services.get_level(db, payload.competency_level_id)
    _ensure_trainer(db, payload.trainer_user_id)
    requests = _entry_requests(db, payload.competency_level_id, learner_ids)

    batch = models.TrainingBatch(
        batch_name=payload.batch_name.strip(),
        competency_level_id=payload.competency_level_id,
        trainer_user_id=payload.trainer_user_id,
        session_count=payload.session_count,
        duration_hrs=payload.duration_hrs,
        estimated_start=payload.estimated_start,
        batch_start_date=payload.batch_start_date,
        batch_finish_date=payload.batch_finish_date,
        capacity=payload.capacity,
        current_participant=0,
        spot_left=payload.capacity,
    )
    db.add(batch)
    _reconcile_sessions(batch, payload.session_count, payload.session_dates)
    db.flush()

    for request in requests:
        lifecycle.assign_to_batch(db, request, batch, actor_user_id=actor_user_id)

    ledger.sync_ledger(db, batch)
    return batch


_SCALAR_FIELDS = (
    "duration_hrs",
    "estimated_start",
    "batch_start_date",
    "batch_finish_date",
)


def update_batch(
    db: Session,
    batch_id: str,
    payload: schemas.TrainingBatchUpdate,
    *,
    actor_user_id: Optional[str] = None,
) -> models.TrainingBatch:
    batch = get_batch(db, batch_id)
    provided = payload.model_fields_set

    current = {row.learner_user_id: row for row in batch.learners}
    target_ids = _unique(payload.learner_ids) if payload.learner_ids is not None else list(current)
    capacity = payload.capacity if payload.capacity is not None else batch.capacity

    # All validation runs before the first write.
    if payload.learner_ids is not None and len(target_ids) > capacity:
        raise ValidationError(ledger.CAPACITY_EXCEEDED)
    if capacity < len(target_ids):
        raise ValidationError(
            f"Cannot set capacity below current participant count ({len(target_ids)})"
        )
    if payload.batch_name is not None and not payload.batch_name.strip():
        raise ValidationError(MISSING_FIELDS)

    level_id = batch.competency_level_id
    if payload.competency_level_id and payload.competency_level_id != level_id:
        if current or target_ids:
            raise ValidationError(
                "Cannot change the competency level of a batch with enrolled learners"
            )
        competency_services.get_level(db, payload.competency_level_id)
        level_id = payload.competency_level_id
    if payload.trainer_user_id:
        _ensure_trainer(db, payload.trainer_user_id)

    to_remove = [learner_id for learner_id in current if learner_id not in target_ids]
    to_add = [learner_id for learner_id in target_ids if learner_id not in current]
    incoming = _entry_requests(db, level_id, to_add)

    # 1. batch fields
    if payload.batch_name is not None:
        batch.batch_name = payload.batch_name.strip()
    batch.competency_level_id = level_id
    if payload.trainer_user_id:
        batch.trainer_user_id = payload.trainer_user_id
    for field in _SCALAR_FIELDS:
        if field in provided:
            setattr(batch, field, getattr(payload, field))
    batch.capacity = capacity

    sessions_changed = payload.session_count is not None and payload.session_count != batch.session_count

    # 2. sessions
    if payload.session_count is not None or payload.session_dates is not None:
        if payload.session_count is not None:
            batch.session_count = payload.session_count
        _reconcile_sessions(batch, batch.session_count, payload.session_dates)

    # 3. roster
    for learner_id in to_remove:
        row = current[learner_id]
        request = row.training_request
        batch.learners.remove(row)
        lifecycle.release_from_batch(db, request, trigger="remove", actor_user_id=actor_user_id)
    db.flush()

    for request in incoming:
        lifecycle.assign_to_batch(db, request, batch, actor_user_id=actor_user_id)

    # Members follow their attendance on the current last session.
    if sessions_changed or incoming:
        db.flush()
        for row in batch.learners:
            lifecycle.sync_progress(db, batch, row.training_request, actor_user_id=actor_user_id)

    # 4. ledger
    ledger.sync_ledger(db, batch)
    return batch


def delete_batch(
    db: Session,
    batch_id: str,
    *,
    actor_user_id: Optional[str] = None,
) -> Dict[str, object]:
    """
    Return every member request to In Queue, then delete the batch with its
    sessions, roster, attendance and homework.
    """
    batch = get_batch(db, batch_id)
    summary = {
        "id": batch.id,
        "batch_name": batch.batch_name,
        "learner_ids": [row.learner_user_id for row in batch.learners],
    }
    for row in list(batch.learners):
        lifecycle.release_from_batch(
            db, row.training_request, trigger="batch_delete", actor_user_id=actor_user_id
        )
    db.flush()
    db.delete(batch)
    db.flush()
    return summary


# ---------------------------------------------------------------------------
# ROSTER ACTIONS
# ---------------------------------------------------------------------------


def release_learner(
    db: Session,
    batch_id: str,
    learner_user_id: str,
    *,
    trigger: str,
    drop_off_reason: Optional[str] = None,
    actor_user_id: Optional[str] = None,
) -> Tuple[models.TrainingBatch, models.TrainingRequest]:
    """Drop off (`trigger="drop_off"`) or remove (`"remove"`) one learner."""
    batch = get_batch(db, batch_id)
    row = attendance.get_roster_row(db, batch.id, learner_user_id)
    request = row.training_request

    batch.learners.remove(row)
    lifecycle.release_from_batch(
        db,
        request,
        trigger=trigger,
        actor_user_id=actor_user_id,
        drop_off_reason=drop_off_reason,
    )
    ledger.sync_ledger(db, batch)
    return batch, request


def list_roster(db: Session, batch_id: str) -> List[models.TrainingBatchLearner]:
    batch = get_batch(db, batch_id)
    return sorted(batch.learners, key=lambda row: (row.learner.name or "").lower())


# ---------------------------------------------------------------------------
# SESSIONS, ATTENDANCE, HOMEWORK
# ---------------------------------------------------------------------------


def set_session_date(
    db: Session, batch_id: str, payload: schemas.SessionDateUpdate
) -> models.TrainingBatchSession:
    batch = get_batch(db, batch_id)
    number = payload.session_number
    if number < 1 or number > batch.session_count:
        raise ValidationError(f"Session number must be between 1 and {batch.session_count}")

    session = batch.session_by_number(number)
    if session is None:
        session = models.TrainingBatchSession(session_number=number)
        batch.sessions.append(session)
    session.session_date = payload.session_date
    db.flush()
    return session


def start_session_1(
    db: Session, batch_id: str, *, actor_user_id: Optional[str] = None
) -> schemas.ActionResult:
    batch = get_batch(db, batch_id)
    first = batch.session_by_number(1)
    if first is not None and first.session_date is not None:
        return schemas.ActionResult(success=True, message="Session 1 already started")

    for row in batch.learners:
        lifecycle.mark_session_started(db, row.training_request, actor_user_id=actor_user_id)
    db.flush()
    return schemas.ActionResult(success=True)


def update_attendance(
    db: Session,
    batch_id: str,
    payload: schemas.AttendanceUpdate,
    *,
    actor_user_id: Optional[str] = None,
) -> Tuple[models.TrainingBatch, models.TrainingBatchSession]:
    batch = get_batch(db, batch_id)
    session = attendance.get_session(batch, payload.session_id)
    for entry in payload.attendance:
        attendance.set_attendance(
            db,
            batch,
            entry.learner_id,
            session,
            entry.attended,
            actor_user_id=actor_user_id,
        )
    return batch, session


def update_homework(
    db: Session, batch_id: str, payload: schemas.HomeworkUpdate
) -> Tuple[models.TrainingBatch, models.TrainingBatchSession]:
    batch = get_batch(db, batch_id)
    session = attendance.get_session(batch, payload.session_id)
    for entry in payload.homework:
        attendance.set_homework(
            db,
            batch,
            entry.learner_id,
            session,
            completed=entry.completed,
            homework_url=entry.homework_url,
        )
    return batch, session


# ---------------------------------------------------------------------------
# READS
# ---------------------------------------------------------------------------


def batch_detail(db: Session, batch_id: str) -> schemas.TrainingBatchDetail:
    batch = get_batch(db, batch_id)
    detail = schemas.TrainingBatchDetail.model_validate(batch)
    detail.attendance = [
        schemas.AttendanceRead.model_validate(row)
        for row in db.query(models.TrainingBatchAttendanceSession)
        .filter(models.TrainingBatchAttendanceSession.training_batch_id == batch.id)
        .all()
    ]
    detail.homework = [
        schemas.HomeworkRead.model_validate(row)
        for row in db.query(models.TrainingBatchHomeworkSession)
        .filter(models.TrainingBatchHomeworkSession.training_batch_id == batch.id)
        .all()
    ]
    return detail


def available_learners(
    db: Session,
    *,
    competency_level_id: Optional[str],
    batch_id: Optional[str] = None,
) -> List[dict]:
    """
    Learners who could be placed in a batch of `competency_level_id`.

    With `batch_id`, that batch's current roster is included too so an edit
    form can show enrolled and candidate learners together.
    """
    if not competency_level_id:
        raise ValidationError("competencyLevelId is required")

    requests = (
        db.query(models.TrainingRequest)
        .filter(
            models.TrainingRequest.competency_level_id == competency_level_id,
            models.TrainingRequest.status.in_(BATCH_ENTRY_STATUSES),
            models.TrainingRequest.training_batch_id.is_(None),
        )
        .all()
    )
    if batch_id:
        batch = get_batch(db, batch_id)
        requests.extend(row.training_request for row in batch.learners)

    learners = [
        {
            "id": req.learner.id,
            "name": req.learner.name,
            "email": req.learner.email,
            "training_request_id": req.id,
        }
        for req in requests
    ]
    return sorted(learners, key=lambda item: (item["name"] or "").lower())


def highest_batch_number(db: Session, competency_level_id: Optional[str]) -> int:
    """Highest N among batch names shaped like 'Batch N' for the level, or 0."""
    if not competency_level_id:
        raise ValidationError("competencyLevelId is required")
    names = (
        db.query(models.TrainingBatch.batch_name)
        .filter(models.TrainingBatch.competency_level_id == competency_level_id)
        .all()
    )
    numbers = []
    for (name,) in names:
        match = _BATCH_NAME_RE.match((name or "").strip())
        if match:
            numbers.append(int(match.group(1)))
    return max(numbers, default=0)


def list_batches(
    db: Session,
    *,
    competency: Optional[str] = None,
    level: Optional[str] = None,
    competency_level_id: Optional[str] = None,
    batch_name: Optional[str] = None,
    trainer: Optional[str] = None,
    training_request_id: Optional[str] = None,
    available_for_training_request_id: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[models.TrainingBatch], int, int, int]:
    """Returns (items, total, page, page_size)."""
    if training_request_id:
        request = db.get(models.TrainingRequest, training_request_id)
        if request is None or request.training_batch_id is None:
            return [], 0, 1, 0
        return [request.training_batch], 1, 1, 1

    if available_for_training_request_id:
        request = db.get(models.TrainingRequest, available_for_training_request_id)
        if request is None:
            raise NotFoundError("Training request not found")
        items = (
            db.query(models.TrainingBatch)
            .filter(
                models.TrainingBatch.competency_level_id == request.competency_level_id,
                models.TrainingBatch.spot_left > 0,
            )
            .order_by(models.TrainingBatch.created_at.desc())
            .all()
        )
        if request.training_batch_id and all(b.id != request.training_batch_id for b in items):
            items.insert(0, request.training_batch)
        return items, len(items), 1, len(items)

    Level = competency_models.CompetencyLevel
    Competency = competency_models.Competency
    Trainer = account_models.User

    q = (
        db.query(models.TrainingBatch)
        .outerjoin(Level, models.TrainingBatch.competency_level_id == Level.id)
        .outerjoin(Competency, Level.competency_id == Competency.id)
        .outerjoin(Trainer, models.TrainingBatch.trainer_user_id == Trainer.id)
    )
    if competency_level_id:
        q = q.filter(models.TrainingBatch.competency_level_id == competency_level_id)
    if competency:
        q = q.filter(Competency.name.ilike(f"%{competency}%"))
    if level:
        q = q.filter(Level.name == level)
    if batch_name:
        q = q.filter(models.TrainingBatch.batch_name.ilike(f"%{batch_name}%"))
    if trainer:
        q = q.filter(Trainer.name.ilike(f"%{trainer}%"))

    page, page_size, offset = normalize_pagination(page, page_size)
    total = q.count()
    items = (
        q.order_by(models.TrainingBatch.created_at.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return items, total, page, page_size
