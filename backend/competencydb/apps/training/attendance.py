"""
Attendance gate and homework records for batch sessions.

A learner's attended sessions always form a prefix 1..k of the batch's
sessions: marking session N requires every earlier session to be attended,
and un-marking session N also un-marks every later session.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import NotFoundError, SequenceViolation
from . import lifecycle, models

logger = logging.getLogger(__name__)


def get_session(batch: models.TrainingBatch, session_id: str) -> models.TrainingBatchSession:
    for session in batch.sessions:
        if session.id == session_id:
            return session
    raise NotFoundError("Session not found")


def get_roster_row(db: Session, batch_id: str, learner_user_id: str) -> models.TrainingBatchLearner:
    row = db.get(models.TrainingBatchLearner, (batch_id, learner_user_id))
    if not row:
        raise NotFoundError("Learner not found in batch")
    return row


def _attendance_row(
    db: Session, batch_id: str, learner_user_id: str, session_id: str
) -> Optional[models.TrainingBatchAttendanceSession]:
    return db.get(models.TrainingBatchAttendanceSession, (batch_id, learner_user_id, session_id))


def check_sequence(
    db: Session,
    batch: models.TrainingBatch,
    learner_user_id: str,
    session_number: int,
) -> None:
    """Raise `SequenceViolation` naming the first earlier session not attended."""
    for number in range(1, session_number):
        prior = batch.session_by_number(number)
        row = _attendance_row(db, batch.id, learner_user_id, prior.id) if prior else None
        if row is None or not row.attended:
            logger.info(
                "Attendance gate rejected",
                extra={
                    "batch_id": batch.id,
                    "learner_user_id": learner_user_id,
                    "session_number": session_number,
                    "required_session_number": number,
                },
            )
            raise SequenceViolation(session_number=session_number, required_session_number=number)


def set_attendance(
    db: Session,
    batch: models.TrainingBatch,
    learner_user_id: str,
    session: models.TrainingBatchSession,
    attended: bool,
    *,
    actor_user_id: Optional[str] = None,
) -> models.TrainingBatchAttendanceSession:
    roster_row = get_roster_row(db, batch.id, learner_user_id)
    request = roster_row.training_request

    if attended:
        check_sequence(db, batch, learner_user_id, session.session_number)

    row = _attendance_row(db, batch.id, learner_user_id, session.id)
    if row is None:
        row = models.TrainingBatchAttendanceSession(
            training_batch_id=batch.id,
            learner_user_id=learner_user_id,
        )
        session.attendance.append(row)
    row.attended = bool(attended)

    if attended:
        if session.session_number == 1:
            lifecycle.mark_session_started(db, request, actor_user_id=actor_user_id)
        if session.session_number == batch.session_count:
            lifecycle.mark_sessions_completed(db, request, actor_user_id=actor_user_id)
    else:
        for later in batch.sessions:
            if later.session_number <= session.session_number:
                continue
            later_row = _attendance_row(db, batch.id, learner_user_id, later.id)
            if later_row is not None and later_row.attended:
                later_row.attended = False
        lifecycle.revoke_sessions_completed(db, request, actor_user_id=actor_user_id)

    db.flush()
    return row


def set_homework(
    db: Session,
    batch: models.TrainingBatch,
    learner_user_id: str,
    session: models.TrainingBatchSession,
    *,
    completed: bool = False,
    homework_url: Optional[str] = None,
) -> models.TrainingBatchHomeworkSession:
    get_roster_row(db, batch.id, learner_user_id)

    row = db.get(models.TrainingBatchHomeworkSession, (batch.id, learner_user_id, session.id))
    if row is None:
        row = models.TrainingBatchHomeworkSession(
            training_batch_id=batch.id,
            learner_user_id=learner_user_id,
        )
        session.homework.append(row)
    row.completed = bool(completed)
    row.homework_url = (homework_url or "").strip() or None
    db.flush()
    return row
