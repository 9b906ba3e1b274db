from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...database import get_db, transaction
from ...security import require_permission
from ..accounts.models import User
from ..audit import services as audit_services
from . import schemas, services

router = APIRouter(prefix="/training-batches", tags=["training-batches"])

MODULE = "training_batch"


def _log(db: Session, current_user: User, action: str, data: dict) -> None:
    audit_services.log_activity(db, user_id=current_user.id, module=MODULE, action=action, data=data)


# ---------------------------------------------------------------------------
# COLLECTION
# ---------------------------------------------------------------------------


@router.get("", response_model=schemas.TrainingBatchPage)
def list_training_batches(
    competency: Optional[str] = None,
    level: Optional[str] = None,
    competency_level_id: Optional[str] = Query(None, alias="competencyLevelId"),
    batch: Optional[str] = None,
    trainer: Optional[str] = None,
    training_request_id: Optional[str] = Query(None, alias="trainingRequestId"),
    available_for_training_request_id: Optional[str] = Query(
        None, alias="availableForTrainingRequestId"
    ),
    page: int = 1,
    page_size: int = Query(50, alias="pageSize"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    items, total, page, page_size = services.list_batches(
        db,
        competency=competency,
        level=level,
        competency_level_id=competency_level_id,
        batch_name=batch,
        trainer=trainer,
        training_request_id=training_request_id,
        available_for_training_request_id=available_for_training_request_id,
        page=page,
        page_size=page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("", response_model=schemas.TrainingBatchRead, status_code=status.HTTP_201_CREATED)
def create_training_batch(
    payload: schemas.TrainingBatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "add")),
):
    with transaction(db):
        batch = services.create_batch(db, payload, actor_user_id=current_user.id)
        learner_ids = [row.learner_user_id for row in batch.learners]
    _log(
        db,
        current_user,
        "add",
        {
            "createdId": batch.id,
            "batchName": batch.batch_name,
            "competencyLevelId": batch.competency_level_id,
            "capacity": batch.capacity,
            "learnerIds": learner_ids,
        },
    )
    return batch


@router.get("/available-learners", response_model=List[schemas.AvailableLearnerRead])
def list_available_learners(
    competency_level_id: Optional[str] = Query(None, alias="competencyLevelId"),
    batch_id: Optional[str] = Query(None, alias="batchId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    return services.available_learners(
        db, competency_level_id=competency_level_id, batch_id=batch_id
    )


@router.get("/count-by-competency-level", response_model=schemas.BatchNumberRead)
def count_by_competency_level(
    competency_level_id: Optional[str] = Query(None, alias="competencyLevelId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    return {"count": services.highest_batch_number(db, competency_level_id)}


# ---------------------------------------------------------------------------
# SINGLE BATCH
# ---------------------------------------------------------------------------


@router.get("/{batch_id}", response_model=schemas.TrainingBatchDetail)
def get_training_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    return services.batch_detail(db, batch_id)


@router.patch("/{batch_id}", response_model=schemas.TrainingBatchRead)
def update_training_batch(
    batch_id: str,
    payload: schemas.TrainingBatchUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        batch = services.update_batch(db, batch_id, payload, actor_user_id=current_user.id)
        learner_ids = [row.learner_user_id for row in batch.learners]
    _log(
        db,
        current_user,
        "edit",
        {
            "updatedId": batch.id,
            "batchName": batch.batch_name,
            "capacity": batch.capacity,
            "sessionCount": batch.session_count,
            "learnerIds": learner_ids,
        },
    )
    return batch


@router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_training_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "delete")),
):
    with transaction(db):
        summary = services.delete_batch(db, batch_id, actor_user_id=current_user.id)
    _log(
        db,
        current_user,
        "delete",
        {
            "deletedId": summary["id"],
            "batchName": summary["batch_name"],
            "learnerIds": summary["learner_ids"],
        },
    )


@router.get("/{batch_id}/learners", response_model=List[schemas.RosterEntryRead])
def list_batch_learners(
    batch_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    return services.list_roster(db, batch_id)


@router.post("/{batch_id}/learners/{learner_id}/drop-off", response_model=schemas.ActionResult)
def drop_off_learner(
    batch_id: str,
    learner_id: str,
    payload: schemas.DropOffPayload,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        batch, request = services.release_learner(
            db,
            batch_id,
            learner_id,
            trigger="drop_off",
            drop_off_reason=payload.drop_off_reason,
            actor_user_id=current_user.id,
        )
    _log(
        db,
        current_user,
        "edit",
        {
            "batchId": batch.id,
            "batchName": batch.batch_name,
            "action": "drop_off_learner",
            "learnerId": learner_id,
            "learnerName": request.learner.name if request.learner else None,
            "dropOffReason": request.drop_off_reason,
        },
    )
    return {"success": True}


@router.post("/{batch_id}/learners/{learner_id}/remove", response_model=schemas.ActionResult)
def remove_learner(
    batch_id: str,
    learner_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        batch, request = services.release_learner(
            db,
            batch_id,
            learner_id,
            trigger="remove",
            actor_user_id=current_user.id,
        )
    _log(
        db,
        current_user,
        "edit",
        {
            "batchId": batch.id,
            "batchName": batch.batch_name,
            "action": "remove_learner",
            "learnerId": learner_id,
            "learnerName": request.learner.name if request.learner else None,
        },
    )
    return {"success": True}


# ---------------------------------------------------------------------------
# SESSIONS
# ---------------------------------------------------------------------------


@router.patch("/{batch_id}/session-date", response_model=schemas.TrainingBatchSessionRead)
def update_session_date(
    batch_id: str,
    payload: schemas.SessionDateUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        session = services.set_session_date(db, batch_id, payload)
    _log(
        db,
        current_user,
        "edit",
        {
            "batchId": batch_id,
            "action": "update_session_date",
            "sessionNumber": payload.session_number,
            "sessionDate": payload.session_date,
        },
    )
    return session


@router.post("/{batch_id}/start-session-1", response_model=schemas.ActionResult)
def start_session_1(
    batch_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        result = services.start_session_1(db, batch_id, actor_user_id=current_user.id)
    return result


@router.patch("/{batch_id}/attendance", response_model=schemas.ActionResult)
def update_attendance(
    batch_id: str,
    payload: schemas.AttendanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        batch, session = services.update_attendance(
            db, batch_id, payload, actor_user_id=current_user.id
        )
        batch_name = batch.batch_name
        session_number = session.session_number
    _log(
        db,
        current_user,
        "edit",
        {
            "batchId": batch_id,
            "batchName": batch_name,
            "action": "update_attendance",
            "sessionId": payload.session_id,
            "sessionNumber": session_number,
            "attendanceCount": len(payload.attendance),
            "attendance": [entry.model_dump(by_alias=True) for entry in payload.attendance],
        },
    )
    return {"success": True}


@router.patch("/{batch_id}/homework", response_model=schemas.ActionResult)
def update_homework(
    batch_id: str,
    payload: schemas.HomeworkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        batch, session = services.update_homework(db, batch_id, payload)
        batch_name = batch.batch_name
        session_number = session.session_number
    _log(
        db,
        current_user,
        "edit",
        {
            "batchId": batch_id,
            "batchName": batch_name,
            "action": "update_homework",
            "sessionId": payload.session_id,
            "sessionNumber": session_number,
            "homeworkCount": len(payload.homework),
        },
    )
    return {"success": True}
