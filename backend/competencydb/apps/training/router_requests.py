from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...database import get_db, transaction
from ...security import get_current_active_user, require_permission
from ...statuses import TRAINING_REQUEST_LABELS, status_options
from ..accounts.models import User
from ..audit import services as audit_services
from . import request_services, schemas

router = APIRouter(prefix="/training-requests", tags=["training-requests"])

MODULE = "training_request"


@router.get("/statuses", response_model=List[schemas.StatusOption])
def list_statuses(
    current_user: User = Depends(get_current_active_user),
):
    return status_options(TRAINING_REQUEST_LABELS)


@router.get("", response_model=schemas.TrainingRequestPage)
def list_training_requests(
    status_filter: Optional[int] = Query(None, alias="status"),
    competency_level_id: Optional[str] = Query(None, alias="competencyLevelId"),
    learner_user_id: Optional[str] = Query(None, alias="learnerUserId"),
    tr_id: Optional[str] = Query(None, alias="trId"),
    page: int = 1,
    page_size: int = Query(50, alias="pageSize"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    items, total, page, page_size = request_services.list_requests(
        db,
        status=status_filter,
        competency_level_id=competency_level_id,
        learner_user_id=learner_user_id,
        tr_id=tr_id,
        page=page,
        page_size=page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("", response_model=schemas.TrainingRequestRead, status_code=status.HTTP_201_CREATED)
def create_training_request(
    payload: schemas.TrainingRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    with transaction(db):
        request = request_services.create_request(db, payload, actor=current_user)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="add",
        data={
            "createdId": request.id,
            "trId": request.tr_id,
            "learnerId": request.learner_user_id,
            "competencyLevelId": request.competency_level_id,
        },
    )
    return request


@router.get("/{request_id}", response_model=schemas.TrainingRequestRead)
def get_training_request(
    request_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    return request_services.get_request(db, request_id)


@router.patch("/{request_id}", response_model=schemas.TrainingRequestRead)
def update_training_request(
    request_id: str,
    payload: schemas.TrainingRequestUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        request = request_services.update_request(
            db, request_id, payload, actor_user_id=current_user.id
        )
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="edit",
        data={
            "updatedId": request.id,
            "trId": request.tr_id,
            "status": request.status,
            "changes": payload.model_dump(by_alias=True, exclude_unset=True),
        },
    )
    return request
