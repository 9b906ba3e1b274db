from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...database import get_db, transaction
from ...security import require_permission
from ..accounts.models import User
from ..audit import services as audit_services
from . import schemas, services

router = APIRouter(prefix="/competencies", tags=["competencies"])

MODULE = "competencies"


@router.get("", response_model=List[schemas.CompetencyRead])
def list_competencies(
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    return services.list_competencies(db, include_deleted=include_deleted)


@router.get("/{competency_id}", response_model=schemas.CompetencyRead)
def get_competency(
    competency_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "list")),
):
    return services.get_competency(db, competency_id)


@router.post("", response_model=schemas.CompetencyRead, status_code=status.HTTP_201_CREATED)
def create_competency(
    payload: schemas.CompetencyWrite,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "add")),
):
    with transaction(db):
        competency = services.create_competency(db, payload)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="add",
        data={"createdId": competency.id, "name": competency.name, "status": competency.status},
    )
    return competency


@router.put("/{competency_id}", response_model=schemas.CompetencyRead)
def update_competency(
    competency_id: str,
    payload: schemas.CompetencyWrite,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        competency = services.update_competency(db, competency_id, payload)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="edit",
        data={"updatedId": competency.id, "name": competency.name, "status": competency.status},
    )
    return competency


@router.delete("/{competency_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_competency(
    competency_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MODULE, "delete")),
):
    with transaction(db):
        competency = services.delete_competency(db, competency_id)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="delete",
        data={"deletedId": competency.id, "name": competency.name},
    )
