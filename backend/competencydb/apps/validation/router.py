from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...database import get_db, transaction
from ...security import get_current_active_user, require_permission
from ...statuses import VPA_LABELS, VSR_LABELS, status_options
from ..accounts.models import User
from ..audit import services as audit_services
from ..training.schemas import StatusOption
from . import schemas, services

VPA_MODULE = "validation_project_approval"
VSR_MODULE = "validation_schedule_request"

vpa_router = APIRouter(prefix="/validation-project-approvals", tags=["validation-project-approvals"])
vsr_router = APIRouter(prefix="/validation-schedule-requests", tags=["validation-schedule-requests"])


# ---------------------------------------------------------------------------
# VPA
# ---------------------------------------------------------------------------


@vpa_router.get("/statuses", response_model=List[StatusOption])
def list_vpa_statuses(
    current_user: User = Depends(get_current_active_user),
):
    return status_options(VPA_LABELS)


@vpa_router.get("", response_model=schemas.VPAPage)
def list_vpas(
    status_filter: Optional[int] = Query(None, alias="status"),
    learner_user_id: Optional[str] = Query(None, alias="learnerUserId"),
    competency_level_id: Optional[str] = Query(None, alias="competencyLevelId"),
    page: int = 1,
    page_size: int = Query(50, alias="pageSize"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VPA_MODULE, "list")),
):
    items, total, page, page_size = services.list_vpas(
        db,
        status=status_filter,
        learner_user_id=learner_user_id,
        competency_level_id=competency_level_id,
        page=page,
        page_size=page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@vpa_router.post("", response_model=schemas.VPARead, status_code=status.HTTP_201_CREATED)
def create_vpa(
    payload: schemas.VPACreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    with transaction(db):
        vpa = services.create_vpa(db, payload, actor=current_user)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=VPA_MODULE,
        action="add",
        data={"createdId": vpa.id, "vpaId": vpa.vpa_id, "trId": vpa.tr_id},
    )
    return vpa


@vpa_router.get("/{vpa_pk}", response_model=schemas.VPARead)
def get_vpa(
    vpa_pk: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VPA_MODULE, "list")),
):
    return services.get_vpa(db, vpa_pk)


@vpa_router.patch("/{vpa_pk}", response_model=schemas.VPARead)
def update_vpa(
    vpa_pk: str,
    payload: schemas.VPAUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VPA_MODULE, "edit")),
):
    with transaction(db):
        vpa = services.update_vpa(db, vpa_pk, payload, actor_user_id=current_user.id)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=VPA_MODULE,
        action="edit",
        data={"updatedId": vpa.id, "vpaId": vpa.vpa_id, "status": vpa.status},
    )
    return vpa


@vpa_router.get("/{vpa_pk}/logs", response_model=List[schemas.VPALogRead])
def list_vpa_logs(
    vpa_pk: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VPA_MODULE, "list")),
):
    return services.vpa_logs(db, vpa_pk)


# ---------------------------------------------------------------------------
# VSR
# ---------------------------------------------------------------------------


@vsr_router.get("/statuses", response_model=List[StatusOption])
def list_vsr_statuses(
    current_user: User = Depends(get_current_active_user),
):
    return status_options(VSR_LABELS)


@vsr_router.get("", response_model=schemas.VSRPage)
def list_vsrs(
    status_filter: Optional[int] = Query(None, alias="status"),
    learner_user_id: Optional[str] = Query(None, alias="learnerUserId"),
    competency_level_id: Optional[str] = Query(None, alias="competencyLevelId"),
    tr_id: Optional[str] = Query(None, alias="trId"),
    page: int = 1,
    page_size: int = Query(50, alias="pageSize"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VSR_MODULE, "list")),
):
    items, total, page, page_size = services.list_vsrs(
        db,
        status=status_filter,
        learner_user_id=learner_user_id,
        competency_level_id=competency_level_id,
        tr_id=tr_id,
        page=page,
        page_size=page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@vsr_router.get("/{vsr_pk}", response_model=schemas.VSRRead)
def get_vsr(
    vsr_pk: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VSR_MODULE, "list")),
):
    return services.get_vsr(db, vsr_pk)


@vsr_router.patch("/{vsr_pk}", response_model=schemas.VSRRead)
def update_vsr(
    vsr_pk: str,
    payload: schemas.VSRUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VSR_MODULE, "edit")),
):
    with transaction(db):
        vsr = services.update_vsr(db, vsr_pk, payload, actor_user_id=current_user.id)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=VSR_MODULE,
        action="edit",
        data={"updatedId": vsr.id, "vsrId": vsr.vsr_id, "status": vsr.status},
    )
    return vsr


@vsr_router.delete("/{vsr_pk}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vsr(
    vsr_pk: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VSR_MODULE, "delete")),
):
    with transaction(db):
        summary = services.delete_vsr(db, vsr_pk)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=VSR_MODULE,
        action="delete",
        data={"deletedId": summary["id"], "vsrId": summary["vsr_id"], "trId": summary["tr_id"]},
    )


@vsr_router.get("/{vsr_pk}/logs", response_model=List[schemas.VSRLogRead])
def list_vsr_logs(
    vsr_pk: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(VSR_MODULE, "list")),
):
    return services.vsr_logs(db, vsr_pk)
