"""
VPA and VSR workflows.

Each update appends one log row. Approving a VPA opens (or reopens) the
VSR for the same training request; failing a VSR sends the VPA back for
resubmission.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ...errors import NotFoundError, ValidationError
from ...statuses import TrainingRequestStatus, VPAStatus, VSRStatus
from ...utils.identifiers import next_sequence_id
from ...utils.pagination import normalize_pagination
from ..accounts import models as account_models
from ..accounts import services as account_services
from ..competencies.services import clean_plain_text, clean_rich_text
from ..training import request_services
from . import models, schemas

logger = logging.getLogger(__name__)


def _plain(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return clean_plain_text(value) or None


# ---------------------------------------------------------------------------
# VPA
# ---------------------------------------------------------------------------


def get_vpa(db: Session, vpa_pk: str) -> models.ValidationProjectApproval:
    vpa = db.get(models.ValidationProjectApproval, vpa_pk)
    if vpa is None:
        raise NotFoundError("Validation project approval not found")
    return vpa


def _append_vpa_log(
    db: Session, vpa: models.ValidationProjectApproval, updated_by: Optional[str]
) -> models.ValidationProjectApprovalLog:
    row = models.ValidationProjectApprovalLog(
        vpa_id=vpa.vpa_id,
        status=vpa.status,
        project_details_text=_plain(vpa.project_details),
        rejection_reason=vpa.rejection_reason,
        updated_by=updated_by,
    )
    db.add(row)
    return row


def create_vpa(
    db: Session,
    payload: schemas.VPACreate,
    *,
    actor: account_models.User,
) -> models.ValidationProjectApproval:
    request = request_services.get_request(db, payload.training_request_id)
    if request.learner_user_id != actor.id:
        account_services.ensure_permission(db, actor.id, "validation_project_approval", "add")
    if request.status != TrainingRequestStatus.SESSIONS_COMPLETED:
        raise ValidationError("A validation project can only be submitted once sessions are completed")

    existing = (
        db.query(models.ValidationProjectApproval.id)
        .filter(models.ValidationProjectApproval.tr_id == request.tr_id)
        .first()
    )
    if existing:
        raise ValidationError("A validation project approval already exists for this training request")

    today = date.today()
    vpa = models.ValidationProjectApproval(
        vpa_id=next_sequence_id(db, "vpa"),
        tr_id=request.tr_id,
        requested_date=today,
        learner_user_id=request.learner_user_id,
        competency_level_id=request.competency_level_id,
        project_details=clean_rich_text(payload.project_details),
        status=VPAStatus.PENDING,
        response_due=today + timedelta(days=1),
    )
    db.add(vpa)
    db.flush()
    _append_vpa_log(db, vpa, actor.id)
    db.flush()
    return vpa


def list_vpas(
    db: Session,
    *,
    status: Optional[int] = None,
    learner_user_id: Optional[str] = None,
    competency_level_id: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[models.ValidationProjectApproval], int, int, int]:
    q = db.query(models.ValidationProjectApproval)
    if status is not None:
        q = q.filter(models.ValidationProjectApproval.status == status)
    if learner_user_id:
        q = q.filter(models.ValidationProjectApproval.learner_user_id == learner_user_id)
    if competency_level_id:
        q = q.filter(models.ValidationProjectApproval.competency_level_id == competency_level_id)

    page, page_size, offset = normalize_pagination(page, page_size)
    total = q.count()
    items = (
        q.order_by(models.ValidationProjectApproval.created_at.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return items, total, page, page_size


def _open_vsr_for(
    db: Session, vpa: models.ValidationProjectApproval, actor_user_id: str
) -> models.ValidationScheduleRequest:
    today = date.today()
    vsr = (
        db.query(models.ValidationScheduleRequest)
        .filter(models.ValidationScheduleRequest.tr_id == vpa.tr_id)
        .first()
    )
    if vsr is None:
        vsr = models.ValidationScheduleRequest(
            vsr_id=next_sequence_id(db, "vsr"),
            tr_id=vpa.tr_id,
            learner_user_id=vpa.learner_user_id,
            competency_level_id=vpa.competency_level_id,
        )
        db.add(vsr)
        logger.info("Opened VSR", extra={"vsr_id": vsr.vsr_id, "tr_id": vpa.tr_id})
    vsr.status = VSRStatus.PENDING_VALIDATION
    vsr.requested_date = today
    vsr.response_due = today + timedelta(days=1)
    vsr.description = vpa.project_details
    db.flush()
    _append_vsr_log(db, vsr, actor_user_id)
    return vsr


def update_vpa(
    db: Session,
    vpa_pk: str,
    payload: schemas.VPAUpdate,
    *,
    actor_user_id: str,
) -> models.ValidationProjectApproval:
    vpa = get_vpa(db, vpa_pk)
    provided = payload.model_fields_set
    previous_status = vpa.status

    if payload.status is not None:
        vpa.status = payload.status
    if "project_details" in provided:
        vpa.project_details = clean_rich_text(payload.project_details)
    if "rejection_reason" in provided:
        vpa.rejection_reason = _plain(payload.rejection_reason)
    if "response_due" in provided:
        vpa.response_due = payload.response_due
    if "response_date" in provided:
        vpa.response_date = payload.response_date
    if not vpa.assigned_to:
        vpa.assigned_to = actor_user_id

    _append_vpa_log(db, vpa, actor_user_id)

    if (
        vpa.status == VPAStatus.APPROVED
        and previous_status != VPAStatus.APPROVED
        and vpa.tr_id
    ):
        _open_vsr_for(db, vpa, actor_user_id)

    db.flush()
    return vpa


def vpa_logs(db: Session, vpa_pk: str) -> List[models.ValidationProjectApprovalLog]:
    vpa = get_vpa(db, vpa_pk)
    return (
        db.query(models.ValidationProjectApprovalLog)
        .filter(models.ValidationProjectApprovalLog.vpa_id == vpa.vpa_id)
        .order_by(models.ValidationProjectApprovalLog.created_at.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# VSR
# ---------------------------------------------------------------------------


def get_vsr(db: Session, vsr_pk: str) -> models.ValidationScheduleRequest:
    vsr = db.get(models.ValidationScheduleRequest, vsr_pk)
    if vsr is None:
        raise NotFoundError("Validation schedule request not found")
    return vsr


def _append_vsr_log(
    db: Session, vsr: models.ValidationScheduleRequest, updated_by: Optional[str]
) -> models.ValidationScheduleRequestLog:
    row = models.ValidationScheduleRequestLog(
        vsr_id=vsr.vsr_id,
        status=vsr.status,
        updated_by=updated_by,
    )
    db.add(row)
    return row


def list_vsrs(
    db: Session,
    *,
    status: Optional[int] = None,
    learner_user_id: Optional[str] = None,
    competency_level_id: Optional[str] = None,
    tr_id: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[models.ValidationScheduleRequest], int, int, int]:
    q = db.query(models.ValidationScheduleRequest)
    if status is not None:
        q = q.filter(models.ValidationScheduleRequest.status == status)
    if learner_user_id:
        q = q.filter(models.ValidationScheduleRequest.learner_user_id == learner_user_id)
    if competency_level_id:
        q = q.filter(models.ValidationScheduleRequest.competency_level_id == competency_level_id)
    if tr_id:
        q = q.filter(models.ValidationScheduleRequest.tr_id == tr_id)

    page, page_size, offset = normalize_pagination(page, page_size)
    total = q.count()
    items = (
        q.order_by(models.ValidationScheduleRequest.created_at.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return items, total, page, page_size


_VSR_FIELDS = (
    "description",
    "scheduled_date",
    "response_due",
    "response_date",
    "definite_answer",
    "no_follow_up_date",
    "follow_up_date",
)


def update_vsr(
    db: Session,
    vsr_pk: str,
    payload: schemas.VSRUpdate,
    *,
    actor_user_id: str,
) -> models.ValidationScheduleRequest:
    vsr = get_vsr(db, vsr_pk)
    provided = payload.model_fields_set
    previous_status = vsr.status

    for field in ("validator_ops", "validator_trainer", "assigned_to"):
        user_id = getattr(payload, field)
        if field in provided and user_id:
            account_services.get_user(db, user_id)

    if payload.status is not None:
        vsr.status = payload.status
    for field in _VSR_FIELDS:
        if field in provided:
            setattr(vsr, field, getattr(payload, field))
    if "validator_ops" in provided:
        vsr.validator_ops = payload.validator_ops or None
    if "validator_trainer" in provided:
        vsr.validator_trainer = payload.validator_trainer or None
    vsr.assigned_to = vsr.assigned_to or payload.assigned_to or actor_user_id

    _append_vsr_log(db, vsr, actor_user_id)

    if vsr.status == VSRStatus.FAIL and previous_status != VSRStatus.FAIL and vsr.tr_id:
        vpa = (
            db.query(models.ValidationProjectApproval)
            .filter(models.ValidationProjectApproval.tr_id == vsr.tr_id)
            .first()
        )
        if vpa is not None:
            vpa.status = VPAStatus.RESUBMIT
            _append_vpa_log(db, vpa, actor_user_id)

    db.flush()
    return vsr


def delete_vsr(db: Session, vsr_pk: str) -> dict:
    """Delete the VSR; its log rows stay as the audit trail."""
    vsr = get_vsr(db, vsr_pk)
    summary = {"id": vsr.id, "vsr_id": vsr.vsr_id, "tr_id": vsr.tr_id}
    db.delete(vsr)
    db.flush()
    return summary


def vsr_logs(db: Session, vsr_pk: str) -> List[models.ValidationScheduleRequestLog]:
    vsr = get_vsr(db, vsr_pk)
    return (
        db.query(models.ValidationScheduleRequestLog)
        .filter(models.ValidationScheduleRequestLog.vsr_id == vsr.vsr_id)
        .order_by(models.ValidationScheduleRequestLog.created_at.asc())
        .all()
    )
