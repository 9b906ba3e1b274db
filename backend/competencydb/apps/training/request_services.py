from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ...errors import NotFoundError, ValidationError
from ...statuses import TrainingRequestStatus as TR
from ...utils.identifiers import next_sequence_id
from ...utils.pagination import normalize_pagination
from ..accounts import models as account_models
from ..accounts import services as account_services
from ..competencies import services as competency_services
from . import lifecycle, models, schemas

DUPLICATE_REQUEST = "You already have a training request for this competency level"

# Plain administrative fields; status is handled separately.
_ADMIN_FIELDS = (
    "drop_off_reason",
    "is_blocked",
    "blocked_reason",
    "expected_unblocked_date",
    "notes",
    "assigned_to",
    "response_due",
    "response_date",
    "definite_answer",
    "no_follow_up_date",
    "follow_up_date",
)


def get_request(db: Session, request_id: str) -> models.TrainingRequest:
    request = db.get(models.TrainingRequest, request_id)
    if request is None:
        raise NotFoundError("Training request not found")
    return request


def create_request(
    db: Session,
    payload: schemas.TrainingRequestCreate,
    *,
    actor: account_models.User,
) -> models.TrainingRequest:
    learner_id = payload.learner_user_id or actor.id
    if learner_id != actor.id:
        account_services.ensure_permission(db, actor.id, "training_request", "add")
        account_services.get_user(db, learner_id)

    competency_services.get_level(db, payload.competency_level_id)

    duplicate = (
        db.query(models.TrainingRequest.id)
        .filter(
            models.TrainingRequest.learner_user_id == learner_id,
            models.TrainingRequest.competency_level_id == payload.competency_level_id,
        )
        .first()
    )
    if duplicate:
        raise ValidationError(DUPLICATE_REQUEST)

    today = date.today()
    request = models.TrainingRequest(
        tr_id=next_sequence_id(db, "tr"),
        requested_date=today,
        learner_user_id=learner_id,
        competency_level_id=payload.competency_level_id,
        status=TR.NOT_STARTED,
        response_due=today + timedelta(days=1),
        is_blocked=False,
    )
    db.add(request)
    db.flush()
    return request


def list_requests(
    db: Session,
    *,
    status: Optional[int] = None,
    competency_level_id: Optional[str] = None,
    learner_user_id: Optional[str] = None,
    tr_id: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[models.TrainingRequest], int, int, int]:
    q = db.query(models.TrainingRequest)
    if status is not None:
        q = q.filter(models.TrainingRequest.status == status)
    if competency_level_id:
        q = q.filter(models.TrainingRequest.competency_level_id == competency_level_id)
    if learner_user_id:
        q = q.filter(models.TrainingRequest.learner_user_id == learner_user_id)
    if tr_id:
        q = q.filter(models.TrainingRequest.tr_id.ilike(f"%{tr_id.strip()}%"))

    page, page_size, offset = normalize_pagination(page, page_size)
    total = q.count()
    items = (
        q.order_by(models.TrainingRequest.requested_date.desc(), models.TrainingRequest.tr_id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return items, total, page, page_size


def update_request(
    db: Session,
    request_id: str,
    payload: schemas.TrainingRequestUpdate,
    *,
    actor_user_id: Optional[str] = None,
) -> models.TrainingRequest:
    """
    Administrative edit. A status change must be a registered manual
    transition; batch membership states are only reachable through the
    batch and attendance actions.
    """
    request = get_request(db, request_id)
    provided = payload.model_fields_set

    if "assigned_to" in provided and payload.assigned_to:
        account_services.get_user(db, payload.assigned_to)

    if payload.status is not None and (
        payload.status != request.status or request.status == TR.ON_HOLD
    ):
        lifecycle.set_status_manually(
            db,
            request,
            payload.status,
            actor_user_id=actor_user_id,
            on_hold_by=payload.on_hold_by if "on_hold_by" in provided else request.on_hold_by,
            on_hold_reason=(
                payload.on_hold_reason if "on_hold_reason" in provided else request.on_hold_reason
            ),
        )

    for field in _ADMIN_FIELDS:
        if field in provided:
            value = getattr(payload, field)
            if field == "is_blocked":
                value = bool(value)
            setattr(request, field, value)

    db.flush()
    return request
