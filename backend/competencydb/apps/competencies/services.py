from __future__ import annotations

import re
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from ...errors import NotFoundError, ValidationError
from ..accounts import models as account_models
from . import models, schemas

_TAG_RE = re.compile(r"<[^>]*>")
_EMPTY_MARKUP = {"", "<p></p>", "<p><br></p>", "<p><br/></p>", "<br>", "<br/>", "<br />"}


def clean_rich_text(value: Optional[str]) -> Optional[str]:
    """Collapse editor placeholders (e.g. '<p><br></p>') to None."""
    if value is None:
        return None
    trimmed = value.strip()
    if trimmed in _EMPTY_MARKUP:
        return None
    return trimmed


def clean_plain_text(value: str) -> str:
    stripped = _TAG_RE.sub("", value or "")
    for entity, char in (("&nbsp;", " "), ("&lt;", "<"), ("&gt;", ">"), ("&quot;", '"'), ("&#39;", "'"), ("&amp;", "&")):
        stripped = stripped.replace(entity, char)
    return stripped.strip()


def list_competencies(db: Session, *, include_deleted: bool = False) -> List[models.Competency]:
    q = db.query(models.Competency).options(
        selectinload(models.Competency.levels),
        selectinload(models.Competency.trainers),
    )
    if not include_deleted:
        q = q.filter(models.Competency.is_deleted.is_(False))
    return q.order_by(models.Competency.name.asc()).all()


def get_competency(db: Session, competency_id: str) -> models.Competency:
    competency = db.get(models.Competency, competency_id)
    if competency is None or competency.is_deleted:
        raise NotFoundError("Competency not found")
    return competency


def get_level(db: Session, level_id: str) -> models.CompetencyLevel:
    level = db.get(models.CompetencyLevel, level_id)
    if level is None or level.is_deleted:
        raise NotFoundError("Competency level not found")
    return level


def _apply_fields(competency: models.Competency, payload: schemas.CompetencyWrite) -> None:
    name = clean_plain_text(payload.name)
    if not name:
        raise ValidationError("Competency name is required")
    competency.name = name
    competency.description = clean_rich_text(payload.description)
    competency.status = int(payload.status)
    competency.relevant_links = clean_rich_text(payload.relevant_links)


def _sync_levels(competency: models.Competency, payload: schemas.CompetencyWrite) -> None:
    # Levels are updated in place: requests and batches hold references to them.
    existing = {level.name: level for level in competency.levels}
    wanted = set()
    for item in payload.levels:
        name = item.name.value
        wanted.add(name)
        level = existing.get(name)
        if level is None:
            level = models.CompetencyLevel(name=name)
            competency.levels.append(level)
        level.training_plan_document = item.training_plan_document.strip()
        level.team_knowledge = clean_rich_text(item.team_knowledge) or ""
        level.eligibility_criteria = clean_rich_text(item.eligibility_criteria) or ""
        level.verification = clean_rich_text(item.verification) or ""
        level.is_deleted = False

    for name, level in existing.items():
        if name not in wanted:
            level.is_deleted = True


def _sync_trainers(db: Session, competency: models.Competency, trainer_ids: List[str]) -> None:
    unique_ids = list(dict.fromkeys(trainer_ids))
    found = (
        db.query(account_models.User.id)
        .filter(account_models.User.id.in_(unique_ids))
        .all()
    )
    if len(found) != len(unique_ids):
        raise ValidationError("One or more trainers do not exist")
    existing = {link.trainer_user_id: link for link in competency.trainers}
    competency.trainers = [
        existing.get(trainer_id) or models.CompetencyTrainer(trainer_user_id=trainer_id)
        for trainer_id in unique_ids
    ]


def _sync_requirements(db: Session, competency: models.Competency, level_ids: List[str]) -> None:
    unique_ids = list(dict.fromkeys(level_ids))
    for level_id in unique_ids:
        get_level(db, level_id)
    existing = {req.required_competency_level_id: req for req in competency.requirements}
    competency.requirements = [
        existing.get(level_id) or models.CompetencyRequirement(required_competency_level_id=level_id)
        for level_id in unique_ids
    ]


def create_competency(db: Session, payload: schemas.CompetencyWrite) -> models.Competency:
    competency = models.Competency()
    _apply_fields(competency, payload)
    _sync_levels(competency, payload)
    _sync_trainers(db, competency, payload.trainer_ids)
    _sync_requirements(db, competency, payload.requirement_level_ids)
    db.add(competency)
    db.flush()
    return competency


def update_competency(db: Session, competency_id: str, payload: schemas.CompetencyWrite) -> models.Competency:
    competency = get_competency(db, competency_id)
    _apply_fields(competency, payload)
    _sync_levels(competency, payload)
    _sync_trainers(db, competency, payload.trainer_ids)
    db.flush()
    _sync_requirements(db, competency, payload.requirement_level_ids)
    db.flush()
    return competency


def delete_competency(db: Session, competency_id: str) -> models.Competency:
    """Soft delete: the competency and its levels are hidden, not removed."""
    competency = get_competency(db, competency_id)
    competency.is_deleted = True
    for level in competency.levels:
        level.is_deleted = True
    db.flush()
    return competency
