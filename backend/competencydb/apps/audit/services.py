from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

ACTIVITY_ACTIONS = frozenset({"add", "edit", "delete"})


def log_activity(
    db: Session,
    *,
    user_id: Optional[str],
    module: str,
    action: str,
    data: Optional[Any] = None,
) -> Optional[models.ActivityLog]:
    """
    Best-effort activity logger.

    Call after the primary change has been committed. The entry is committed
    on its own; any failure is rolled back and logged as a warning so that
    audit logging never blocks or undoes the operation it describes.
    """
    try:
        if not user_id:
            raise ValueError("activity log entries need an acting user")
        if action not in ACTIVITY_ACTIONS:
            raise ValueError(f"unsupported activity action {action!r}")

        entry = models.ActivityLog(
            user_id=user_id,
            module=getattr(module, "value", module),
            action=action,
            data=jsonable_encoder(data) if data is not None else None,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception:
        db.rollback()
        logger.warning(
            "Failed to log activity",
            exc_info=True,
            extra={"user_id": user_id, "activity_module": getattr(module, "value", module), "action": action},
        )
        return None


def list_activity(
    db: Session,
    *,
    user_id: Optional[str] = None,
    module: Optional[str] = None,
    action: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    offset: int = 0,
    limit: int = 20,
) -> Tuple[List[models.ActivityLog], int]:
    q = db.query(models.ActivityLog)
    if user_id:
        q = q.filter(models.ActivityLog.user_id == user_id)
    if module:
        q = q.filter(models.ActivityLog.module == module)
    if action:
        q = q.filter(models.ActivityLog.action == action)
    if start:
        q = q.filter(models.ActivityLog.timestamp >= start)
    if end:
        q = q.filter(models.ActivityLog.timestamp <= end)

    total = q.count()
    items = (
        q.order_by(models.ActivityLog.timestamp.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total
