from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_read_db
from ...security import require_permission
from ...utils.pagination import normalize_pagination
from ..accounts.models import User
from . import schemas, services

router = APIRouter(prefix="/activity-log", tags=["activity-log"])


@router.get("", response_model=schemas.ActivityLogPage)
def list_activity_log(
    page: int = 1,
    page_size: int = Query(20, alias="pageSize"),
    user_id: Optional[str] = Query(None, alias="userId"),
    module: Optional[str] = None,
    action: Optional[str] = None,
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: User = Depends(require_permission("activity_log", "list")),
):
    page, page_size, offset = normalize_pagination(page, page_size, default_page_size=20)
    items, total = services.list_activity(
        db,
        user_id=user_id,
        module=module,
        action=action,
        start=start,
        end=end,
        offset=offset,
        limit=page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}
