from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from ..accounts.schemas import CamelModel


class ActivityLogUser(CamelModel):
    id: str
    name: str
    email: str


class ActivityLogRead(CamelModel):
    id: str
    user_id: str
    module: str
    action: str
    timestamp: datetime
    data: Optional[Any] = None
    user: Optional[ActivityLogUser] = None


class ActivityLogPage(CamelModel):
    items: List[ActivityLogRead]
    total: int
    page: int
    page_size: int
