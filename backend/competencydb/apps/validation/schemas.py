from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ..accounts.schemas import CamelModel
from ..training.schemas import LevelSummary, UserSummary


# ---------------------------------------------------------------------------
# VPA
# ---------------------------------------------------------------------------


class VPACreate(CamelModel):
    training_request_id: str
    project_details: Optional[str] = None


class VPAUpdate(CamelModel):
    status: Optional[int] = Field(default=None, ge=0, le=3)
    project_details: Optional[str] = None
    rejection_reason: Optional[str] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None


class VPARead(CamelModel):
    id: str
    vpa_id: str
    tr_id: Optional[str] = None
    requested_date: Optional[date] = None
    learner_user_id: str
    competency_level_id: str
    project_details: Optional[str] = None
    rejection_reason: Optional[str] = None
    status: int
    status_label: str
    assigned_to: Optional[str] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    learner: Optional[UserSummary] = None
    competency_level: Optional[LevelSummary] = None


class VPALogRead(CamelModel):
    id: str
    vpa_id: str
    status: Optional[int] = None
    project_details_text: Optional[str] = None
    rejection_reason: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime


class VPAPage(CamelModel):
    items: List[VPARead]
    total: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# VSR
# ---------------------------------------------------------------------------


class VSRUpdate(CamelModel):
    status: Optional[int] = Field(default=None, ge=0, le=4)
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    validator_ops: Optional[str] = None
    validator_trainer: Optional[str] = None
    scheduled_date: Optional[date] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    definite_answer: Optional[bool] = None
    no_follow_up_date: Optional[date] = None
    follow_up_date: Optional[date] = None


class VSRRead(CamelModel):
    id: str
    vsr_id: str
    tr_id: Optional[str] = None
    requested_date: date
    learner_user_id: str
    competency_level_id: str
    description: Optional[str] = None
    status: int
    status_label: str
    assigned_to: Optional[str] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    definite_answer: Optional[bool] = None
    no_follow_up_date: Optional[date] = None
    follow_up_date: Optional[date] = None
    scheduled_date: Optional[date] = None
    validator_ops: Optional[str] = None
    validator_trainer: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    learner: Optional[UserSummary] = None
    competency_level: Optional[LevelSummary] = None


class VSRLogRead(CamelModel):
    id: str
    vsr_id: str
    status: Optional[int] = None
    updated_by: Optional[str] = None
    created_at: datetime


class VSRPage(CamelModel):
    items: List[VSRRead]
    total: int
    page: int
    page_size: int
