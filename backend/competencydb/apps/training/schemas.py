from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ..accounts.schemas import CamelModel


class UserSummary(CamelModel):
    id: str
    name: str
    email: str


class CompetencySummary(CamelModel):
    id: str
    name: str


class LevelSummary(CamelModel):
    id: str
    name: str
    competency: Optional[CompetencySummary] = None


class StatusOption(CamelModel):
    code: int
    label: str
    badge: str


# ---------------------------------------------------------------------------
# TRAINING BATCHES
# ---------------------------------------------------------------------------


class TrainingBatchCreate(CamelModel):
    # Required fields are checked by the service so the error reads
    # "Missing required fields" rather than a per-field schema error.
    batch_name: Optional[str] = None
    competency_level_id: Optional[str] = None
    trainer_user_id: Optional[str] = None
    session_count: Optional[int] = None
    duration_hrs: Optional[Decimal] = None
    estimated_start: Optional[date] = None
    batch_start_date: Optional[date] = None
    batch_finish_date: Optional[date] = None
    capacity: Optional[int] = None
    learner_ids: List[str] = Field(default_factory=list)
    session_dates: List[Optional[date]] = Field(default_factory=list)


class TrainingBatchUpdate(CamelModel):
    """
    Partial update. Omitted fields are left untouched; `learner_ids`
    replaces the roster when given.
    """

    batch_name: Optional[str] = None
    competency_level_id: Optional[str] = None
    trainer_user_id: Optional[str] = None
    session_count: Optional[int] = Field(default=None, ge=1)
    duration_hrs: Optional[Decimal] = None
    estimated_start: Optional[date] = None
    batch_start_date: Optional[date] = None
    batch_finish_date: Optional[date] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    learner_ids: Optional[List[str]] = None
    session_dates: Optional[List[Optional[date]]] = None


class TrainingBatchSessionRead(CamelModel):
    id: str
    session_number: int
    session_date: Optional[date] = None


class RosterEntryRead(CamelModel):
    learner_user_id: str
    training_request_id: str
    status: Optional[int] = None
    learner: Optional[UserSummary] = None


class AttendanceRead(CamelModel):
    learner_user_id: str
    session_id: str
    attended: bool


class HomeworkRead(CamelModel):
    learner_user_id: str
    session_id: str
    completed: bool
    homework_url: Optional[str] = None


class TrainingBatchRead(CamelModel):
    id: str
    batch_name: str
    competency_level_id: str
    trainer_user_id: str
    session_count: int
    duration_hrs: Optional[Decimal] = None
    estimated_start: Optional[date] = None
    batch_start_date: Optional[date] = None
    batch_finish_date: Optional[date] = None
    capacity: int
    current_participant: int
    spot_left: int
    created_at: datetime
    updated_at: datetime
    competency_level: Optional[LevelSummary] = None
    trainer: Optional[UserSummary] = None


class TrainingBatchDetail(TrainingBatchRead):
    sessions: List[TrainingBatchSessionRead] = Field(default_factory=list)
    learners: List[RosterEntryRead] = Field(default_factory=list)
    attendance: List[AttendanceRead] = Field(default_factory=list)
    homework: List[HomeworkRead] = Field(default_factory=list)


class TrainingBatchPage(CamelModel):
    items: List[TrainingBatchRead]
    total: int
    page: int
    page_size: int


class AttendanceEntry(CamelModel):
    learner_id: str
    attended: bool


class AttendanceUpdate(CamelModel):
    session_id: str
    attendance: List[AttendanceEntry]


class HomeworkEntry(CamelModel):
    learner_id: str
    completed: bool = False
    homework_url: Optional[str] = None


class HomeworkUpdate(CamelModel):
    session_id: str
    homework: List[HomeworkEntry]


class DropOffPayload(CamelModel):
    drop_off_reason: Optional[str] = None


class SessionDateUpdate(CamelModel):
    session_number: int
    session_date: Optional[date] = None


class ActionResult(CamelModel):
    success: bool = True
    message: Optional[str] = None


class AvailableLearnerRead(CamelModel):
    id: str
    name: str
    email: str
    training_request_id: str


class BatchNumberRead(CamelModel):
    count: int


# ---------------------------------------------------------------------------
# TRAINING REQUESTS
# ---------------------------------------------------------------------------


class TrainingRequestCreate(CamelModel):
    competency_level_id: str
    # Set when an administrator files the request on a learner's behalf.
    learner_user_id: Optional[str] = None


class TrainingRequestUpdate(CamelModel):
    status: Optional[int] = Field(default=None, ge=0, le=7)
    on_hold_by: Optional[int] = Field(default=None, ge=0, le=1)
    on_hold_reason: Optional[str] = None
    drop_off_reason: Optional[str] = None
    is_blocked: Optional[bool] = None
    blocked_reason: Optional[str] = None
    expected_unblocked_date: Optional[date] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    definite_answer: Optional[bool] = None
    no_follow_up_date: Optional[date] = None
    follow_up_date: Optional[date] = None


class TrainingRequestRead(CamelModel):
    id: str
    tr_id: str
    requested_date: date
    learner_user_id: str
    competency_level_id: str
    training_batch_id: Optional[str] = None
    status: int
    status_label: str
    in_queue_date: Optional[date] = None
    on_hold_by: Optional[int] = None
    on_hold_reason: Optional[str] = None
    drop_off_reason: Optional[str] = None
    is_blocked: bool = False
    blocked_reason: Optional[str] = None
    expected_unblocked_date: Optional[date] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    response_due: Optional[date] = None
    response_date: Optional[date] = None
    definite_answer: Optional[bool] = None
    no_follow_up_date: Optional[date] = None
    follow_up_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    learner: Optional[UserSummary] = None
    competency_level: Optional[LevelSummary] = None


class TrainingRequestPage(CamelModel):
    items: List[TrainingRequestRead]
    total: int
    page: int
    page_size: int
