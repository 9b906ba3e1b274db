# backend/competencydb/apps/training/models.py

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...statuses import TRAINING_REQUEST_LABELS, TrainingRequestStatus
from ...statuses import status_label as label_for
from ...utils.identifiers import generate_uuid7


# ---------------------------------------------------------------------------
# TRAINING REQUESTS
# ---------------------------------------------------------------------------


class TrainingRequest(Base):
    """
    One learner's pursuit of one competency level.

    `status` uses the integer codes in `statuses.TrainingRequestStatus`.
    `training_batch_id` is only set while the request is In Progress or
    Sessions Completed inside a batch. Requests are never hard-deleted.
    """

    __tablename__ = "training_request"
    __table_args__ = (
        UniqueConstraint("tr_id", name="uq_training_request_tr_id"),
        UniqueConstraint(
            "learner_user_id",
            "competency_level_id",
            name="uq_training_request_learner_level",
        ),
        Index("ix_training_request_level_status", "competency_level_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    tr_id = Column(String(32), nullable=False)
    requested_date = Column(Date, nullable=False)

    learner_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    competency_level_id = Column(
        String(36),
        ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    training_batch_id = Column(
        String(36),
        ForeignKey("training_batch.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status = Column(Integer, nullable=False, default=TrainingRequestStatus.NOT_STARTED)
    in_queue_date = Column(Date, nullable=True)

    on_hold_by = Column(Integer, nullable=True, doc="0 = learner, 1 = trainer")
    on_hold_reason = Column(Text, nullable=True)
    drop_off_reason = Column(Text, nullable=True)

    is_blocked = Column(Boolean, nullable=False, default=False)
    blocked_reason = Column(Text, nullable=True)
    expected_unblocked_date = Column(Date, nullable=True)

    notes = Column(Text, nullable=True)
    assigned_to = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    response_due = Column(Date, nullable=True)
    response_date = Column(Date, nullable=True)
    definite_answer = Column(Boolean, nullable=True)
    no_follow_up_date = Column(Date, nullable=True)
    follow_up_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    learner = relationship("User", foreign_keys=[learner_user_id], lazy="joined")
    assigned_user = relationship("User", foreign_keys=[assigned_to])
    competency_level = relationship("CompetencyLevel")
    training_batch = relationship("TrainingBatch", foreign_keys=[training_batch_id])

    @property
    def status_label(self) -> str:
        return label_for(self.status, TRAINING_REQUEST_LABELS)

    def __repr__(self) -> str:
        return f"<TrainingRequest {self.tr_id} status={self.status}>"


# ---------------------------------------------------------------------------
# TRAINING BATCHES
# ---------------------------------------------------------------------------


class TrainingBatch(Base):
    """
    A cohort of learners trained together on one competency level.

    `current_participant` and `spot_left` are persisted for querying and are
    only ever written through `ledger.recompute_capacity`.
    """

    __tablename__ = "training_batch"
    __table_args__ = (
        Index("ix_training_batch_level_created", "competency_level_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    competency_level_id = Column(
        String(36),
        ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trainer_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    batch_name = Column(String(255), nullable=False)
    session_count = Column(Integer, nullable=False, default=0)
    duration_hrs = Column(Numeric(6, 2), nullable=True)
    estimated_start = Column(Date, nullable=True)
    batch_start_date = Column(Date, nullable=True)
    batch_finish_date = Column(Date, nullable=True)

    capacity = Column(Integer, nullable=False, default=0)
    current_participant = Column(Integer, nullable=False, default=0)
    spot_left = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    competency_level = relationship("CompetencyLevel", lazy="joined")
    trainer = relationship("User", lazy="joined")
    sessions = relationship(
        "TrainingBatchSession",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="TrainingBatchSession.session_number",
    )
    learners = relationship(
        "TrainingBatchLearner",
        back_populates="batch",
        cascade="all, delete-orphan",
    )

    def session_by_number(self, number: int):
        for session in self.sessions:
            if session.session_number == number:
                return session
        return None


class TrainingBatchSession(Base):
    __tablename__ = "training_batch_sessions"
    __table_args__ = (
        UniqueConstraint(
            "training_batch_id",
            "session_number",
            name="uq_training_batch_sessions_batch_number",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    training_batch_id = Column(
        String(36),
        ForeignKey("training_batch.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_number = Column(Integer, nullable=False)
    session_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    batch = relationship("TrainingBatch", back_populates="sessions")
    attendance = relationship(
        "TrainingBatchAttendanceSession",
        back_populates="session",
        cascade="all, delete-orphan",
    )
    homework = relationship(
        "TrainingBatchHomeworkSession",
        back_populates="session",
        cascade="all, delete-orphan",
    )


class TrainingBatchLearner(Base):
    """
    Roster row: exactly one per (batch, learner), pointing at the request
    that brought the learner in.
    """

    __tablename__ = "training_batch_learners"
    __table_args__ = (
        UniqueConstraint("training_request_id", name="uq_training_batch_learners_request"),
    )

    training_batch_id = Column(
        String(36),
        ForeignKey("training_batch.id", ondelete="CASCADE"),
        primary_key=True,
    )
    learner_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    training_request_id = Column(
        String(36),
        ForeignKey("training_request.id", ondelete="CASCADE"),
        nullable=False,
    )

    batch = relationship("TrainingBatch", back_populates="learners")
    learner = relationship("User", lazy="joined")
    training_request = relationship("TrainingRequest", lazy="joined")

    @property
    def status(self):
        return self.training_request.status if self.training_request else None


class TrainingBatchAttendanceSession(Base):
    __tablename__ = "training_batch_attendance_sessions"

    training_batch_id = Column(
        String(36),
        ForeignKey("training_batch.id", ondelete="CASCADE"),
        primary_key=True,
    )
    learner_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    session_id = Column(
        String(36),
        ForeignKey("training_batch_sessions.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    attended = Column(Boolean, nullable=False, default=False)

    session = relationship("TrainingBatchSession", back_populates="attendance")


class TrainingBatchHomeworkSession(Base):
    __tablename__ = "training_batch_homework_sessions"

    training_batch_id = Column(
        String(36),
        ForeignKey("training_batch.id", ondelete="CASCADE"),
        primary_key=True,
    )
    learner_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    session_id = Column(
        String(36),
        ForeignKey("training_batch_sessions.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    completed = Column(Boolean, nullable=False, default=False)
    homework_url = Column(Text, nullable=True)

    session = relationship("TrainingBatchSession", back_populates="homework")
