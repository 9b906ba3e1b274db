# backend/competencydb/apps/validation/models.py

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...statuses import VPA_LABELS, VSR_LABELS, VPAStatus, VSRStatus
from ...statuses import status_label as label_for
from ...utils.identifiers import generate_uuid7


# ---------------------------------------------------------------------------
# VALIDATION PROJECT APPROVAL
# ---------------------------------------------------------------------------


class ValidationProjectApproval(Base):
    """
    Post-training review of a learner's validation project.

    `tr_id` is the human-readable training request id (e.g. 'TR07') and is
    what links a VPA to its VSR.
    """

    __tablename__ = "validation_project_approval"
    __table_args__ = (
        UniqueConstraint("vpa_id", name="uq_validation_project_approval_vpa_id"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    vpa_id = Column(String(32), nullable=False)
    tr_id = Column(String(32), nullable=True, index=True)
    requested_date = Column(Date, nullable=True)

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

    project_details = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    status = Column(Integer, nullable=False, default=VPAStatus.PENDING)
    assigned_to = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    response_due = Column(Date, nullable=True)
    response_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    learner = relationship("User", foreign_keys=[learner_user_id], lazy="joined")
    competency_level = relationship("CompetencyLevel")

    @property
    def status_label(self) -> str:
        return label_for(self.status, VPA_LABELS)


class ValidationProjectApprovalLog(Base):
    """Append-only history of a VPA; keyed by `vpa_id`, not a foreign key."""

    __tablename__ = "validation_project_approval_log"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    vpa_id = Column(String(32), nullable=False, index=True)
    status = Column(Integer, nullable=True)
    project_details_text = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    updated_by = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


# ---------------------------------------------------------------------------
# VALIDATION SCHEDULE REQUEST
# ---------------------------------------------------------------------------


class ValidationScheduleRequest(Base):
    __tablename__ = "validation_schedule_request"
    __table_args__ = (
        UniqueConstraint("vsr_id", name="uq_validation_schedule_request_vsr_id"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    vsr_id = Column(String(32), nullable=False)
    tr_id = Column(String(32), nullable=True, index=True)
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

    description = Column(Text, nullable=True)
    status = Column(Integer, nullable=False, default=VSRStatus.PENDING_VALIDATION)
    assigned_to = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    response_due = Column(Date, nullable=True)
    response_date = Column(Date, nullable=True)
    definite_answer = Column(Boolean, nullable=True)
    no_follow_up_date = Column(Date, nullable=True)
    follow_up_date = Column(Date, nullable=True)
    scheduled_date = Column(Date, nullable=True)
    validator_ops = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    validator_trainer = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    learner = relationship("User", foreign_keys=[learner_user_id], lazy="joined")
    competency_level = relationship("CompetencyLevel")

    @property
    def status_label(self) -> str:
        return label_for(self.status, VSR_LABELS)


class ValidationScheduleRequestLog(Base):
    """Survives deletion of its VSR."""

    __tablename__ = "validation_schedule_request_log"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    vsr_id = Column(String(32), nullable=False, index=True)
    status = Column(Integer, nullable=True)
    updated_by = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
