# backend/competencydb/apps/competencies/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7


class CompetencyStatus(int, enum.Enum):
    DRAFT = 0
    PUBLISHED = 1


class CompetencyLevelName(str, enum.Enum):
    BASIC = "Basic"
    COMPETENT = "Competent"
    ADVANCED = "Advanced"


class Competency(Base):
    __tablename__ = "competencies"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Integer, nullable=False, default=CompetencyStatus.DRAFT.value)
    relevant_links = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    levels = relationship(
        "CompetencyLevel",
        back_populates="competency",
        cascade="all, delete-orphan",
        order_by="CompetencyLevel.created_at",
    )
    trainers = relationship(
        "CompetencyTrainer",
        back_populates="competency",
        cascade="all, delete-orphan",
    )
    requirements = relationship(
        "CompetencyRequirement",
        back_populates="competency",
        cascade="all, delete-orphan",
    )


class CompetencyLevel(Base):
    """
    One proficiency tier (Basic / Competent / Advanced) of a competency.

    Training requests and batches are always scoped to a level.
    """

    __tablename__ = "competency_levels"
    __table_args__ = (
        UniqueConstraint("competency_id", "name", name="uq_competency_levels_competency_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    competency_id = Column(
        String(36),
        ForeignKey("competencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(32), nullable=False)
    training_plan_document = Column(Text, nullable=False, default="")
    team_knowledge = Column(Text, nullable=False, default="")
    eligibility_criteria = Column(Text, nullable=False, default="")
    verification = Column(Text, nullable=False, default="")
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    competency = relationship("Competency", back_populates="levels")


class CompetencyTrainer(Base):
    __tablename__ = "competencies_trainer"

    competency_id = Column(
        String(36),
        ForeignKey("competencies.id", ondelete="CASCADE"),
        primary_key=True,
    )
    trainer_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    competency = relationship("Competency", back_populates="trainers")
    trainer = relationship("User")


class CompetencyRequirement(Base):
    """
    A level of another competency that must be held before starting this one.
    """

    __tablename__ = "competency_requirements"
    __table_args__ = (
        UniqueConstraint(
            "competency_id",
            "required_competency_level_id",
            name="uq_competency_requirements_competency_level",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    competency_id = Column(
        String(36),
        ForeignKey("competencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    required_competency_level_id = Column(
        String(36),
        ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    competency = relationship("Competency", back_populates="requirements")
