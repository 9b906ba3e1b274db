from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..accounts.schemas import CamelModel
from .models import CompetencyLevelName, CompetencyStatus


class CompetencyLevelWrite(CamelModel):
    name: CompetencyLevelName
    training_plan_document: str = ""
    team_knowledge: str = ""
    eligibility_criteria: str = ""
    verification: str = ""


class CompetencyWrite(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: CompetencyStatus = CompetencyStatus.DRAFT
    relevant_links: Optional[str] = None
    levels: List[CompetencyLevelWrite] = Field(..., min_length=1)
    trainer_ids: List[str] = Field(..., min_length=1)
    requirement_level_ids: List[str] = Field(default_factory=list)

    @field_validator("levels")
    @classmethod
    def _basic_level_complete(cls, levels: List[CompetencyLevelWrite]) -> List[CompetencyLevelWrite]:
        basic = [lvl for lvl in levels if lvl.name == CompetencyLevelName.BASIC]
        if not basic:
            raise ValueError("Basic level is required and all its fields must be filled")
        lvl = basic[0]
        texts = (lvl.training_plan_document, lvl.team_knowledge, lvl.eligibility_criteria, lvl.verification)
        if any(not text.strip() for text in texts):
            raise ValueError("Basic level is required and all its fields must be filled")
        names = [lvl.name for lvl in levels]
        if len(set(names)) != len(names):
            raise ValueError("Each level may only appear once")
        return levels


class CompetencyLevelRead(CamelModel):
    id: str
    competency_id: str
    name: str
    training_plan_document: str
    team_knowledge: str
    eligibility_criteria: str
    verification: str
    is_deleted: bool


class CompetencyTrainerRead(CamelModel):
    trainer_user_id: str


class CompetencyRead(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    status: int
    relevant_links: Optional[str] = None
    is_deleted: bool
    levels: List[CompetencyLevelRead] = Field(default_factory=list)
    trainers: List[CompetencyTrainerRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
