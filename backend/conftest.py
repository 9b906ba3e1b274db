from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"

from competencydb.database import Base  # noqa: E402
from competencydb import models as core_models  # noqa: E402,F401
from competencydb.apps.accounts import models as account_models  # noqa: E402
from competencydb.apps.audit import models as audit_models  # noqa: E402,F401
from competencydb.apps.competencies import models as competency_models  # noqa: E402
from competencydb.apps.training import models as training_models  # noqa: E402
from competencydb.apps.validation import models as validation_models  # noqa: E402,F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


# ---------------------------------------------------------------------------
# DATA BUILDERS
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def _make(name: Optional[str] = None, *, role=None, **kwargs) -> account_models.User:
        counter["n"] += 1
        name = name or f"User {counter['n']}"
        user = account_models.User(
            name=name,
            email=kwargs.pop("email", f"user{counter['n']}@example.com"),
            department=kwargs.pop("department", account_models.UserDepartment.SCRAPING),
            role=role,
            **kwargs,
        )
        db_session.add(user)
        db_session.flush()
        return user

    return _make


@pytest.fixture()
def admin_role(db_session):
    role = account_models.Role(role_name="Administrator")
    for module in account_models.PermissionModule:
        role.permissions.append(
            account_models.RolePermission(
                module=module,
                can_list=True,
                can_add=True,
                can_edit=True,
                can_delete=True,
            )
        )
    db_session.add(role)
    db_session.flush()
    return role


@pytest.fixture()
def admin(make_user, admin_role):
    return make_user("Admin", role=admin_role, email="admin@example.com")


@pytest.fixture()
def level(db_session, make_user):
    trainer = make_user("Trainer")
    competency = competency_models.Competency(name="Web Scraping", status=1)
    basic = competency_models.CompetencyLevel(
        name="Basic",
        training_plan_document="https://docs.example.com/plan",
        team_knowledge="Selectors",
        eligibility_criteria="None",
        verification="Project",
    )
    competency.levels.append(basic)
    competency.trainers.append(competency_models.CompetencyTrainer(trainer_user_id=trainer.id))
    db_session.add(competency)
    db_session.flush()
    return basic


@pytest.fixture()
def trainer(level):
    return level.competency.trainers[0].trainer


@pytest.fixture()
def make_request(db_session, make_user, level):
    counter = {"n": 0}

    def _make(status: int = 2, *, learner=None, competency_level=None) -> training_models.TrainingRequest:
        counter["n"] += 1
        learner = learner or make_user(f"Learner {counter['n']}")
        request = training_models.TrainingRequest(
            tr_id=f"TR{counter['n']:02d}",
            requested_date=date.today(),
            learner_user_id=learner.id,
            competency_level_id=(competency_level or level).id,
            status=status,
            is_blocked=False,
        )
        db_session.add(request)
        db_session.flush()
        return request

    return _make
