from __future__ import annotations

from datetime import date

from competencydb.apps.audit import models as audit_models
from competencydb.apps.audit import router as audit_router
from competencydb.apps.audit import services as audit_services


def test_log_activity_writes_record(db_session, admin):
    entry = audit_services.log_activity(
        db_session,
        user_id=admin.id,
        module="training_batch",
        action="edit",
        data={"batchId": "b-1", "sessionDate": date(2026, 4, 1)},
    )

    assert entry is not None
    stored = db_session.get(audit_models.ActivityLog, entry.id)
    assert stored.module == "training_batch"
    assert stored.data == {"batchId": "b-1", "sessionDate": "2026-04-01"}


def test_log_activity_rejects_unknown_action_without_raising(db_session, admin):
    entry = audit_services.log_activity(
        db_session, user_id=admin.id, module="users", action="archive"
    )

    assert entry is None
    assert db_session.query(audit_models.ActivityLog).count() == 0


def test_log_activity_swallows_commit_failure(db_session, admin, monkeypatch, caplog):
    db_session.commit()

    def _boom():
        raise RuntimeError("database went away")

    monkeypatch.setattr(db_session, "commit", _boom)

    entry = audit_services.log_activity(
        db_session, user_id=admin.id, module="users", action="add", data={"createdId": "u-1"}
    )

    assert entry is None
    assert "Failed to log activity" in caplog.text
    monkeypatch.undo()
    assert db_session.query(audit_models.ActivityLog).count() == 0


def test_list_activity_filters(db_session, admin):
    for module, action in (("users", "add"), ("roles", "edit"), ("users", "delete")):
        audit_services.log_activity(db_session, user_id=admin.id, module=module, action=action)

    items, total = audit_services.list_activity(db_session, module="users")
    assert total == 2
    assert {i.action for i in items} == {"add", "delete"}

    items, total = audit_services.list_activity(db_session, action="edit", user_id=admin.id)
    assert [i.module for i in items] == ["roles"]


def test_activity_route_paginates(db_session, admin):
    for _ in range(3):
        audit_services.log_activity(db_session, user_id=admin.id, module="users", action="edit")

    page = audit_router.list_activity_log(
        page=2,
        page_size=2,
        user_id=None,
        module=None,
        action=None,
        start=None,
        end=None,
        db=db_session,
        current_user=admin,
    )

    assert page["total"] == 3
    assert page["page"] == 2
    assert len(page["items"]) == 1
