from __future__ import annotations

import pytest

from competencydb.apps.audit import models as audit_models
from competencydb.apps.training import models, schemas
from competencydb.apps.training import router_batches, router_requests
from competencydb.errors import SequenceViolation, ValidationError
from competencydb.statuses import TrainingRequestStatus as TR


def _has(router, method: str, path: str) -> bool:
    return any(route.path == path and method in (route.methods or []) for route in router.routes)


def test_batch_router_has_expected_routes():
    router = router_batches.router
    assert _has(router, "GET", "/training-batches")
    assert _has(router, "POST", "/training-batches")
    assert _has(router, "GET", "/training-batches/available-learners")
    assert _has(router, "GET", "/training-batches/count-by-competency-level")
    assert _has(router, "GET", "/training-batches/{batch_id}")
    assert _has(router, "PATCH", "/training-batches/{batch_id}")
    assert _has(router, "DELETE", "/training-batches/{batch_id}")
    assert _has(router, "GET", "/training-batches/{batch_id}/learners")
    assert _has(router, "POST", "/training-batches/{batch_id}/learners/{learner_id}/drop-off")
    assert _has(router, "POST", "/training-batches/{batch_id}/learners/{learner_id}/remove")
    assert _has(router, "PATCH", "/training-batches/{batch_id}/session-date")
    assert _has(router, "POST", "/training-batches/{batch_id}/start-session-1")
    assert _has(router, "PATCH", "/training-batches/{batch_id}/attendance")
    assert _has(router, "PATCH", "/training-batches/{batch_id}/homework")


def test_request_router_has_expected_routes():
    router = router_requests.router
    assert _has(router, "GET", "/training-requests/statuses")
    assert _has(router, "GET", "/training-requests")
    assert _has(router, "POST", "/training-requests")
    assert _has(router, "GET", "/training-requests/{request_id}")
    assert _has(router, "PATCH", "/training-requests/{request_id}")


def _activity(db_session, module):
    return (
        db_session.query(audit_models.ActivityLog)
        .filter(audit_models.ActivityLog.module == module)
        .all()
    )


def _create_via_router(db_session, admin, level, trainer, learner_ids, capacity=3):
    payload = schemas.TrainingBatchCreate(
        batch_name="Batch 1",
        competency_level_id=level.id,
        trainer_user_id=trainer.id,
        session_count=2,
        capacity=capacity,
        learner_ids=learner_ids,
    )
    return router_batches.create_training_batch(payload=payload, db=db_session, current_user=admin)


def test_create_route_commits_and_logs(db_session, admin, level, trainer, make_request):
    request = make_request()

    batch = _create_via_router(db_session, admin, level, trainer, [request.learner_user_id])

    entries = _activity(db_session, "training_batch")
    assert len(entries) == 1
    assert entries[0].action == "add"
    assert entries[0].user_id == admin.id
    assert entries[0].data["createdId"] == batch.id
    assert entries[0].data["learnerIds"] == [request.learner_user_id]

    page = router_batches.list_training_batches(
        competency=None,
        level=None,
        competency_level_id=level.id,
        batch=None,
        trainer=None,
        training_request_id=None,
        available_for_training_request_id=None,
        page=1,
        page_size=50,
        db=db_session,
        current_user=admin,
    )
    assert page["total"] == 1
    assert page["items"][0].id == batch.id


def test_failed_create_route_writes_nothing(db_session, admin, level, trainer, make_request):
    requests = [make_request() for _ in range(3)]

    with pytest.raises(ValidationError):
        _create_via_router(
            db_session, admin, level, trainer, [r.learner_user_id for r in requests], capacity=2
        )

    assert db_session.query(models.TrainingBatch).count() == 0
    assert _activity(db_session, "training_batch") == []


def test_drop_off_route_logs_learner_action(db_session, admin, level, trainer, make_request):
    request = make_request()
    batch = _create_via_router(db_session, admin, level, trainer, [request.learner_user_id])

    result = router_batches.drop_off_learner(
        batch_id=batch.id,
        learner_id=request.learner_user_id,
        payload=schemas.DropOffPayload(drop_off_reason="relocated"),
        db=db_session,
        current_user=admin,
    )

    assert result == {"success": True}
    assert db_session.get(models.TrainingRequest, request.id).status == TR.DROP_OFF
    edit = [e for e in _activity(db_session, "training_batch") if e.action == "edit"]
    assert edit[0].data["action"] == "drop_off_learner"
    assert edit[0].data["dropOffReason"] == "relocated"


def test_attendance_route_surfaces_sequence_violation(db_session, admin, level, trainer, make_request):
    request = make_request()
    batch = _create_via_router(db_session, admin, level, trainer, [request.learner_user_id])
    session_two = batch.session_by_number(2)

    payload = schemas.AttendanceUpdate(
        session_id=session_two.id,
        attendance=[schemas.AttendanceEntry(learner_id=request.learner_user_id, attended=True)],
    )
    with pytest.raises(SequenceViolation):
        router_batches.update_attendance(
            batch_id=batch.id, payload=payload, db=db_session, current_user=admin
        )

    assert db_session.query(models.TrainingBatchAttendanceSession).count() == 0
    assert [e.action for e in _activity(db_session, "training_batch")] == ["add"]


def test_delete_route_returns_learners_to_queue(db_session, admin, level, trainer, make_request):
    requests = [make_request(), make_request()]
    batch = _create_via_router(db_session, admin, level, trainer, [r.learner_user_id for r in requests])
    batch_id = batch.id

    router_batches.delete_training_batch(batch_id=batch_id, db=db_session, current_user=admin)

    for request in requests:
        refreshed = db_session.get(models.TrainingRequest, request.id)
        assert refreshed.status == TR.IN_QUEUE
        assert refreshed.training_batch_id is None
    deleted = [e for e in _activity(db_session, "training_batch") if e.action == "delete"]
    assert deleted[0].data["deletedId"] == batch_id


def test_count_by_level_route(db_session, admin, level, trainer):
    _create_via_router(db_session, admin, level, trainer, [])

    assert router_batches.count_by_competency_level(
        competency_level_id=level.id, db=db_session, current_user=admin
    ) == {"count": 1}


def test_request_statuses_route_lists_every_code(admin):
    options = router_requests.list_statuses(current_user=admin)

    assert [o["code"] for o in options] == list(range(8))
    assert options[2] == {"code": 2, "label": "In Queue", "badge": "info"}
    assert options[7]["badge"] == "danger"


def test_request_create_route_logs(db_session, make_user, level):
    learner = make_user("Learner")

    request = router_requests.create_training_request(
        payload=schemas.TrainingRequestCreate(competency_level_id=level.id),
        db=db_session,
        current_user=learner,
    )

    assert request.tr_id == "TR01"
    entries = _activity(db_session, "training_request")
    assert entries[0].data["trId"] == "TR01"
    assert entries[0].user_id == learner.id


def test_request_list_route_filters_by_status(db_session, admin, make_request):
    make_request(TR.IN_QUEUE)
    make_request(TR.ON_HOLD)

    page = router_requests.list_training_requests(
        status_filter=TR.ON_HOLD,
        competency_level_id=None,
        learner_user_id=None,
        tr_id=None,
        page=1,
        page_size=50,
        db=db_session,
        current_user=admin,
    )

    assert page["total"] == 1
    assert page["items"][0].status == TR.ON_HOLD
