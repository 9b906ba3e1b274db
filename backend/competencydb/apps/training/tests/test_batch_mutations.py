from __future__ import annotations

from datetime import date

import pytest

from competencydb.apps.training import models, schemas, services
from competencydb.database import transaction
from competencydb.errors import NotFoundError, ValidationError
from competencydb.statuses import TrainingRequestStatus as TR


def _create(db_session, level, trainer, learner_ids, *, capacity=5, session_count=3, **extra):
    payload = schemas.TrainingBatchCreate(
        batch_name=extra.pop("batch_name", "Batch 1"),
        competency_level_id=level.id,
        trainer_user_id=trainer.id,
        session_count=session_count,
        capacity=capacity,
        learner_ids=learner_ids,
        **extra,
    )
    with transaction(db_session):
        return services.create_batch(db_session, payload)


def _roster_ids(batch):
    return sorted(row.learner_user_id for row in batch.learners)


# ---------------------------------------------------------------------------
# CREATE
# ---------------------------------------------------------------------------


def test_create_batch_enrolls_learners_and_builds_sessions(db_session, level, trainer, make_request):
    requests = [make_request(TR.IN_QUEUE), make_request(TR.NO_BATCH_MATCH)]
    learner_ids = [r.learner_user_id for r in requests]

    batch = _create(
        db_session,
        level,
        trainer,
        learner_ids,
        session_dates=[date(2026, 3, 2), None, date(2026, 3, 16)],
    )

    assert _roster_ids(batch) == sorted(learner_ids)
    assert batch.current_participant == 2
    assert batch.spot_left == 3
    assert [s.session_number for s in batch.sessions] == [1, 2, 3]
    assert batch.sessions[0].session_date == date(2026, 3, 2)
    assert batch.sessions[1].session_date is None
    for request in requests:
        assert request.status == TR.IN_PROGRESS
        assert request.training_batch_id == batch.id


def test_created_batch_round_trips_roster_with_in_progress_status(db_session, level, trainer, make_request):
    requests = [make_request(TR.IN_QUEUE), make_request(TR.ON_HOLD), make_request(TR.DROP_OFF)]
    batch = _create(db_session, level, trainer, [r.learner_user_id for r in requests])

    detail = services.batch_detail(db_session, batch.id)

    assert sorted(entry.learner_user_id for entry in detail.learners) == sorted(
        r.learner_user_id for r in requests
    )
    assert {entry.status for entry in detail.learners} == {TR.IN_PROGRESS}
    assert detail.current_participant == 3


def test_create_requires_core_fields(db_session, level, trainer):
    payload = schemas.TrainingBatchCreate(
        batch_name="Batch 1",
        competency_level_id=level.id,
        trainer_user_id=trainer.id,
        session_count=2,
    )
    with pytest.raises(ValidationError) as exc:
        services.create_batch(db_session, payload)
    assert exc.value.message == "Missing required fields"


def test_create_rejects_more_learners_than_capacity(db_session, level, trainer, make_request):
    requests = [make_request() for _ in range(3)]

    with pytest.raises(ValidationError) as exc:
        _create(db_session, level, trainer, [r.learner_user_id for r in requests], capacity=2)

    assert exc.value.message == "Number of learners cannot exceed capacity"
    assert db_session.query(models.TrainingBatch).count() == 0


@pytest.mark.parametrize("status", [TR.NOT_STARTED, TR.LOOKING_FOR_TRAINER])
def test_create_rejects_requests_outside_entry_states(db_session, level, trainer, make_request, status):
    ok = make_request(TR.IN_QUEUE)
    blocked = make_request(status)

    with pytest.raises(ValidationError) as exc:
        _create(db_session, level, trainer, [ok.learner_user_id, blocked.learner_user_id])

    assert exc.value.message == "Some learners do not have training requests in queue"
    assert db_session.query(models.TrainingBatch).count() == 0
    assert db_session.query(models.TrainingBatchLearner).count() == 0
    assert ok.status == TR.IN_QUEUE
    assert ok.training_batch_id is None


# ---------------------------------------------------------------------------
# UPDATE
# ---------------------------------------------------------------------------


def test_update_with_ineligible_learner_changes_nothing(db_session, level, trainer, make_request):
    member = make_request(TR.IN_QUEUE)
    batch = _create(db_session, level, trainer, [member.learner_user_id], capacity=3)
    not_started = make_request(TR.NOT_STARTED)

    payload = schemas.TrainingBatchUpdate(
        batch_name="Renamed",
        session_count=5,
        learner_ids=[not_started.learner_user_id],
    )
    with pytest.raises(ValidationError):
        with transaction(db_session):
            services.update_batch(db_session, batch.id, payload)

    db_session.expire_all()
    batch = services.get_batch(db_session, batch.id)
    assert batch.batch_name == "Batch 1"
    assert len(batch.sessions) == 3
    assert _roster_ids(batch) == [member.learner_user_id]
    assert (batch.current_participant, batch.spot_left) == (1, 2)
    assert db_session.get(models.TrainingRequest, member.id).status == TR.IN_PROGRESS
    assert db_session.get(models.TrainingRequest, not_started.id).status == TR.NOT_STARTED


def test_update_full_batch_rejects_fourth_learner(db_session, level, trainer, make_request):
    members = [make_request() for _ in range(3)]
    batch = _create(db_session, level, trainer, [r.learner_user_id for r in members], capacity=3)
    extra = make_request()

    payload = schemas.TrainingBatchUpdate(
        learner_ids=[r.learner_user_id for r in members] + [extra.learner_user_id]
    )
    with pytest.raises(ValidationError) as exc:
        services.update_batch(db_session, batch.id, payload)

    assert exc.value.message == "Number of learners cannot exceed capacity"
    assert len(batch.learners) == 3
    assert (batch.current_participant, batch.spot_left) == (3, 0)
    assert extra.status == TR.IN_QUEUE


def test_update_diffs_roster(db_session, level, trainer, make_request):
    keep, drop = make_request(), make_request()
    batch = _create(db_session, level, trainer, [keep.learner_user_id, drop.learner_user_id], capacity=4)
    incoming = make_request(TR.ON_HOLD)

    payload = schemas.TrainingBatchUpdate(learner_ids=[keep.learner_user_id, incoming.learner_user_id])
    with transaction(db_session):
        services.update_batch(db_session, batch.id, payload)

    assert _roster_ids(batch) == sorted([keep.learner_user_id, incoming.learner_user_id])
    assert (batch.current_participant, batch.spot_left) == (2, 2)
    assert drop.status == TR.IN_QUEUE
    assert drop.training_batch_id is None
    assert drop.in_queue_date == date.today()
    assert incoming.status == TR.IN_PROGRESS
    assert incoming.training_batch_id == batch.id
    assert keep.status == TR.IN_PROGRESS


def test_removed_learner_rollback_targets_linked_request_only(
    db_session, level, trainer, make_request, make_user
):
    from competencydb.apps.competencies import models as competency_models

    learner = make_user("Multi")
    other_level = competency_models.CompetencyLevel(
        competency_id=level.competency_id,
        name="Competent",
    )
    db_session.add(other_level)
    db_session.flush()

    in_batch = make_request(TR.IN_QUEUE, learner=learner)
    elsewhere = make_request(TR.ON_HOLD, learner=learner, competency_level=other_level)
    batch = _create(db_session, level, trainer, [learner.id])

    with transaction(db_session):
        services.update_batch(db_session, batch.id, schemas.TrainingBatchUpdate(learner_ids=[]))

    assert in_batch.status == TR.IN_QUEUE
    assert elsewhere.status == TR.ON_HOLD


def test_update_capacity_below_roster_is_rejected(db_session, level, trainer, make_request):
    members = [make_request() for _ in range(3)]
    batch = _create(db_session, level, trainer, [r.learner_user_id for r in members], capacity=4)

    with pytest.raises(ValidationError) as exc:
        services.update_batch(db_session, batch.id, schemas.TrainingBatchUpdate(capacity=2))

    assert exc.value.message == "Cannot set capacity below current participant count (3)"
    assert batch.capacity == 4


def test_update_capacity_recomputes_spot_left(db_session, level, trainer, make_request):
    member = make_request()
    batch = _create(db_session, level, trainer, [member.learner_user_id], capacity=2)

    with transaction(db_session):
        services.update_batch(db_session, batch.id, schemas.TrainingBatchUpdate(capacity=6))

    assert (batch.capacity, batch.current_participant, batch.spot_left) == (6, 1, 5)


def test_shrinking_sessions_drops_trailing_rows_without_renumbering(db_session, level, trainer, make_request):
    from competencydb.apps.training import attendance

    member = make_request()
    batch = _create(db_session, level, trainer, [member.learner_user_id], session_count=4)
    first_ids = [s.id for s in batch.sessions[:2]]
    for number in (1, 2, 3):
        attendance.set_attendance(
            db_session, batch, member.learner_user_id, batch.session_by_number(number), True
        )

    with transaction(db_session):
        services.update_batch(db_session, batch.id, schemas.TrainingBatchUpdate(session_count=2))

    assert [s.session_number for s in batch.sessions] == [1, 2]
    assert [s.id for s in batch.sessions] == first_ids
    assert db_session.query(models.TrainingBatchAttendanceSession).count() == 2
    assert member.status == TR.SESSIONS_COMPLETED


def test_growing_sessions_reopens_completed_requests(db_session, level, trainer, make_request):
    from competencydb.apps.training import attendance

    member = make_request()
    batch = _create(db_session, level, trainer, [member.learner_user_id], session_count=2)
    for number in (1, 2):
        attendance.set_attendance(
            db_session, batch, member.learner_user_id, batch.session_by_number(number), True
        )
    assert member.status == TR.SESSIONS_COMPLETED

    with transaction(db_session):
        services.update_batch(db_session, batch.id, schemas.TrainingBatchUpdate(session_count=3))

    assert [s.session_number for s in batch.sessions] == [1, 2, 3]
    assert member.status == TR.IN_PROGRESS

    attendance.set_attendance(
        db_session, batch, member.learner_user_id, batch.session_by_number(3), True
    )
    assert member.status == TR.SESSIONS_COMPLETED


def test_update_refuses_level_change_with_enrolled_learners(db_session, level, trainer, make_request):
    from competencydb.apps.competencies import models as competency_models

    member = make_request()
    batch = _create(db_session, level, trainer, [member.learner_user_id])
    other = competency_models.CompetencyLevel(competency_id=level.competency_id, name="Advanced")
    db_session.add(other)
    db_session.flush()

    with pytest.raises(ValidationError):
        services.update_batch(
            db_session, batch.id, schemas.TrainingBatchUpdate(competency_level_id=other.id)
        )


def test_update_missing_batch_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        services.update_batch(db_session, "missing", schemas.TrainingBatchUpdate(batch_name="x"))


# ---------------------------------------------------------------------------
# DELETE / DROP-OFF / REMOVE
# ---------------------------------------------------------------------------


def test_delete_batch_returns_members_to_queue(db_session, level, trainer, make_request):
    members = [make_request(), make_request()]
    batch = _create(db_session, level, trainer, [r.learner_user_id for r in members])
    batch_id = batch.id

    with transaction(db_session):
        summary = services.delete_batch(db_session, batch_id)

    assert summary["id"] == batch_id
    assert db_session.get(models.TrainingBatch, batch_id) is None
    assert db_session.query(models.TrainingBatchSession).count() == 0
    assert db_session.query(models.TrainingBatchLearner).count() == 0
    for request in members:
        assert request.status == TR.IN_QUEUE
        assert request.training_batch_id is None


def test_drop_off_frees_a_spot_and_records_reason(db_session, level, trainer, make_request):
    members = [make_request() for _ in range(5)]
    batch = _create(db_session, level, trainer, [r.learner_user_id for r in members], capacity=5)
    assert (batch.current_participant, batch.spot_left) == (5, 0)
    leaving = members[0]

    with transaction(db_session):
        services.release_learner(
            db_session,
            batch.id,
            leaving.learner_user_id,
            trigger="drop_off",
            drop_off_reason="relocated",
        )

    assert (batch.current_participant, batch.spot_left) == (4, 1)
    assert leaving.status == TR.DROP_OFF
    assert leaving.drop_off_reason == "relocated"
    assert leaving.training_batch_id is None


def test_remove_returns_request_to_queue(db_session, level, trainer, make_request):
    member = make_request(TR.DROP_OFF)
    batch = _create(db_session, level, trainer, [member.learner_user_id])

    with transaction(db_session):
        services.release_learner(db_session, batch.id, member.learner_user_id, trigger="remove")

    assert member.status == TR.IN_QUEUE
    assert member.training_batch_id is None
    assert batch.learners == []
    assert (batch.current_participant, batch.spot_left) == (0, 5)


def test_release_unknown_learner_is_not_found(db_session, level, trainer, make_request):
    batch = _create(db_session, level, trainer, [make_request().learner_user_id])

    with pytest.raises(NotFoundError) as exc:
        services.release_learner(db_session, batch.id, "nobody", trigger="remove")
    assert exc.value.message == "Learner not found in batch"


def test_dropped_learner_can_rejoin_a_batch(db_session, level, trainer, make_request):
    member = make_request()
    batch = _create(db_session, level, trainer, [member.learner_user_id])
    with transaction(db_session):
        services.release_learner(
            db_session, batch.id, member.learner_user_id, trigger="drop_off", drop_off_reason=None
        )

    second = _create(db_session, level, trainer, [member.learner_user_id], batch_name="Batch 2")

    assert member.status == TR.IN_PROGRESS
    assert member.training_batch_id == second.id


def test_rejoining_the_same_batch_restores_progress_from_attendance(db_session, level, trainer, make_request):
    from competencydb.apps.training import attendance

    member = make_request()
    batch = _create(db_session, level, trainer, [member.learner_user_id], session_count=2)
    for number in (1, 2):
        attendance.set_attendance(
            db_session, batch, member.learner_user_id, batch.session_by_number(number), True
        )
    with transaction(db_session):
        services.release_learner(
            db_session, batch.id, member.learner_user_id, trigger="drop_off", drop_off_reason="travel"
        )
    assert member.status == TR.DROP_OFF

    with transaction(db_session):
        services.update_batch(
            db_session, batch.id, schemas.TrainingBatchUpdate(learner_ids=[member.learner_user_id])
        )

    kept = (
        db_session.query(models.TrainingBatchAttendanceSession)
        .filter(models.TrainingBatchAttendanceSession.learner_user_id == member.learner_user_id)
        .all()
    )
    assert [row.attended for row in kept] == [True, True]
    assert member.training_batch_id == batch.id
    assert member.status == TR.SESSIONS_COMPLETED
    assert (batch.current_participant, batch.spot_left) == (1, 4)
