from __future__ import annotations

from datetime import date

import pytest

from competencydb.apps.validation import models, router, schemas, services
from competencydb.errors import AuthorisationError, NotFoundError, ValidationError
from competencydb.statuses import TrainingRequestStatus as TR
from competencydb.statuses import VPAStatus, VSRStatus


@pytest.fixture()
def completed_request(make_request):
    return make_request(TR.SESSIONS_COMPLETED)


def _submit(db_session, request, actor, details="<p>Scraper for the catalogue site</p>"):
    return services.create_vpa(
        db_session,
        schemas.VPACreate(training_request_id=request.id, project_details=details),
        actor=actor,
    )


# ---------------------------------------------------------------------------
# VPA
# ---------------------------------------------------------------------------


def test_learner_submits_vpa_for_completed_request(db_session, completed_request):
    learner = completed_request.learner

    vpa = _submit(db_session, completed_request, learner)

    assert vpa.vpa_id == "VPA01"
    assert vpa.tr_id == completed_request.tr_id
    assert vpa.status == VPAStatus.PENDING
    assert vpa.status_label == "Pending Validation Project Approval"
    assert vpa.requested_date == date.today()

    logs = services.vpa_logs(db_session, vpa.id)
    assert len(logs) == 1
    assert logs[0].project_details_text == "Scraper for the catalogue site"
    assert logs[0].updated_by == learner.id


def test_vpa_requires_completed_sessions(db_session, make_request):
    request = make_request(TR.IN_PROGRESS)

    with pytest.raises(ValidationError) as exc:
        _submit(db_session, request, request.learner)
    assert exc.value.message == "A validation project can only be submitted once sessions are completed"


def test_one_vpa_per_training_request(db_session, completed_request):
    _submit(db_session, completed_request, completed_request.learner)

    with pytest.raises(ValidationError):
        _submit(db_session, completed_request, completed_request.learner)


def test_submitting_for_another_learner_needs_permission(db_session, completed_request, make_user, admin):
    with pytest.raises(AuthorisationError):
        _submit(db_session, completed_request, make_user("Someone else"))

    vpa = _submit(db_session, completed_request, admin)
    assert vpa.learner_user_id == completed_request.learner_user_id


def test_approving_vpa_opens_vsr(db_session, completed_request, admin):
    vpa = _submit(db_session, completed_request, completed_request.learner)

    services.update_vpa(
        db_session, vpa.id, schemas.VPAUpdate(status=VPAStatus.APPROVED), actor_user_id=admin.id
    )

    assert vpa.assigned_to == admin.id
    vsr = (
        db_session.query(models.ValidationScheduleRequest)
        .filter(models.ValidationScheduleRequest.tr_id == vpa.tr_id)
        .one()
    )
    assert vsr.vsr_id == "VSR01"
    assert vsr.status == VSRStatus.PENDING_VALIDATION
    assert vsr.description == "<p>Scraper for the catalogue site</p>"
    assert vsr.learner_user_id == completed_request.learner_user_id
    assert len(services.vsr_logs(db_session, vsr.id)) == 1
    assert len(services.vpa_logs(db_session, vpa.id)) == 2


def test_rejection_reason_is_stored_as_plain_text(db_session, completed_request, admin):
    vpa = _submit(db_session, completed_request, completed_request.learner)

    services.update_vpa(
        db_session,
        vpa.id,
        schemas.VPAUpdate(status=VPAStatus.REJECTED, rejection_reason="<b>Too small</b> scope"),
        actor_user_id=admin.id,
    )

    assert vpa.rejection_reason == "Too small scope"
    assert db_session.query(models.ValidationScheduleRequest).count() == 0


def test_vpa_keeps_existing_assignee(db_session, completed_request, admin, make_user):
    reviewer = make_user("Reviewer")
    vpa = _submit(db_session, completed_request, completed_request.learner)
    services.update_vpa(db_session, vpa.id, schemas.VPAUpdate(), actor_user_id=reviewer.id)

    services.update_vpa(
        db_session, vpa.id, schemas.VPAUpdate(status=VPAStatus.REJECTED), actor_user_id=admin.id
    )

    assert vpa.assigned_to == reviewer.id


# ---------------------------------------------------------------------------
# VSR
# ---------------------------------------------------------------------------


@pytest.fixture()
def open_vsr(db_session, completed_request, admin):
    vpa = _submit(db_session, completed_request, completed_request.learner)
    services.update_vpa(
        db_session, vpa.id, schemas.VPAUpdate(status=VPAStatus.APPROVED), actor_user_id=admin.id
    )
    vsr = (
        db_session.query(models.ValidationScheduleRequest)
        .filter(models.ValidationScheduleRequest.tr_id == vpa.tr_id)
        .one()
    )
    return vpa, vsr


def test_failing_vsr_sends_vpa_back_for_resubmission(db_session, open_vsr, admin):
    vpa, vsr = open_vsr

    services.update_vsr(
        db_session, vsr.id, schemas.VSRUpdate(status=VSRStatus.FAIL), actor_user_id=admin.id
    )

    assert vsr.status == VSRStatus.FAIL
    assert vpa.status == VPAStatus.RESUBMIT
    assert vpa.status_label == "Resubmit for Re-validation"
    statuses = sorted(log.status for log in services.vpa_logs(db_session, vpa.id))
    assert statuses == [VPAStatus.PENDING, VPAStatus.APPROVED, VPAStatus.RESUBMIT]


def test_reapproval_reopens_same_vsr(db_session, open_vsr, admin):
    vpa, vsr = open_vsr
    services.update_vsr(db_session, vsr.id, schemas.VSRUpdate(status=VSRStatus.FAIL), actor_user_id=admin.id)

    services.update_vpa(
        db_session, vpa.id, schemas.VPAUpdate(status=VPAStatus.APPROVED), actor_user_id=admin.id
    )

    assert db_session.query(models.ValidationScheduleRequest).count() == 1
    assert vsr.status == VSRStatus.PENDING_VALIDATION


def test_vsr_schedule_and_validators(db_session, open_vsr, admin, make_user):
    _, vsr = open_vsr
    ops = make_user("Ops Validator")

    services.update_vsr(
        db_session,
        vsr.id,
        schemas.VSRUpdate(
            status=VSRStatus.SCHEDULED,
            scheduled_date=date(2026, 11, 2),
            validator_ops=ops.id,
            validator_trainer="",
        ),
        actor_user_id=admin.id,
    )

    assert vsr.status_label == "Validation Scheduled"
    assert vsr.scheduled_date == date(2026, 11, 2)
    assert vsr.validator_ops == ops.id
    assert vsr.validator_trainer is None
    assert vsr.assigned_to == admin.id


def test_vsr_rejects_unknown_validator(db_session, open_vsr, admin):
    _, vsr = open_vsr

    with pytest.raises(NotFoundError):
        services.update_vsr(
            db_session, vsr.id, schemas.VSRUpdate(validator_ops="missing"), actor_user_id=admin.id
        )


def test_deleting_vsr_keeps_its_logs(db_session, open_vsr, admin):
    _, vsr = open_vsr
    vsr_id = vsr.vsr_id

    summary = services.delete_vsr(db_session, vsr.id)

    assert summary["vsr_id"] == vsr_id
    assert db_session.query(models.ValidationScheduleRequest).count() == 0
    remaining = (
        db_session.query(models.ValidationScheduleRequestLog)
        .filter(models.ValidationScheduleRequestLog.vsr_id == vsr_id)
        .count()
    )
    assert remaining == 1


def test_list_vsrs_filters_by_status(db_session, open_vsr):
    _, vsr = open_vsr

    items, total, _, _ = services.list_vsrs(db_session, status=VSRStatus.PENDING_VALIDATION)
    assert [item.id for item in items] == [vsr.id]
    assert total == 1

    _, total, _, _ = services.list_vsrs(db_session, status=VSRStatus.PASS)
    assert total == 0


# ---------------------------------------------------------------------------
# ROUTES
# ---------------------------------------------------------------------------


def test_validation_routes_are_registered():
    def _has(r, method, path):
        return any(route.path == path and method in (route.methods or []) for route in r.routes)

    assert _has(router.vpa_router, "POST", "/validation-project-approvals")
    assert _has(router.vpa_router, "GET", "/validation-project-approvals/{vpa_pk}/logs")
    assert _has(router.vsr_router, "PATCH", "/validation-schedule-requests/{vsr_pk}")
    assert _has(router.vsr_router, "DELETE", "/validation-schedule-requests/{vsr_pk}")


def test_status_routes_list_labels(admin):
    vpa_options = router.list_vpa_statuses(current_user=admin)
    vsr_options = router.list_vsr_statuses(current_user=admin)

    assert [o["label"] for o in vpa_options][1] == "Approved"
    assert [o["code"] for o in vsr_options] == [0, 1, 2, 3, 4]
    assert vsr_options[4]["badge"] == "success"
