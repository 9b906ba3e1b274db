from __future__ import annotations

import pytest

from competencydb.apps.accounts import models, router_roles, router_users, schemas, services
from competencydb.errors import ValidationError


def test_create_user_normalises_email(db_session):
    user = services.create_user(
        db_session,
        schemas.UserCreate(name="  Maya  ", email="Maya@Example.com", department="curator"),
    )

    assert user.name == "Maya"
    assert user.email == "maya@example.com"
    assert user.status == models.UserStatus.ACTIVE
    assert user.department == models.UserDepartment.CURATOR


def test_email_must_be_unique(db_session, make_user):
    make_user(email="taken@example.com")

    with pytest.raises(ValidationError) as exc:
        services.create_user(
            db_session,
            schemas.UserCreate(name="Other", email="TAKEN@example.com", department="scraping"),
        )
    assert exc.value.message == "A user with this email already exists"


def test_create_user_with_unknown_role(db_session):
    with pytest.raises(ValidationError):
        services.create_user(
            db_session,
            schemas.UserCreate(name="X", email="x@example.com", department="scraping", role_id="nope"),
        )


def test_update_user_partial(db_session, make_user, admin_role):
    user = make_user("Before")

    services.update_user(
        db_session,
        user.id,
        schemas.UserUpdate(status="inactive", role_id=admin_role.id),
    )

    assert user.name == "Before"
    assert user.status == models.UserStatus.INACTIVE
    assert user.role_id == admin_role.id
    assert not user.is_active


def test_update_user_clears_role_with_blank(db_session, make_user, admin_role):
    user = make_user(role=admin_role)

    services.update_user(db_session, user.id, schemas.UserUpdate(role_id=""))

    assert user.role_id is None


def test_list_users_search_and_filters(db_session, make_user):
    make_user("Ana Curator", department=models.UserDepartment.CURATOR)
    make_user("Ben Scraper")
    make_user("Ana Scraper", status=models.UserStatus.INACTIVE)

    items, total = services.list_users(db_session, search="ana")
    assert total == 2

    items, total = services.list_users(
        db_session, search="ana", status=models.UserStatus.ACTIVE
    )
    assert [u.name for u in items] == ["Ana Curator"]

    items, total = services.list_users(db_session, department=models.UserDepartment.SCRAPING)
    assert sorted(u.name for u in items) == ["Ana Scraper", "Ben Scraper"]


def test_account_routes_are_registered():
    def _has(router, method, path):
        return any(route.path == path and method in (route.methods or []) for route in router.routes)

    assert _has(router_users.router, "GET", "/users/me")
    assert _has(router_users.router, "GET", "/users")
    assert _has(router_users.router, "POST", "/users")
    assert _has(router_users.router, "PATCH", "/users/{user_id}")
    assert _has(router_users.router, "DELETE", "/users/{user_id}")
    assert _has(router_roles.router, "GET", "/roles")
    assert _has(router_roles.router, "PUT", "/roles/{role_id}")
