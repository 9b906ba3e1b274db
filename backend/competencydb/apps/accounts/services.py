# backend/competencydb/apps/accounts/services.py
"""
Service layer for users, roles and role permissions.

Functions here only flush; the router owns the unit of work
(`database.transaction`) and the best-effort activity log entry.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...errors import AuthorisationError, NotFoundError, ValidationError
from . import models, schemas

logger = logging.getLogger(__name__)

NO_MODULE_ACCESS = "You do not have permission to access this area"
ACTION_DENIED = "You do not have sufficient permissions for this action"


# ---------------------------------------------------------------------------
# PERMISSIONS
# ---------------------------------------------------------------------------


def get_user_permissions(db: Session, user_id: str) -> Dict[models.PermissionModule, models.RolePermission]:
    user = db.get(models.User, user_id)
    if user is None or not user.role_id:
        return {}

    rows = (
        db.query(models.RolePermission)
        .filter(models.RolePermission.role_id == user.role_id)
        .all()
    )
    return {row.module: row for row in rows}


def ensure_permission(
    db: Session,
    user_id: str,
    module: models.PermissionModule | str,
    action: models.PermissionAction | str,
) -> None:
    """
    Raise AuthorisationError unless the user's role grants `action` on `module`.
    """
    module = models.PermissionModule(module)
    action = models.PermissionAction(action)

    row = get_user_permissions(db, user_id).get(module)
    if row is None:
        raise AuthorisationError(NO_MODULE_ACCESS, module=module.value, action=action.value)
    if not row.allows(action):
        raise AuthorisationError(ACTION_DENIED, module=module.value, action=action.value)


# ---------------------------------------------------------------------------
# ROLES
# ---------------------------------------------------------------------------


def list_roles(db: Session) -> List[models.Role]:
    return (
        db.query(models.Role)
        .options(selectinload(models.Role.permissions))
        .order_by(models.Role.role_name.asc())
        .all()
    )


def get_role(db: Session, role_id: str) -> models.Role:
    role = db.get(models.Role, role_id)
    if role is None:
        raise NotFoundError("Role not found")
    return role


def _ensure_role_name_free(db: Session, role_name: str, *, exclude_id: Optional[str] = None) -> None:
    q = db.query(models.Role).filter(func.lower(models.Role.role_name) == role_name.lower())
    if exclude_id:
        q = q.filter(models.Role.id != exclude_id)
    if q.first() is not None:
        raise ValidationError("A role with this name already exists")


def _permission_rows(payload: schemas.RoleWrite) -> List[models.RolePermission]:
    seen = set()
    rows = []
    for perm in payload.permissions:
        if perm.module in seen:
            raise ValidationError(f"Duplicate permission entry for module '{perm.module.value}'")
        seen.add(perm.module)
        rows.append(
            models.RolePermission(
                module=perm.module,
                can_list=perm.can_list,
                can_add=perm.can_add,
                can_edit=perm.can_edit,
                can_delete=perm.can_delete,
            )
        )
    return rows


def create_role(db: Session, payload: schemas.RoleWrite) -> models.Role:
    role_name = payload.role_name.strip()
    if len(role_name) < 2:
        raise ValidationError("Role name must contain at least 2 characters")
    _ensure_role_name_free(db, role_name)

    role = models.Role(role_name=role_name)
    role.permissions = _permission_rows(payload)
    db.add(role)
    db.flush()
    return role


def update_role(db: Session, role_id: str, payload: schemas.RoleWrite) -> models.Role:
    """
    Rename the role and replace its permission rows wholesale.
    """
    role = get_role(db, role_id)
    role_name = payload.role_name.strip()
    if len(role_name) < 2:
        raise ValidationError("Role name must contain at least 2 characters")
    _ensure_role_name_free(db, role_name, exclude_id=role.id)

    role.role_name = role_name
    role.permissions.clear()
    # Old rows must be gone before the unique (role, module) rows go back in.
    db.flush()
    role.permissions.extend(_permission_rows(payload))
    db.flush()
    return role


def delete_role(db: Session, role_id: str) -> models.Role:
    """
    Delete a role; its permissions go with it and users lose the role.
    """
    role = get_role(db, role_id)
    for user in list(role.users):
        user.role_id = None
    db.delete(role)
    db.flush()
    return role


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


def get_user(db: Session, user_id: str) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users(
    db: Session,
    *,
    status: Optional[models.UserStatus] = None,
    department: Optional[models.UserDepartment] = None,
    role_id: Optional[str] = None,
    search: Optional[str] = None,
    offset: int = 0,
    limit: int = 50,
) -> Tuple[List[models.User], int]:
    q = db.query(models.User)
    if status is not None:
        q = q.filter(models.User.status == status)
    if department is not None:
        q = q.filter(models.User.department == department)
    if role_id:
        q = q.filter(models.User.role_id == role_id)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(models.User.name.ilike(pattern), models.User.email.ilike(pattern)))

    total = q.count()
    items = q.order_by(models.User.name.asc()).offset(offset).limit(limit).all()
    return items, total


def _ensure_email_free(db: Session, email: str, *, exclude_id: Optional[str] = None) -> None:
    q = db.query(models.User).filter(func.lower(models.User.email) == email.lower())
    if exclude_id:
        q = q.filter(models.User.id != exclude_id)
    if q.first() is not None:
        raise ValidationError("A user with this email already exists")


def _ensure_role_exists(db: Session, role_id: Optional[str]) -> None:
    if role_id and db.get(models.Role, role_id) is None:
        raise ValidationError("Selected role does not exist")


def create_user(db: Session, payload: schemas.UserCreate) -> models.User:
    email = str(payload.email).strip().lower()
    _ensure_email_free(db, email)
    _ensure_role_exists(db, payload.role_id)

    user = models.User(
        name=payload.name.strip(),
        email=email,
        status=payload.status,
        department=payload.department,
        role_id=payload.role_id or None,
        google_calendar_tag=payload.google_calendar_tag,
    )
    db.add(user)
    db.flush()
    return user


def update_user(db: Session, user_id: str, payload: schemas.UserUpdate) -> models.User:
    user = get_user(db, user_id)
    data = payload.model_dump(exclude_unset=True)

    if "email" in data and data["email"] is not None:
        data["email"] = str(data["email"]).strip().lower()
        _ensure_email_free(db, data["email"], exclude_id=user.id)
    if "role_id" in data:
        data["role_id"] = data["role_id"] or None
        _ensure_role_exists(db, data["role_id"])
    if "name" in data and data["name"] is not None:
        data["name"] = data["name"].strip()

    for field, value in data.items():
        if value is None and field in {"name", "email", "status", "department"}:
            continue
        setattr(user, field, value)

    db.flush()
    return user


def delete_user(db: Session, user_id: str) -> models.User:
    user = get_user(db, user_id)
    db.delete(user)
    db.flush()
    return user
