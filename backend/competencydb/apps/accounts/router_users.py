# backend/competencydb/apps/accounts/router_users.py

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...database import get_db, transaction
from ...errors import ValidationError
from ...security import get_current_active_user, require_permission
from ...utils.pagination import normalize_pagination
from ..audit import services as audit_services
from . import models, schemas, services

router = APIRouter(prefix="/users", tags=["users"])

MODULE = models.PermissionModule.USERS


@router.get("/me", response_model=schemas.UserRead)
def read_current_user(
    current_user: models.User = Depends(get_current_active_user),
):
    return current_user


@router.get("", response_model=schemas.UserPage)
def list_users(
    page: int = 1,
    page_size: int = Query(50, alias="pageSize"),
    status_filter: Optional[models.UserStatus] = Query(None, alias="status"),
    department: Optional[models.UserDepartment] = None,
    role_id: Optional[str] = Query(None, alias="roleId"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_permission(MODULE, "list")),
):
    page, page_size, offset = normalize_pagination(page, page_size)
    items, total = services.list_users(
        db,
        status=status_filter,
        department=department,
        role_id=role_id,
        search=search,
        offset=offset,
        limit=page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("", response_model=schemas.UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_permission(MODULE, "add")),
):
    with transaction(db):
        user = services.create_user(db, payload)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="add",
        data={"createdId": user.id, "name": user.name, "email": user.email},
    )
    return user


@router.patch("/{user_id}", response_model=schemas.UserRead)
def update_user(
    user_id: str,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        user = services.update_user(db, user_id, payload)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="edit",
        data={"updatedId": user.id, "changes": payload.model_dump(exclude_unset=True, mode="json")},
    )
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_permission(MODULE, "delete")),
):
    if user_id == current_user.id:
        raise ValidationError("You cannot delete your own account")
    with transaction(db):
        user = services.delete_user(db, user_id)
        logged = {"deletedId": user.id, "name": user.name, "email": user.email}
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="delete",
        data=logged,
    )
