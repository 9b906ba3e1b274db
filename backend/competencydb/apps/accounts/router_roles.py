# backend/competencydb/apps/accounts/router_roles.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...database import get_db, transaction
from ...security import require_permission
from ..audit import services as audit_services
from . import models, schemas, services

router = APIRouter(prefix="/roles", tags=["roles"])

MODULE = models.PermissionModule.ROLES


def _permissions_payload(payload: schemas.RoleWrite) -> list:
    return [perm.model_dump(by_alias=True, mode="json") for perm in payload.permissions]


@router.get("", response_model=List[schemas.RoleRead])
def list_roles(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_permission(MODULE, "list")),
):
    return services.list_roles(db)


@router.post("", response_model=schemas.RoleRead, status_code=status.HTTP_201_CREATED)
def create_role(
    payload: schemas.RoleWrite,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_permission(MODULE, "add")),
):
    with transaction(db):
        role = services.create_role(db, payload)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="add",
        data={
            "createdId": role.id,
            "roleName": role.role_name,
            "permissions": _permissions_payload(payload),
        },
    )
    return role


@router.put("/{role_id}", response_model=schemas.RoleRead)
def update_role(
    role_id: str,
    payload: schemas.RoleWrite,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_permission(MODULE, "edit")),
):
    with transaction(db):
        role = services.update_role(db, role_id, payload)
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="edit",
        data={
            "updatedId": role.id,
            "roleName": role.role_name,
            "permissions": _permissions_payload(payload),
        },
    )
    return role


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    role_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_permission(MODULE, "delete")),
):
    with transaction(db):
        role = services.delete_role(db, role_id)
        logged = {"deletedId": role.id, "roleName": role.role_name}
    audit_services.log_activity(
        db,
        user_id=current_user.id,
        module=MODULE,
        action="delete",
        data=logged,
    )
