# backend/competencydb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel

from .models import PermissionModule, UserDepartment, UserStatus


class CamelModel(BaseModel):
    """
    Base for API payloads: snake_case in Python, camelCase on the wire.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ---------------------------------------------------------------------------
# ROLES
# ---------------------------------------------------------------------------


class RolePermissionBase(CamelModel):
    module: PermissionModule
    can_list: bool = False
    can_add: bool = False
    can_edit: bool = False
    can_delete: bool = False


class RolePermissionRead(RolePermissionBase):
    id: str
    role_id: str


class RoleWrite(CamelModel):
    role_name: str = Field(..., min_length=2, max_length=255)
    permissions: List[RolePermissionBase] = Field(default_factory=list)


class RoleRead(CamelModel):
    id: str
    role_name: str
    permissions: List[RolePermissionRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class UserBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    status: UserStatus = UserStatus.ACTIVE
    department: UserDepartment
    role_id: Optional[str] = None
    google_calendar_tag: Optional[str] = None


class UserCreate(UserBase):
    pass


class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    status: Optional[UserStatus] = None
    department: Optional[UserDepartment] = None
    role_id: Optional[str] = None
    google_calendar_tag: Optional[str] = None


class UserRead(UserBase):
    id: str
    email: str
    email_verified: bool
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserPage(CamelModel):
    items: List[UserRead]
    total: int
    page: int
    page_size: int
