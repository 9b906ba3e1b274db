# backend/competencydb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class UserDepartment(str, enum.Enum):
    CURATOR = "curator"
    SCRAPING = "scraping"


class PermissionModule(str, enum.Enum):
    """
    Areas of the admin tool that a role can be granted access to.
    """

    ROLES = "roles"
    USERS = "users"
    ACTIVITY_LOG = "activity_log"
    COMPETENCIES = "competencies"
    TRAINING_BATCH = "training_batch"
    TRAINING_REQUEST = "training_request"
    VALIDATION_PROJECT_APPROVAL = "validation_project_approval"
    VALIDATION_SCHEDULE_REQUEST = "validation_schedule_request"


class PermissionAction(str, enum.Enum):
    LIST = "list"
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"


# ---------------------------------------------------------------------------
# ROLES
# ---------------------------------------------------------------------------


class Role(Base):
    __tablename__ = "roles_list"
    __table_args__ = (
        UniqueConstraint("role_name", name="uq_roles_list_role_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    role_name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        order_by="RolePermission.module",
    )
    users = relationship("User", back_populates="role")

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.role_name}>"


class RolePermission(Base):
    """
    One row per (role, module): list/add/edit/delete flags.

    A role with no row for a module cannot reach that module at all.
    """

    __tablename__ = "roles_permission"
    __table_args__ = (
        UniqueConstraint("role_id", "module", name="uq_roles_permission_role_module"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    role_id = Column(
        String(36),
        ForeignKey("roles_list.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    module = Column(
        Enum(PermissionModule, name="permission_module_enum", native_enum=False),
        nullable=False,
    )
    can_list = Column(Boolean, nullable=False, default=False)
    can_add = Column(Boolean, nullable=False, default=False)
    can_edit = Column(Boolean, nullable=False, default=False)
    can_delete = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    role = relationship("Role", back_populates="permissions")

    def allows(self, action: PermissionAction) -> bool:
        return bool(getattr(self, f"can_{PermissionAction(action).value}"))


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class User(Base):
    """
    Staff account known to the tracker.

    Credentials live with the external auth provider; this row only carries
    profile, department and the role used for permission checks.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_status", "status"),
        Index("ix_users_department", "department"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    email_verified = Column(Boolean, nullable=False, default=False)
    image = Column(String(1024), nullable=True)
    status = Column(
        Enum(UserStatus, name="user_status_enum", native_enum=False),
        nullable=False,
        default=UserStatus.ACTIVE,
    )
    department = Column(
        Enum(UserDepartment, name="user_department_enum", native_enum=False),
        nullable=False,
    )
    google_calendar_tag = Column(String(255), nullable=True)
    role_id = Column(
        String(36),
        ForeignKey("roles_list.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    role = relationship("Role", back_populates="users")

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
