# backend/create_initial_admin.py

import os

from sqlalchemy.orm import Session

from competencydb.database import SessionLocal
from competencydb.apps.accounts import models

ADMIN_ROLE_NAME = "Administrator"


def ensure_admin(db: Session, *, email: str, name: str) -> models.User:
    """
    Make sure an Administrator role with every permission exists and that
    `email` belongs to an active user holding it. Safe to run repeatedly.
    """
    role = db.query(models.Role).filter(models.Role.role_name == ADMIN_ROLE_NAME).first()
    if role is None:
        role = models.Role(role_name=ADMIN_ROLE_NAME)
        db.add(role)

    granted = {perm.module for perm in role.permissions}
    for module in models.PermissionModule:
        if module in granted:
            continue
        role.permissions.append(
            models.RolePermission(
                module=module,
                can_list=True,
                can_add=True,
                can_edit=True,
                can_delete=True,
            )
        )

    email = email.strip().lower()
    user = db.query(models.User).filter(models.User.email == email).first()
    if user is None:
        user = models.User(
            name=name,
            email=email,
            department=models.UserDepartment.CURATOR,
        )
        db.add(user)
    user.role = role
    user.status = models.UserStatus.ACTIVE

    db.commit()
    return user


def main() -> None:
    db = SessionLocal()
    try:
        email = os.getenv("ADMIN_EMAIL", "admin@competency.local")
        name = os.getenv("ADMIN_NAME", "Administrator")
        user = ensure_admin(db, email=email, name=name)

        print("[OK] Admin user ready:")
        print(f"  id:    {user.id}")
        print(f"  email: {user.email}")
        print(f"  role:  {ADMIN_ROLE_NAME}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
