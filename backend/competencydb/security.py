# backend/competencydb/security.py

"""
Security helpers for the competency tracker.

Responsibilities:
- JWT access token creation and decoding (tokens are issued by the
  external auth provider; `create_access_token` exists for tooling/tests)
- FastAPI dependencies for the current user
- Per-module permission checks for router dependencies

Password storage is not handled here: credentials live with the auth
provider, the tracker only sees the signed bearer token.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from .errors import AuthenticationError
from .apps.accounts import models as account_models
from .apps.accounts import services as account_services

# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
    )
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 60

# Used by FastAPI's OpenAPI docs; points at the auth provider's token endpoint.
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=os.getenv("AUTH_TOKEN_URL", "/auth/token"),
    auto_error=False,
)


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------


def create_access_token(
    *,
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT.

    The `data` dict should already include the subject, e.g.:
        {"sub": user.id}
    """
    to_encode = data.copy()

    expire = datetime.utcnow() + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_subject(token: Optional[str]) -> str:
    """
    Return the `sub` claim of a valid token or raise AuthenticationError.
    """
    if not token:
        raise AuthenticationError()
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError()

    user_id: Optional[Union[str, int]] = payload.get("sub")
    if user_id is None:
        raise AuthenticationError()
    return str(user_id).strip()


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> account_models.User:
    """
    Decode the bearer token and return the corresponding User.
    """
    user = db.get(account_models.User, decode_subject(token))
    if user is None:
        raise AuthenticationError()
    return user


def get_current_active_user(
    current_user: account_models.User = Depends(get_current_user),
) -> account_models.User:
    """
    Deactivated users are blocked here rather than deeper in the app.
    """
    if not current_user.is_active:
        raise AuthenticationError("Inactive user account")
    return current_user


# ---------------------------------------------------------------------------
# PERMISSION HELPER
# ---------------------------------------------------------------------------


def require_permission(
    module: Union[account_models.PermissionModule, str],
    action: Union[account_models.PermissionAction, str],
) -> Callable[..., account_models.User]:
    """
    Dependency factory enforcing a (module, action) capability.

    Usage:
        @router.post(...)
        def endpoint(
            current_user: User = Depends(require_permission("training_batch", "add"))
        ):
            ...
    """
    module_key = account_models.PermissionModule(module)
    action_key = account_models.PermissionAction(action)

    def dependency(
        current_user: account_models.User = Depends(get_current_active_user),
        db: Session = Depends(get_db),
    ) -> account_models.User:
        account_services.ensure_permission(db, current_user.id, module_key, action_key)
        return current_user

    return dependency
