# backend/competencydb/errors.py
"""
Domain error taxonomy.

Services raise these; `main.py` maps each class to an HTTP status and a
`{"error": message}` body. Routers never build error JSON by hand.
"""

from __future__ import annotations

from typing import Optional

from fastapi import status


class DomainError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(DomainError):
    """No valid session/bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorisationError(DomainError):
    """Valid session, but the role lacks the module/action capability."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str,
        *,
        module: Optional[str] = None,
        action: Optional[str] = None,
    ):
        super().__init__(message)
        self.module = module
        self.action = action


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class SequenceViolation(ValidationError):
    """Attendance marked for a session whose prerequisites are not attended."""

    def __init__(self, *, session_number: int, required_session_number: int):
        super().__init__(
            f"Cannot mark attendance for Session {session_number}. "
            f"Learner must attend Session {required_session_number} first."
        )
        self.session_number = session_number
        self.required_session_number = required_session_number


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
