"""Auth error taxonomy.

Every error is an ``HTTPException`` so it propagates through FastAPI with its
status code and a deliberately generic ``detail``. Token failures of any kind
(bad signature, expired, malformed, replayed) all surface as the same
``Forbidden`` body.
"""

from fastapi import HTTPException, status


class AuthError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Bad request"

    def __init__(self, detail: str | None = None, headers: dict | None = None) -> None:
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class AuthenticationError(AuthError):
    """Missing or unusable credentials (401)."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


class InvalidCredentials(AuthenticationError):
    """Unknown principal or wrong password; never says which."""

    default_detail = "Invalid email or password"


class ForbiddenError(AuthError):
    """Token rejected (403)."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class ReuseDetected(ForbiddenError):
    """A rotated-out refresh token was replayed.

    Indistinguishable from ForbiddenError on the wire.
    """


class AccountSuspended(ForbiddenError):
    default_detail = "Your account is suspended"


class NotFoundError(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "User not found"


class ConflictError(AuthError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Email already registered"


__all__ = [
    "AuthError",
    "AuthenticationError",
    "InvalidCredentials",
    "ForbiddenError",
    "ReuseDetected",
    "AccountSuspended",
    "NotFoundError",
    "ConflictError",
]
