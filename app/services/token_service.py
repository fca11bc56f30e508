from __future__ import annotations

import enum
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import jwt
from jwt.exceptions import InvalidTokenError

from app.core.config import Settings
from app.models.principal_models import PrincipalType

logger = logging.getLogger(__name__)


class TokenKind(str, enum.Enum):
    access = "access"
    refresh = "refresh"
    reset = "reset"


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    refresh_secret: str
    reset_secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(days=1)
    rotated_access_ttl: timedelta = timedelta(minutes=2)
    refresh_ttl: timedelta = timedelta(days=7)
    reset_ttl: timedelta = timedelta(minutes=4)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            access_secret=settings.ACCESS_TOKEN_SECRET,
            refresh_secret=settings.REFRESH_TOKEN_SECRET,
            reset_secret=settings.RESET_TOKEN_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES),
            rotated_access_ttl=timedelta(minutes=settings.ROTATED_ACCESS_TOKEN_TTL_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_TTL_DAYS),
            reset_ttl=timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
        )


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: int  # epoch seconds


@dataclass(frozen=True)
class Identity:
    """Who a verified token claims to be."""

    role: PrincipalType
    email: str | None = None
    principal_id: str | None = None
    password_fingerprint: str | None = None


class TokenService:
    """Stateless signing and verification of access, refresh and reset tokens."""

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    def _secret(self, kind: TokenKind) -> str:
        if kind is TokenKind.access:
            return self.config.access_secret
        if kind is TokenKind.refresh:
            return self.config.refresh_secret
        return self.config.reset_secret

    def _sign(self, kind: TokenKind, claims: dict[str, Any], ttl: timedelta) -> IssuedToken:
        now = int(time.time())
        expires_at = now + int(ttl.total_seconds())
        payload = {
            **claims,
            "type": kind.value,
            "iat": now,
            "exp": expires_at,
            # keeps two tokens minted in the same second distinct
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self._secret(kind), algorithm=self.config.algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def issue_access_token(self, email: str, role: PrincipalType, *, rotated: bool = False) -> str:
        ttl = self.config.rotated_access_ttl if rotated else self.config.access_ttl
        return self._sign(TokenKind.access, {"email": email, "role": role.value}, ttl).token

    def issue_refresh_token(self, email: str, role: PrincipalType) -> IssuedToken:
        return self._sign(
            TokenKind.refresh, {"email": email, "role": role.value}, self.config.refresh_ttl
        )

    def issue_reset_token(
        self, principal_id: str, role: PrincipalType, password_fingerprint: str
    ) -> str:
        # "pwf" ties the token to the password it replaces, so it works once.
        claims = {"id": principal_id, "role": role.value, "pwf": password_fingerprint}
        return self._sign(TokenKind.reset, claims, self.config.reset_ttl).token

    def verify(self, token: str | None, kind: TokenKind) -> dict[str, Any] | None:
        """Return the decoded payload, or None for any signature/expiry/shape failure."""
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret(kind),
                algorithms=[self.config.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except InvalidTokenError as exc:
            logger.debug("Rejected %s token: %s", kind.value, type(exc).__name__)
            return None
        if payload.get("type") != kind.value:
            return None
        return payload

    def identity(self, token: str | None, kind: TokenKind) -> Identity | None:
        """Verify ``token`` and extract the principal it names."""
        payload = self.verify(token, kind)
        if payload is None:
            return None
        try:
            role = PrincipalType(payload.get("role"))
        except ValueError:
            return None
        if kind is TokenKind.reset:
            principal_id = payload.get("id")
            fingerprint = payload.get("pwf")
            if not isinstance(principal_id, str) or not principal_id:
                return None
            if not isinstance(fingerprint, str) or not fingerprint:
                return None
            return Identity(
                role=role, principal_id=principal_id, password_fingerprint=fingerprint
            )
        email = payload.get("email")
        if not isinstance(email, str) or not email:
            return None
        return Identity(role=role, email=email)
