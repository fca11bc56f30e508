from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.models.principal_models import PrincipalType
from app.models.refresh_session_models import RefreshSession
from app.services.principal_service import PrincipalRepository
from app.services.token_service import IssuedToken, TokenKind, TokenService

logger = logging.getLogger(__name__)


class RotationStatus(str, enum.Enum):
    rotated = "rotated"
    reused = "reused"
    invalid = "invalid"
    unknown_principal = "unknown_principal"


@dataclass(frozen=True)
class RotationResult:
    status: RotationStatus
    access_token: str | None = None
    refresh: IssuedToken | None = None

    @property
    def ok(self) -> bool:
        return self.status is RotationStatus.rotated


class SessionManager:
    """Refresh-session rows: one per login/device, rotated in place on refresh.

    Nothing here commits; callers run each operation inside ``transaction()``.
    """

    def __init__(self, db: Session, tokens: TokenService) -> None:
        self.db = db
        self.tokens = tokens
        self.principals = PrincipalRepository(db)

    def record_session(self, principal, refresh: IssuedToken, device_label: str) -> RefreshSession:
        row = RefreshSession(
            principal_id=principal.id,
            principal_type=principal.principal_type,
            refresh_token=refresh.token,
            expires_at=refresh.expires_at,
            device_label=device_label or "unknown",
        )
        self.db.add(row)
        self.db.flush()
        return row

    def list_sessions(self, principal) -> list[RefreshSession]:
        return (
            self.db.query(RefreshSession)
            .filter(
                RefreshSession.principal_type == principal.principal_type,
                RefreshSession.principal_id == principal.id,
                RefreshSession.expires_at > int(time.time()),
            )
            .order_by(RefreshSession.created_at.desc())
            .all()
        )

    def revoke_one(self, refresh_token: str) -> int:
        return (
            self.db.query(RefreshSession)
            .filter(RefreshSession.refresh_token == refresh_token)
            .delete(synchronize_session=False)
        )

    def revoke_all(self, principal_id: str, principal_type: PrincipalType) -> int:
        deleted = (
            self.db.query(RefreshSession)
            .filter(
                RefreshSession.principal_type == principal_type,
                RefreshSession.principal_id == principal_id,
            )
            .delete(synchronize_session=False)
        )
        logger.info(
            "Revoked %d session(s) for %s %s", deleted, PrincipalType(principal_type).value, principal_id
        )
        return deleted

    def purge_expired(self, principal) -> int:
        return (
            self.db.query(RefreshSession)
            .filter(
                RefreshSession.principal_type == principal.principal_type,
                RefreshSession.principal_id == principal.id,
                RefreshSession.expires_at <= int(time.time()),
            )
            .delete(synchronize_session=False)
        )

    def rotate(self, old_refresh_token: str) -> RotationResult:
        """Exchange a stored refresh token for a fresh access/refresh pair.

        A token that verifies but matches no row has already been rotated out
        (or revoked); its owner loses every session.
        """
        rows = (
            self.db.query(RefreshSession)
            .filter(RefreshSession.refresh_token == old_refresh_token)
            .all()
        )
        if not rows:
            return self._handle_reuse(old_refresh_token)

        identity = self.tokens.identity(old_refresh_token, TokenKind.refresh)
        if identity is None:
            return RotationResult(RotationStatus.invalid)

        if any(row.expires_at <= int(time.time()) for row in rows):
            return RotationResult(RotationStatus.invalid)

        principal = self.principals.get_by_email(identity.role, identity.email)
        if principal is None:
            return RotationResult(RotationStatus.unknown_principal)
        if any(
            row.principal_id != principal.id or row.principal_type != principal.principal_type
            for row in rows
        ):
            return RotationResult(RotationStatus.invalid)
        if principal.is_suspended:
            return RotationResult(RotationStatus.invalid)

        access_token = self.tokens.issue_access_token(
            principal.email, principal.principal_type, rotated=True
        )
        refresh = self.tokens.issue_refresh_token(principal.email, principal.principal_type)

        # Compare-and-swap on the old value: of two concurrent refreshes with
        # the same token only one can match here.
        updated = (
            self.db.query(RefreshSession)
            .filter(RefreshSession.refresh_token == old_refresh_token)
            .update(
                {
                    RefreshSession.refresh_token: refresh.token,
                    RefreshSession.expires_at: refresh.expires_at,
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            logger.warning(
                "Concurrent refresh lost the race for %s %s",
                principal.principal_type.value,
                principal.id,
            )
            self.revoke_all(principal.id, principal.principal_type)
            return RotationResult(RotationStatus.reused)

        return RotationResult(RotationStatus.rotated, access_token=access_token, refresh=refresh)

    def _handle_reuse(self, presented_token: str) -> RotationResult:
        identity = self.tokens.identity(presented_token, TokenKind.refresh)
        if identity is None:
            return RotationResult(RotationStatus.invalid)

        principal = self.principals.get_by_email(identity.role, identity.email)
        if principal is not None:
            logger.warning(
                "Refresh token reuse detected for %s %s; revoking all sessions",
                principal.principal_type.value,
                principal.id,
            )
            self.revoke_all(principal.id, principal.principal_type)
        return RotationResult(RotationStatus.reused)
