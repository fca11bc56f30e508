"""Auth flows: register, login, refresh, logout, email verification, password reset.

Each flow runs as one transaction against the credential store. Verification
emails are handed to ``notify`` only after that transaction has committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.db.database import transaction, utcnow
from app.models.principal_models import PrincipalType
from app.models.verification_code_models import VerificationCode, VerificationPurpose
from app.schemas.backend_schemas.auth_schemas import (
    LoginSchema,
    PasswordResetRequestSchema,
    RegisterSchema,
)
from app.services.errors import (
    AccountSuspended,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    InvalidCredentials,
    NotFoundError,
    ReuseDetected,
)
from app.services.mail_service import CodeNotification
from app.services.principal_service import PrincipalRepository
from app.services.session_service import RotationStatus, SessionManager
from app.services.token_service import IssuedToken, TokenKind, TokenService
from app.services.verification_code_service import VerificationCodeIssuer
from app.utils.hashing import get_password_hash, password_fingerprint, verify_password

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid Code"
CODE_SENT_MESSAGE = "A verification code has been sent to your email"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh: IssuedToken


@dataclass(frozen=True)
class CodeCheck:
    """Outcome of a soft-failing code verification."""

    ok: bool
    message: str
    reset_token: Optional[str] = None

    @classmethod
    def invalid(cls) -> "CodeCheck":
        return cls(ok=False, message=INVALID_CODE_MESSAGE)


class AuthService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        tokens: TokenService,
        notify: Callable[[CodeNotification], object],
    ) -> None:
        self.db = db
        self.settings = settings
        self.tokens = tokens
        self.notify = notify
        self.principals = PrincipalRepository(db)
        self.sessions = SessionManager(db, tokens)
        self.codes = VerificationCodeIssuer(
            db, ttl=timedelta(hours=settings.VERIFICATION_CODE_TTL_HOURS)
        )

    def _transaction(self):
        return transaction(self.db, timeout_ms=self.settings.TRANSACTION_TIMEOUT_MS)

    def _notification(self, principal, row: VerificationCode) -> CodeNotification:
        return CodeNotification(
            email=principal.email, purpose=row.purpose, code=row.code, token=row.token
        )

    def _start_session(self, principal, device: str) -> TokenPair:
        access_token = self.tokens.issue_access_token(principal.email, principal.principal_type)
        refresh = self.tokens.issue_refresh_token(principal.email, principal.principal_type)
        self.sessions.record_session(principal, refresh, device)
        return TokenPair(access_token=access_token, refresh=refresh)

    # -------------------------
    # REGISTER / LOGIN
    # -------------------------
    def register(self, payload: RegisterSchema, device: str) -> TokenPair:
        """Self-service registration always creates an admin."""
        # Hashing is the slow step; keep it outside the transaction.
        password_hash = get_password_hash(payload.password)

        try:
            with self._transaction():
                if self.principals.find_email_owner(payload.email) is not None:
                    raise ConflictError()

                admin = self.principals.create(
                    PrincipalType.admin,
                    name=payload.name,
                    email=payload.email,
                    password_hash=password_hash,
                    school=payload.school,
                )
                row = self.codes.issue(admin, VerificationPurpose.EMAIL_VERIFY)
                notification = self._notification(admin, row)
                pair = self._start_session(admin, device)
        except IntegrityError:
            # lost a race with a concurrent registration for the same email
            raise ConflictError()

        logger.info("Registered admin %s", admin.id)
        self.notify(notification)
        return pair

    def login(self, payload: LoginSchema, device: str) -> TokenPair:
        with self._transaction():
            principal = self.principals.get_by_email(payload.role, payload.email)
            password_ok = verify_password(
                payload.password, principal.password if principal else None
            )
            if principal is None or not password_ok:
                logger.info("Failed login for role=%s", payload.role.value)
                raise InvalidCredentials()

            if principal.is_suspended:
                logger.info("Suspended %s %s attempted login", principal.role, principal.id)
                raise AccountSuspended()

            self.sessions.purge_expired(principal)
            pair = self._start_session(principal, device)

        return pair

    # -------------------------
    # REFRESH / LOGOUT
    # -------------------------
    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise AuthenticationError()

        with self._transaction():
            result = self.sessions.rotate(refresh_token)

        # Reuse revocations are committed above before the request fails.
        if result.status is RotationStatus.reused:
            raise ReuseDetected()
        if result.status is RotationStatus.unknown_principal:
            raise AuthenticationError()
        if not result.ok:
            raise ForbiddenError()
        return TokenPair(access_token=result.access_token, refresh=result.refresh)

    def logout(self, refresh_token: Optional[str]) -> int:
        if not refresh_token:
            raise AuthenticationError()
        with self._transaction():
            return self.sessions.revoke_one(refresh_token)

    def logout_all(self, principal) -> int:
        with self._transaction():
            return self.sessions.revoke_all(principal.id, principal.principal_type)

    def list_sessions(self, principal):
        return self.sessions.list_sessions(principal)

    # -------------------------
    # EMAIL VERIFICATION
    # -------------------------
    def resend_verification(self, principal) -> str:
        if principal.email_verified_at:
            return "Your email is already verified"

        with self._transaction():
            self.codes.delete_for(
                principal.id, principal.principal_type, VerificationPurpose.EMAIL_VERIFY
            )
            row = self.codes.issue(principal, VerificationPurpose.EMAIL_VERIFY)
            notification = self._notification(principal, row)

        self.notify(notification)
        return "A new verification code has been sent to your email"

    def verify_email(self, principal, token: str, code: str) -> CodeCheck:
        with self._transaction():
            row = self.codes.consume(
                token, code, VerificationPurpose.EMAIL_VERIFY, principal=principal
            )
            if row is None or not self.codes.invalidate(row):
                return CodeCheck.invalid()
            principal.email_verified_at = utcnow()

        return CodeCheck(ok=True, message="Verification successful")

    # -------------------------
    # PASSWORD RESET
    # -------------------------
    def request_password_reset(self, payload: PasswordResetRequestSchema) -> str:
        """Same answer whether or not the account exists."""
        notification = None
        with self._transaction():
            principal = self.principals.get_by_email(payload.role, payload.email)
            if principal is not None:
                self.codes.delete_for(
                    principal.id, principal.principal_type, VerificationPurpose.PASSWORD_RESET
                )
                row = self.codes.issue(principal, VerificationPurpose.PASSWORD_RESET)
                notification = self._notification(principal, row)

        if notification is not None:
            self.notify(notification)
        else:
            logger.info("Password reset requested for unknown %s account", payload.role.value)
        return CODE_SENT_MESSAGE

    def verify_reset_code(self, token: str, code: str) -> CodeCheck:
        with self._transaction():
            row = self.codes.consume(token, code, VerificationPurpose.PASSWORD_RESET)
            if row is None or not self.codes.invalidate(row):
                return CodeCheck.invalid()
            principal = self.principals.get_by_id(row.principal_type, row.principal_id)
            if principal is None:
                return CodeCheck.invalid()
            reset_token = self.tokens.issue_reset_token(
                principal.id, principal.principal_type, password_fingerprint(principal.password)
            )

        return CodeCheck(ok=True, message="Verification successful", reset_token=reset_token)

    def update_password(self, reset_token: Optional[str], new_password: str) -> None:
        identity = self.tokens.identity(reset_token, TokenKind.reset)
        if identity is None:
            raise ForbiddenError()

        password_hash = get_password_hash(new_password)

        with self._transaction():
            principal = self.principals.get_by_id(identity.role, identity.principal_id)
            if principal is None:
                raise NotFoundError()

            # A token is spent once the password it was issued against has changed.
            current_hash = principal.password
            if password_fingerprint(current_hash) != identity.password_fingerprint:
                raise ForbiddenError()
            if not self.principals.replace_password(principal, current_hash, password_hash):
                raise ForbiddenError()

            self.sessions.revoke_all(principal.id, principal.principal_type)
            self.codes.delete_for(principal.id, principal.principal_type)

        logger.info("Password updated for %s %s", principal.role, principal.id)
