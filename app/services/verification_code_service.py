from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from sqlalchemy.orm import Session

from app.db.database import utcnow
from app.models.principal_models import PrincipalType
from app.models.verification_code_models import VerificationCode, VerificationPurpose
from app.utils.logger import mask_secret

logger = logging.getLogger(__name__)

CODE_MIN = 10_000_000
CODE_MAX = 99_999_999


def generate_code() -> str:
    """Uniform 8-digit numeric code."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def generate_token() -> str:
    """128-bit opaque token."""
    return secrets.token_hex(16)


class VerificationCodeIssuer:
    """Persists single-use code/token pairs for email verification and password reset.

    Delivery is not done here: the caller sends the returned code once its
    transaction has committed.
    """

    def __init__(self, db: Session, ttl: timedelta = timedelta(hours=24)) -> None:
        self.db = db
        self.ttl = ttl

    def issue(self, principal, purpose: VerificationPurpose) -> VerificationCode:
        row = VerificationCode(
            principal_id=principal.id,
            principal_type=principal.principal_type,
            code=generate_code(),
            token=generate_token(),
            purpose=purpose,
            expires_at=utcnow() + self.ttl,
        )
        self.db.add(row)
        self.db.flush()
        logger.info(
            "Issued %s code for %s %s (masked=%s), expires=%s",
            purpose.value,
            principal.principal_type.value,
            principal.id,
            mask_secret(row.code),
            row.expires_at.isoformat(),
        )
        return row

    def consume(
        self,
        token: str,
        code: str,
        purpose: VerificationPurpose,
        principal=None,
    ) -> VerificationCode | None:
        """Match on token and code exactly; expired rows never match.

        The returned row is still in the store; the caller deletes it once it
        has acted on it.
        """
        query = self.db.query(VerificationCode).filter(
            VerificationCode.token == token,
            VerificationCode.code == code,
            VerificationCode.purpose == purpose,
        )
        if principal is not None:
            query = query.filter(
                VerificationCode.principal_type == principal.principal_type,
                VerificationCode.principal_id == principal.id,
            )
        row = query.first()
        if row is None:
            return None
        if row.expires_at <= utcnow():
            logger.info("Expired %s code presented for %s", purpose.value, row.principal_id)
            return None
        return row

    def invalidate(self, row: VerificationCode) -> bool:
        """Delete a matched row; False if a concurrent request already did."""
        deleted = (
            self.db.query(VerificationCode)
            .filter(VerificationCode.id == row.id)
            .delete(synchronize_session=False)
        )
        if deleted == 0:
            logger.warning(
                "%s code for %s was redeemed concurrently", row.purpose.value, row.principal_id
            )
        return deleted == 1

    def delete_for(
        self,
        principal_id: str,
        principal_type: PrincipalType,
        purpose: VerificationPurpose | None = None,
    ) -> int:
        query = self.db.query(VerificationCode).filter(
            VerificationCode.principal_type == principal_type,
            VerificationCode.principal_id == principal_id,
        )
        if purpose is not None:
            query = query.filter(VerificationCode.purpose == purpose)
        return query.delete(synchronize_session=False)
