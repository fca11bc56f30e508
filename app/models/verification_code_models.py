import enum
import uuid

from sqlalchemy import Column, DateTime, Enum as SAEnum, Index, String

from app.db.database import Base, utcnow
from app.models.principal_models import PrincipalType


class VerificationPurpose(str, enum.Enum):
    EMAIL_VERIFY = "EMAIL_VERIFY"
    PASSWORD_RESET = "PASSWORD_RESET"


class VerificationCode(Base):
    __tablename__ = "verification_codes"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))

    principal_id = Column(String(36), nullable=False)
    principal_type = Column(SAEnum(PrincipalType, name="principal_type"), nullable=False)

    code = Column(String(8), nullable=False)
    token = Column(String, nullable=False, unique=True, index=True)
    purpose = Column(SAEnum(VerificationPurpose, name="verification_purpose"), nullable=False)

    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


Index("ix_verification_codes_principal", VerificationCode.principal_type, VerificationCode.principal_id)
