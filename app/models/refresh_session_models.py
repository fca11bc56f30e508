import uuid

from sqlalchemy import BigInteger, Column, DateTime, Enum as SAEnum, Index, String

from app.db.database import Base, utcnow
from app.models.principal_models import PrincipalType


class RefreshSession(Base):
    __tablename__ = "refresh_sessions"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))

    principal_id = Column(String(36), nullable=False)
    principal_type = Column(SAEnum(PrincipalType, name="principal_type"), nullable=False)

    refresh_token = Column(String, nullable=False, unique=True, index=True)
    # epoch seconds, identical to the refresh token's embedded "exp"
    expires_at = Column(BigInteger, nullable=False)
    device_label = Column(String, nullable=False, default="unknown")

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


Index("ix_refresh_sessions_principal", RefreshSession.principal_type, RefreshSession.principal_id)
