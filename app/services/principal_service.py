from __future__ import annotations

from sqlalchemy.orm import Session

from app.db.database import utcnow
from app.models.principal_models import PRINCIPAL_MODELS, PrincipalType


class PrincipalRepository:
    """One lookup path for admins, teachers and students, keyed by principal type."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def model_for(kind: PrincipalType):
        return PRINCIPAL_MODELS[PrincipalType(kind)]

    def get_by_email(self, kind: PrincipalType, email: str):
        model = self.model_for(kind)
        return self.db.query(model).filter(model.email == normalize_email(email)).first()

    def get_by_id(self, kind: PrincipalType, principal_id: str):
        model = self.model_for(kind)
        return self.db.query(model).filter(model.id == principal_id).first()

    def find_email_owner(self, email: str):
        """First principal of any type holding ``email``."""
        for kind in PrincipalType:
            principal = self.get_by_email(kind, email)
            if principal is not None:
                return principal
        return None

    def create(
        self,
        kind: PrincipalType,
        *,
        name: str,
        email: str,
        password_hash: str,
        **extra,
    ):
        model = self.model_for(kind)
        principal = model(
            name=name.strip(),
            email=normalize_email(email),
            password=password_hash,
            **extra,
        )
        self.db.add(principal)
        self.db.flush()
        return principal

    def replace_password(self, principal, old_hash: str, new_hash: str) -> bool:
        """Swap the stored hash only if it is still ``old_hash``."""
        model = type(principal)
        updated = (
            self.db.query(model)
            .filter(model.id == principal.id, model.password == old_hash)
            .update(
                {model.password: new_hash, model.updated_at: utcnow()},
                synchronize_session=False,
            )
        )
        return updated == 1


def normalize_email(email: str) -> str:
    return email.strip().lower()
