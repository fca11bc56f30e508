import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, String

from app.db.database import Base, utcnow


class PrincipalType(str, enum.Enum):
    admin = "admin"
    teacher = "teacher"
    student = "student"


class PrincipalMixin:
    """Columns shared by every principal table.

    The principal's type is not stored: it is implied by the table holding the
    row and exposed as the ``principal_type`` class attribute.
    """

    id = Column(
        String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4())
    )
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)

    email_verified_at = Column(DateTime, nullable=True)
    is_suspended = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def role(self) -> str:
        return self.principal_type.value

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} email={self.email!r}>"


class Admin(PrincipalMixin, Base):
    __tablename__ = "admins"
    principal_type = PrincipalType.admin

    school = Column(String, nullable=True)


class Teacher(PrincipalMixin, Base):
    __tablename__ = "teachers"
    principal_type = PrincipalType.teacher

    designation = Column(String, nullable=True)


class Student(PrincipalMixin, Base):
    __tablename__ = "students"
    principal_type = PrincipalType.student

    roll_no = Column(String, unique=True, nullable=True)


PRINCIPAL_MODELS = {
    PrincipalType.admin: Admin,
    PrincipalType.teacher: Teacher,
    PrincipalType.student: Student,
}
