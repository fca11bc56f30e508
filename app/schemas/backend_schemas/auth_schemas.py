from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, constr, field_validator

from app.models.principal_models import PrincipalType


class RegisterSchema(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    school: Optional[constr(strip_whitespace=True, max_length=200)] = None

    @field_validator("password")
    def validate_password(cls, value):
        if value.strip() != value:
            raise ValueError("Password must not start or end with whitespace")
        return value


class LoginSchema(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    role: PrincipalType


class CodeVerifySchema(BaseModel):
    token: constr(strip_whitespace=True, min_length=1, max_length=128)
    code: constr(strip_whitespace=True, pattern=r"^\d{8}$")


class PasswordResetRequestSchema(BaseModel):
    email: EmailStr
    role: PrincipalType


class PasswordUpdateSchema(BaseModel):
    password: str = Field(..., min_length=8, max_length=128)


class PrincipalOut(BaseModel):
    id: str
    name: str
    email: EmailStr
    role: PrincipalType
    email_verified_at: Optional[datetime] = None
    is_suspended: bool = False

    class Config:
        from_attributes = True


class SessionOut(BaseModel):
    id: str
    device_label: str
    expires_at: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
