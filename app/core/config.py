# app/core/config.py
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration, read once from the environment / .env and never mutated."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    # Three independent signing secrets: leaking one must not allow forging the others.
    ACCESS_TOKEN_SECRET: str
    REFRESH_TOKEN_SECRET: str
    RESET_TOKEN_SECRET: str
    JWT_ALGORITHM: str = "HS256"

    ACCESS_TOKEN_TTL_MINUTES: int = 60 * 24
    ROTATED_ACCESS_TOKEN_TTL_MINUTES: int = 2
    REFRESH_TOKEN_TTL_DAYS: int = 7
    RESET_TOKEN_TTL_MINUTES: int = 4
    VERIFICATION_CODE_TTL_HOURS: int = 24

    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    DATABASE_URL: str = "sqlite:///./neura_auth.db"
    TRANSACTION_TIMEOUT_MS: int = 7000

    REFRESH_COOKIE_NAME: str = "express_jwt"
    # TODO: flip the default to True once every deployment terminates TLS in front of the API.
    REFRESH_COOKIE_SECURE: bool = False

    CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    MAIL_FROM: str = "no-reply@example.com"
    RESEND_API_KEY: str | None = None
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASS: str | None = None

    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
