from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.database import get_db
from app.services.auth_service import AuthService
from app.services.errors import AccountSuspended, ForbiddenError
from app.services.mail_service import CodeNotification, Mailer
from app.services.principal_service import PrincipalRepository
from app.services.token_service import TokenConfig, TokenKind, TokenService


# HTTPBearer for extracting Bearer token from Authorization header
http_bearer = HTTPBearer(auto_error=False)


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(TokenConfig.from_settings(settings))


def get_mailer(settings: Settings = Depends(get_settings)) -> Mailer:
    return Mailer(settings)


def get_auth_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
    mailer: Mailer = Depends(get_mailer),
) -> AuthService:
    # Background tasks run after the response is sent, i.e. after the flow has committed.
    def notify(notification: CodeNotification) -> None:
        background_tasks.add_task(mailer.send_code, notification)

    return AuthService(db, settings, tokens, notify)


def _get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None,
    credentials_exception: HTTPException
) -> str:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise credentials_exception
    token = credentials.credentials
    if not token:
        raise credentials_exception
    return token


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = _get_bearer_token(credentials, credentials_exception)
    identity = tokens.identity(token, TokenKind.access)
    if identity is None:
        raise credentials_exception

    principal = PrincipalRepository(db).get_by_email(identity.role, identity.email)
    if not principal:
        raise credentials_exception

    if principal.is_suspended:
        raise AccountSuspended()

    return principal


def get_reset_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str:
    """Raw reset token from ``Authorization: Bearer``; anything else is 403."""
    return _get_bearer_token(credentials, ForbiddenError())
