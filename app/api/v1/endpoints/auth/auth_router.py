from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import Settings, get_settings
from app.schemas.backend_schemas.auth_schemas import (
    CodeVerifySchema,
    LoginSchema,
    PasswordResetRequestSchema,
    PasswordUpdateSchema,
    PrincipalOut,
    RegisterSchema,
    SessionOut,
)
from app.services.auth_service import AuthService
from app.services.dependencies import (
    get_auth_service,
    get_current_principal,
    get_reset_token,
)
from app.services.errors import AuthError
from app.utils.device import device_label
from app.utils.logger import logger


router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_refresh_cookie(response: Response, settings: Settings, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_TTL_DAYS * 24 * 60 * 60,
        path="/",
    )


def _clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterSchema,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    pair = auth.register(payload, device_label(request))
    _set_refresh_cookie(response, settings, pair.refresh.token)
    return {"message": "Account created", "accessToken": pair.access_token}


@router.get("/resend-verification")
def resend_verification(
    principal=Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
):
    return {"message": auth.resend_verification(principal)}


@router.post("/verify-email")
def verify_email(
    payload: CodeVerifySchema,
    principal=Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
):
    # A wrong code is a 200 with "Invalid Code", not an error status.
    result = auth.verify_email(principal, payload.token, payload.code)
    return {"message": result.message}


@router.post("/login")
def login(
    payload: LoginSchema,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    try:
        pair = auth.login(payload, device_label(request))
    except AuthError as exc:
        failed = JSONResponse(
            status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers
        )
        # a stale cookie from an earlier session is dropped either way
        if request.cookies.get(settings.REFRESH_COOKIE_NAME):
            _clear_refresh_cookie(failed, settings)
        return failed

    _set_refresh_cookie(response, settings, pair.refresh.token)
    return {"accessToken": pair.access_token}


@router.get("/refresh")
def refresh(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    try:
        pair = auth.refresh(refresh_token)
    except AuthError as exc:
        failed = JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
        _clear_refresh_cookie(failed, settings)
        return failed
    except SQLAlchemyError:
        # rotation was rolled back; the cookie is dropped on every failure
        logger.exception("Refresh failed on a store error")
        failed = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
        _clear_refresh_cookie(failed, settings)
        return failed

    response = JSONResponse(content={"accessToken": pair.access_token})
    _set_refresh_cookie(response, settings, pair.refresh.token)
    return response


@router.get("/user", response_model=PrincipalOut)
def authenticated_user(principal=Depends(get_current_principal)):
    return principal


@router.get("/sessions", response_model=List[SessionOut])
def list_sessions(
    principal=Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.list_sessions(principal)


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    principal=Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    removed = auth.logout(request.cookies.get(settings.REFRESH_COOKIE_NAME))
    logger.info("Logout for %s %s removed %d session(s)", principal.role, principal.id, removed)
    _clear_refresh_cookie(response, settings)
    return {"message": "You are now logged out"}


@router.post("/logout-all")
def logout_all(
    response: Response,
    principal=Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    auth.logout_all(principal)
    _clear_refresh_cookie(response, settings)
    return {"message": "All devices are logged out"}


@router.post("/request-password-reset")
def request_password_reset(
    payload: PasswordResetRequestSchema,
    auth: AuthService = Depends(get_auth_service),
):
    return {"message": auth.request_password_reset(payload)}


@router.post("/verify-reset-code")
def verify_reset_code(
    payload: CodeVerifySchema,
    auth: AuthService = Depends(get_auth_service),
):
    result = auth.verify_reset_code(payload.token, payload.code)
    if not result.ok:
        return {"message": result.message}
    return {"message": result.message, "resetToken": result.reset_token}


@router.post("/update-password")
def update_password(
    payload: PasswordUpdateSchema,
    reset_token: str = Depends(get_reset_token),
    auth: AuthService = Depends(get_auth_service),
):
    auth.update_password(reset_token, payload.password)
    return {"message": "Password has been updated"}
