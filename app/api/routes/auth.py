"""Auth endpoints (register, login, profile changes, password reset) and the session dependencies."""

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import InvalidTokenError, TokenService, get_token_service
from app.schemas.auth import (
    ChangeMobileRequest,
    ChangeNameRequest,
    ChangePasswordRequest,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
)
from app.services import auth as auth_service
from app.services.auth import AuthServiceError
from app.services.mailer import MailError, SmtpMailer

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_mailer(settings: Annotated[Settings, Depends(get_settings)]) -> SmtpMailer:
    """Dependency: mailer bound to the current settings."""
    return SmtpMailer(settings)


def _raise_http(e: AuthServiceError | MailError) -> NoReturn:
    if e.status_code >= 500:
        logger.error(
            "Auth request failed",
            extra={"error_type": type(e).__name__, "reason": e.message[:500]},
        )
    raise HTTPException(status_code=e.status_code, detail=e.message) from e


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """
    Dependency: require a valid session token and return the caller.

    Reads the session cookie first and falls back to an Authorization: Bearer
    header. Raises 401 if both are missing or the token does not verify.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise _unauthorized("Not authenticated")
    try:
        claims = tokens.verify_session(token)
    except InvalidTokenError:
        raise _unauthorized("Invalid or expired token")
    return CurrentUser(id=claims.user_id, role=claims.role)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


@router.post("/register", response_model=MessageResponse)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Create an account with role 'user'."""
    try:
        auth_service.register(db, body.name, body.mobile, body.email, body.password)
    except AuthServiceError as e:
        _raise_http(e)
    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LoginResponse:
    """
    Authenticate with email or mobile number and password.
    The session token is set as an HTTP-only cookie and also returned in the body.
    """
    try:
        token = auth_service.login(db, tokens, body.identifier, body.password)
    except AuthServiceError as e:
        _raise_http(e)

    expires_in = int(tokens.session_ttl.total_seconds())
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        max_age=expires_in,
        path="/",
    )
    return LoginResponse(access_token=token, expires_in=expires_in)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    """Clear the session cookie. Always succeeds."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
        httponly=True,
    )
    return MessageResponse(message="Logout successful")


@router.put("/change-name", response_model=MessageResponse)
def change_name(
    body: ChangeNameRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    try:
        auth_service.change_name(db, current_user.id, body.name)
    except AuthServiceError as e:
        _raise_http(e)
    return MessageResponse(message="Name updated successfully")


@router.put("/change-mobile", response_model=MessageResponse)
def change_mobile(
    body: ChangeMobileRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    try:
        auth_service.change_mobile(db, current_user.id, body.mobile)
    except AuthServiceError as e:
        _raise_http(e)
    return MessageResponse(message="Mobile number updated successfully")


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    try:
        auth_service.change_password(db, current_user.id, body.old_password, body.new_password)
    except AuthServiceError as e:
        _raise_http(e)
    return MessageResponse(message="Password updated successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    mailer: Annotated[SmtpMailer, Depends(get_mailer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    """Mail a password reset link valid for RESET_TOKEN_EXPIRE_MINUTES."""
    try:
        await auth_service.forgot_password(db, tokens, mailer, settings, body.email)
    except (AuthServiceError, MailError) as e:
        _raise_http(e)
    return MessageResponse(message="Password reset link has been sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> MessageResponse:
    """Set a new password using the token from the reset link."""
    try:
        auth_service.reset_password(db, tokens, body.token, body.new_password)
    except AuthServiceError as e:
        _raise_http(e)
    return MessageResponse(message="Password has been reset successfully")
