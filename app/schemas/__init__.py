"""Pydantic request/response schemas."""

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
    UserListItem,
    UsersListResponse,
)
from app.schemas.health import HealthResponse

__all__ = [
    "ChangeMobileRequest",
    "ChangeNameRequest",
    "ChangePasswordRequest",
    "CurrentUser",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "UserListItem",
    "UsersListResponse",
]
