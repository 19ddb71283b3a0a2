"""Request/response schemas for auth endpoints."""

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# Request fields are optional so the service can return its own 400 messages
# for missing values. Mobile numbers may arrive as JSON numbers; other type
# mismatches are rejected by pydantic.


def _number_as_text(value: object) -> object:
    """JSON numbers (e.g. mobile: 9999999999) are read as their decimal text."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


MobileText = Annotated[str | None, BeforeValidator(_number_as_text)]


class RegisterRequest(BaseModel):
    """Self-service sign-up."""

    name: str | None = Field(default=None, max_length=255, description="Display name")
    mobile: MobileText = Field(default=None, description="10-digit mobile number")
    email: str | None = Field(default=None, max_length=255, description="Email address")
    password: str | None = Field(default=None, description="Password")


class LoginRequest(BaseModel):
    """Credentials for login; identifier is an email or mobile number."""

    identifier: MobileText = Field(default=None, description="Email or mobile number")
    password: str | None = Field(default=None, description="Password")


class ChangeNameRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)


class ChangeMobileRequest(BaseModel):
    mobile: MobileText = None


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: str | None = Field(default=None, alias="oldPassword")
    new_password: str | None = Field(default=None, alias="newPassword")


class ForgotPasswordRequest(BaseModel):
    email: str | None = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str | None = Field(default=None, description="Token from the reset link")
    new_password: str | None = Field(default=None, alias="newPassword")


class MessageResponse(BaseModel):
    """Plain status message."""

    message: str


class LoginResponse(BaseModel):
    """Session token returned after successful login (also set as an HTTP-only cookie)."""

    message: str = "Login successful"
    access_token: str = Field(..., description="JWT session token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token lifetime in seconds")


class CurrentUser(BaseModel):
    """Authenticated caller (id, role) taken from a verified session token."""

    id: int
    role: str


class UserListItem(BaseModel):
    """User entry for admin list (no password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    mobile_number: str
    email: str
    role: str


class UsersListResponse(BaseModel):
    """Response for GET /admin/users (admin only)."""

    users: list[UserListItem]
