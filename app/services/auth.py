"""Registration, login, profile changes and the forgot/reset-password flow."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.security import InvalidTokenError, TokenService, hash_password, verify_password
from app.models import USER_ROLES, User

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

MOBILE_PATTERN = re.compile(r"[0-9]{10}")
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

RESET_MAIL_SUBJECT = "Password Reset Request"


class Mailer(Protocol):
    """Anything that can deliver a plain-text message (see app.services.mailer.SmtpMailer)."""

    async def send_mail(self, to: str, subject: str, text: str) -> None: ...


class AuthServiceError(Exception):
    """Base for auth flow failures; status_code is the HTTP status the router returns."""

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidInputError(AuthServiceError):
    """Missing or malformed input."""


class ConflictError(AuthServiceError):
    """The store rejected a write because mobile number or email is already taken."""


class DuplicateUserError(ConflictError):
    """Registration found an existing user with the same mobile number or email."""


class InvalidCredentialsError(AuthServiceError):
    """Identifier/password pair or old password did not match."""


class UserNotFoundError(AuthServiceError):
    """No user matches the given id or email."""

    status_code = 404


class InvalidOrExpiredTokenError(AuthServiceError):
    """Password reset token failed verification."""


class StoreError(AuthServiceError):
    """Unexpected database failure."""

    status_code = 500


def is_valid_mobile(value: Any) -> bool:
    return isinstance(value, str) and MOBILE_PATTERN.fullmatch(value) is not None


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and EMAIL_PATTERN.fullmatch(value) is not None


def _commit(db: Session, action: str) -> None:
    """Commit, translating unique-constraint violations into ConflictError."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Store rejected %s: uniqueness violation", action)
        raise ConflictError("User with this mobile number or email already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Store error during %s", action)
        raise StoreError(f"Error during {action}") from e


def _email_matches(email: str) -> Any:
    """Case-insensitive email comparison, backed by the unique index on lower(email)."""
    return func.lower(User.email) == email.lower()


def _find_user(db: Session, *criteria: Any) -> User | None:
    try:
        return db.query(User).filter(*criteria).order_by(User.id).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Store error looking up user")
        raise StoreError("Error finding user") from e


def _update_user(db: Session, user_id: int, action: str, **values: Any) -> None:
    """Update one user row by id; raises UserNotFoundError if no row matched."""
    try:
        result = db.execute(update(User).where(User.id == user_id).values(**values))
    except IntegrityError as e:
        db.rollback()
        logger.warning("Store rejected %s: uniqueness violation", action)
        raise ConflictError("User with this mobile number or email already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Store error during %s", action)
        raise StoreError(f"Error during {action}") from e
    if result.rowcount == 0:
        db.rollback()
        raise UserNotFoundError("User not found")
    _commit(db, action)


def create_user(
    db: Session,
    name: Any,
    mobile: Any,
    email: Any,
    password: Any,
    role: str = "user",
) -> int:
    """
    Validate and insert a new user; returns the new id.

    Raises InvalidInputError, DuplicateUserError (pre-check found the mobile or
    email) or ConflictError (store rejected a concurrent duplicate insert).
    """
    if not name or not mobile or not email or not password:
        raise InvalidInputError("Name, mobile number, email, and password are required")
    if not isinstance(name, str) or not isinstance(password, str):
        raise InvalidInputError("Name and password must be strings")
    if not is_valid_mobile(mobile):
        raise InvalidInputError("Mobile number must be 10 digits")
    if not is_valid_email(email):
        raise InvalidInputError("Invalid email format")
    if role not in USER_ROLES:
        raise InvalidInputError(f"Role must be one of: {', '.join(USER_ROLES)}")

    if _find_user(db, or_(User.mobile_number == mobile, _email_matches(email))) is not None:
        raise DuplicateUserError("User already exists")

    user = User(
        name=name,
        mobile_number=mobile,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    _commit(db, "registration")
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id, "role": role})
    return user.id


def register(db: Session, name: Any, mobile: Any, email: Any, password: Any) -> int:
    """Self-service registration; the role is always 'user'."""
    return create_user(db, name, mobile, email, password, role="user")


def login(db: Session, tokens: TokenService, identifier: Any, password: Any) -> str:
    """
    Authenticate by email or mobile number and return a session token.

    Unknown identifier and wrong password raise the same InvalidCredentialsError.
    """
    if not identifier or not password:
        raise InvalidInputError("Email/Mobile number and password are required")
    if not isinstance(identifier, str) or not isinstance(password, str):
        raise InvalidInputError("Email/Mobile number and password must be strings")

    user = _find_user(db, or_(User.mobile_number == identifier, _email_matches(identifier)))
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Login failed")
        raise InvalidCredentialsError("Invalid email/mobile number or password")

    logger.info("Login succeeded", extra={"user_id": user.id})
    return tokens.issue_session(user.id, user.role)


def change_name(db: Session, user_id: int, name: Any) -> None:
    """Set a new display name. An empty string is accepted."""
    if not isinstance(name, str):
        raise InvalidInputError("Name must be a string")
    _update_user(db, user_id, "name update", name=name)


def change_mobile(db: Session, user_id: int, mobile: Any) -> None:
    """Set a new mobile number; uniqueness is left to the store constraint."""
    if not is_valid_mobile(mobile):
        raise InvalidInputError("Mobile number must be 10 digits")
    _update_user(db, user_id, "mobile number update", mobile_number=mobile)


def change_password(db: Session, user_id: int, old_password: Any, new_password: Any) -> None:
    """Replace the password hash after checking the current password."""
    if not old_password or not new_password:
        raise InvalidInputError("Old password and new password are required")
    if not isinstance(old_password, str) or not isinstance(new_password, str):
        raise InvalidInputError("Old password and new password must be strings")

    user = _find_user(db, User.id == user_id)
    if user is None:
        raise UserNotFoundError("User not found")
    if not verify_password(old_password, user.password_hash):
        raise InvalidCredentialsError("Invalid old password")

    _update_user(db, user_id, "password update", password_hash=hash_password(new_password))
    logger.info("Password changed", extra={"user_id": user_id})


def build_reset_link(base_url: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}token={token}"


async def forgot_password(
    db: Session,
    tokens: TokenService,
    mailer: Mailer,
    settings: Settings,
    email: Any,
) -> None:
    """
    Mail a password reset link to the account registered under email.

    Raises UserNotFoundError when no account uses the address, MailError when
    delivery fails. The store lookup runs in a worker thread.
    """
    if not email:
        raise InvalidInputError("Email is required")
    if not isinstance(email, str):
        raise InvalidInputError("Email must be a string")

    user = await asyncio.to_thread(_find_user, db, _email_matches(email))
    if user is None:
        raise UserNotFoundError("User with this email does not exist")

    token = tokens.issue_reset(user.id)
    link = build_reset_link(settings.PASSWORD_RESET_URL, token)
    await mailer.send_mail(
        user.email,
        RESET_MAIL_SUBJECT,
        f"Click the following link to reset your password: {link}",
    )
    logger.info("Password reset link sent", extra={"user_id": user.id})


def reset_password(db: Session, tokens: TokenService, token: Any, new_password: Any) -> None:
    """Set a new password for the subject of a valid reset token."""
    if not token or not new_password:
        raise InvalidInputError("Token and new password are required")
    if not isinstance(token, str) or not isinstance(new_password, str):
        raise InvalidInputError("Token and new password must be strings")

    try:
        user_id = tokens.verify_reset(token)
    except InvalidTokenError as e:
        logger.info("Password reset rejected: %s", e.message)
        raise InvalidOrExpiredTokenError("Invalid or expired token") from e

    _update_user(db, user_id, "password reset", password_hash=hash_password(new_password))
    logger.info("Password reset", extra={"user_id": user_id})


def list_users(db: Session) -> list[User]:
    """All users ordered by id."""
    try:
        return db.query(User).order_by(User.id).all()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Store error listing users")
        raise StoreError("Error listing users") from e
