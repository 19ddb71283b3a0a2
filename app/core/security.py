"""Password hashing and JWT session/reset token issuance and verification."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import bcrypt
import jwt

from app.core.config import get_settings

# Bcrypt cost (rounds). Each increment doubles hashing time.
BCRYPT_ROUNDS = 10

# Token purpose tags; a token is only accepted for the purpose it was issued for.
SESSION_TOKEN_TYPE = "session"
RESET_TOKEN_TYPE = "reset"


class InvalidTokenError(Exception):
    """Raised when a token is malformed, badly signed, expired or of the wrong type."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        self.message = message
        super().__init__(message)


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors.
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash. Any fault counts as a mismatch."""
    if not plain_password or not hashed:
        return False
    try:
        pw_bytes = plain_password.encode("utf-8")[:72]
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried by a verified session token."""

    user_id: int
    role: str


class TokenService:
    """
    Signs and verifies session and password-reset JWTs with an injected secret.

    Both token kinds share the signing key, so each payload carries a ``typ``
    claim and verification rejects tokens issued for the other purpose.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(hours=1),
        reset_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must be non-empty")
        self._secret = secret
        self._algorithm = algorithm
        self.session_ttl = session_ttl
        self.reset_ttl = reset_ttl

    def _encode(self, claims: dict[str, Any], ttl: timedelta) -> str:
        now = datetime.now(UTC)
        payload = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def _decode(self, token: str, token_type: str) -> dict[str, Any]:
        if not token or not isinstance(token, str):
            raise InvalidTokenError()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub", "typ"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e
        if payload.get("typ") != token_type:
            raise InvalidTokenError("Token was not issued for this purpose")
        return payload

    @staticmethod
    def _user_id(payload: dict[str, Any]) -> int:
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError("Invalid token payload") from e

    def issue_session(self, user_id: int, role: str) -> str:
        """Create a session token carrying user id and role, valid for session_ttl."""
        return self._encode(
            {"sub": str(user_id), "role": role, "typ": SESSION_TOKEN_TYPE},
            self.session_ttl,
        )

    def verify_session(self, token: str) -> SessionClaims:
        """Return the claims of a valid session token. Raises InvalidTokenError otherwise."""
        payload = self._decode(token, SESSION_TOKEN_TYPE)
        role = payload.get("role")
        if not isinstance(role, str) or not role:
            raise InvalidTokenError("Invalid token payload")
        return SessionClaims(user_id=self._user_id(payload), role=role)

    def issue_reset(self, user_id: int) -> str:
        """Create a single-purpose password reset token, valid for reset_ttl."""
        return self._encode(
            {"sub": str(user_id), "typ": RESET_TOKEN_TYPE},
            self.reset_ttl,
        )

    def verify_reset(self, token: str) -> int:
        """Return the user id of a valid reset token. Raises InvalidTokenError otherwise."""
        payload = self._decode(token, RESET_TOKEN_TYPE)
        return self._user_id(payload)


@lru_cache
def get_token_service() -> TokenService:
    """Return the token service configured from settings (safe to call from dependencies)."""
    settings = get_settings()
    return TokenService(
        secret=settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
        session_ttl=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        reset_ttl=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
    )
