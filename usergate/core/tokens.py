"""JWT creation and verification for access and refresh tokens."""

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt
from pydantic import ValidationError

from usergate.schemas.auth import AccessClaims, RefreshClaims, TokenPair
from usergate.schemas.users import Role

if TYPE_CHECKING:
    from usergate.core.config import Settings

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """
    Raised when a token cannot be verified.

    Covers bad signatures, malformed tokens, expired tokens and missing claims
    without telling them apart.
    """

    def __init__(self, message: str = "Invalid or expired token") -> None:
        self.message = message
        super().__init__(message)


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


def issue_access_token(
    user_id: str,
    email: str,
    role: Role | str,
    settings: "Settings",
    now: datetime | None = None,
) -> str:
    """Create a short-lived JWT access token carrying id, email, role, iat and exp."""
    issued = _now(now)
    payload: dict[str, Any] = {
        "id": str(user_id),
        "email": email,
        "role": Role(role).value,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(
        payload,
        settings.JWT_ACCESS_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def issue_refresh_token(
    user_id: str,
    settings: "Settings",
    now: datetime | None = None,
) -> str:
    """
    Create a long-lived JWT refresh token.

    Only the user id is carried (plus iat, exp and a random jti so tokens minted
    in the same second never collide). Signed with the refresh secret.
    """
    issued = _now(now)
    payload: dict[str, Any] = {
        "id": str(user_id),
        "iat": issued,
        "exp": issued + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(
        payload,
        settings.JWT_REFRESH_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def issue_token_pair(
    user_id: str,
    email: str,
    role: Role | str,
    settings: "Settings",
    now: datetime | None = None,
) -> TokenPair:
    """Create an access/refresh pair. Recording the refresh token is the caller's job."""
    return TokenPair(
        access_token=issue_access_token(user_id, email, role, settings, now=now),
        refresh_token=issue_refresh_token(user_id, settings, now=now),
    )


def _decode(token: str, secret: str, algorithm: str, required: list[str]) -> dict[str, Any]:
    if not token or not isinstance(token, str):
        raise InvalidTokenError()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": required},
        )
    except jwt.PyJWTError as e:
        logger.debug("Token verification failed: %s", type(e).__name__)
        raise InvalidTokenError() from e


def verify_access_token(token: str, settings: "Settings") -> AccessClaims:
    """
    Decode and validate an access token; return its claims.
    Raises InvalidTokenError on invalid, expired or malformed token.
    """
    payload = _decode(
        token,
        settings.JWT_ACCESS_SECRET.get_secret_value(),
        settings.JWT_ALGORITHM,
        ["id", "email", "role", "iat", "exp"],
    )
    try:
        return AccessClaims.model_validate(payload)
    except ValidationError as e:
        raise InvalidTokenError() from e


def verify_refresh_token(token: str, settings: "Settings") -> RefreshClaims:
    """
    Decode and validate a refresh token; return its claims.
    Raises InvalidTokenError on invalid, expired or malformed token.
    """
    payload = _decode(
        token,
        settings.JWT_REFRESH_SECRET.get_secret_value(),
        settings.JWT_ALGORITHM,
        ["id", "iat", "exp"],
    )
    try:
        return RefreshClaims.model_validate(payload)
    except ValidationError as e:
        raise InvalidTokenError() from e
