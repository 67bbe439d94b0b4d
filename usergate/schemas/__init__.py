"""Pydantic request/response schemas."""

from usergate.schemas.auth import (
    AccessClaims,
    LoginRequest,
    RefreshClaims,
    RefreshResult,
    RefreshTokenRequest,
    TokenPair,
)
from usergate.schemas.common import Envelope, ErrorDetail
from usergate.schemas.health import HealthResponse
from usergate.schemas.users import (
    PublicUser,
    RegisterRequest,
    Role,
    UpdateProfileRequest,
    UserAccount,
    UserListQuery,
)

__all__ = [
    "AccessClaims",
    "Envelope",
    "ErrorDetail",
    "HealthResponse",
    "LoginRequest",
    "PublicUser",
    "RefreshClaims",
    "RefreshResult",
    "RefreshTokenRequest",
    "RegisterRequest",
    "Role",
    "TokenPair",
    "UpdateProfileRequest",
    "UserAccount",
    "UserListQuery",
]
