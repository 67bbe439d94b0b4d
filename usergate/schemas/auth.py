"""Request/response schemas for auth endpoints and decoded token claims."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from usergate.schemas.users import Role, normalize_email


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class RefreshTokenRequest(BaseModel):
    """Body for POST /refresh and POST /logout. A missing token is reported by the service."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    refresh_token: str | None = Field(default=None, description="Refresh token from login")


class TokenPair(BaseModel):
    """Access and refresh token minted together at register/login."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    access_token: str
    refresh_token: str


class RefreshResult(BaseModel):
    """New access token; refresh_token is set only when refresh tokens are rotated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    access_token: str
    refresh_token: str | None = None


class AccessClaims(BaseModel):
    """Verified access-token payload attached to the request context."""

    id: str
    email: str
    role: Role
    iat: int
    exp: int


class RefreshClaims(BaseModel):
    """Verified refresh-token payload."""

    id: str
    iat: int
    exp: int
    jti: str | None = None
