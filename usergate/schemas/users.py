"""User records and user-facing request/response schemas."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from usergate.core.security import NAME_MAX_LEN, NAME_MIN_LEN


class Role(str, Enum):
    """Closed set of roles. Authorization is set membership, never hierarchy."""

    USER = "User"
    ADMIN = "Admin"
    MODERATOR = "Moderator"


def normalize_email(email: str) -> str:
    """Canonical form used for storage and uniqueness checks."""
    return email.strip().lower()


class UserAccount(BaseModel):
    """
    Internal user record as held by the user store.

    Immutable: refresh-token registry operations return an updated copy.
    Never returned to clients; use PublicUser for any external representation.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    name: str
    email: str
    password_hash: str
    role: Role = Role.USER
    refresh_tokens: tuple[str, ...] = ()
    created_at: datetime


class PublicUser(BaseModel):
    """Sanitized user: no password hash, no refresh tokens."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    email: str
    role: Role
    created_at: datetime


def to_public(user: UserAccount) -> dict:
    """Serialize a user for a response body (camelCase keys, JSON-safe values)."""
    fields = user.model_dump(include=set(PublicUser.model_fields))
    return PublicUser.model_validate(fields).model_dump(mode="json", by_alias=True)


class RegisterRequest(BaseModel):
    """Body for POST /register."""

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN, description="Display name")
    email: EmailStr = Field(..., description="Email address (unique, case-insensitive)")
    password: str = Field(..., min_length=1, description="Plain-text password")
    role: Role | None = Field(default=None, description="Defaults to User")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class UpdateProfileRequest(BaseModel):
    """Body for PUT /profile. Omitted fields are left unchanged."""

    name: str | None = Field(
        default=None,
        min_length=NAME_MIN_LEN,
        max_length=NAME_MAX_LEN,
        pattern=r"^[a-zA-Z ]+$",
        description="Letters and spaces only",
    )
    email: EmailStr | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: object) -> object:
        # Length and pattern checks apply to the stripped value.
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v is not None else None


SortField = Literal["name", "email", "role", "createdAt"]
SortOrder = Literal["asc", "desc"]


class UserListQuery(BaseModel):
    """Filtering, sorting and paging options for the admin user listing."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: SortField = "createdAt"
    order: SortOrder = "desc"
    search: str | None = None
    role: Role | None = None
