"""SQLAlchemy ORM models."""

from usergate.models.base import Base
from usergate.models.user import RefreshToken, User

__all__ = ["Base", "RefreshToken", "User"]
