"""ORM models for user accounts and their registered refresh tokens."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from usergate.models.base import Base


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    email is stored lowercased; the unique index makes it case-insensitive unique.
    role: 'User', 'Admin' or 'Moderator'
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="User")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="RefreshToken.id",
        lazy="selectin",
    )


class RefreshToken(Base):
    """One currently registered refresh token. Rows are removed on logout."""

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(Text, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")
