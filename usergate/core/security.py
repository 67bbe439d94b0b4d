"""Password policy, hashing and verification."""

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt

if TYPE_CHECKING:
    from usergate.core.config import Settings

# Min/max lengths for name and password validation.
NAME_MIN_LEN = 2
NAME_MAX_LEN = 50
PASSWORD_MAX_LEN = 128

SPECIAL_CHARACTERS = "@$!%*?&#"

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


class WeakCredentialError(Exception):
    """Raised when a plain-text password does not satisfy the password policy."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__("; ".join(violations))


@dataclass(frozen=True)
class PasswordPolicy:
    """Rules a plain-text password must satisfy before it is hashed."""

    min_length: int = 8
    max_length: int = PASSWORD_MAX_LEN
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_digit: bool = True
    require_special: bool = False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PasswordPolicy":
        return cls(
            min_length=settings.PASSWORD_MIN_LENGTH,
            require_special=settings.PASSWORD_REQUIRE_SPECIAL,
        )

    def violations(self, password: str) -> list[str]:
        """Return every rule the password breaks (empty list when it is acceptable)."""
        if not password:
            return ["Password is required"]
        problems: list[str] = []
        if len(password) < self.min_length:
            problems.append(f"Password must be at least {self.min_length} characters long")
        if len(password) > self.max_length:
            problems.append(f"Password must be at most {self.max_length} characters long")
        if self.require_lowercase and not any(c.islower() for c in password):
            problems.append("Password must contain a lowercase letter")
        if self.require_uppercase and not any(c.isupper() for c in password):
            problems.append("Password must contain an uppercase letter")
        if self.require_digit and not any(c.isdigit() for c in password):
            problems.append("Password must contain a number")
        if self.require_special and not any(c in SPECIAL_CHARACTERS for c in password):
            problems.append(
                f"Password must contain a special character ({SPECIAL_CHARACTERS})"
            )
        return problems


def _password_bytes(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(
    plain_password: str,
    policy: PasswordPolicy | None = None,
    rounds: int = 10,
) -> str:
    """
    Hash a plain-text password for storage. Do not store plain passwords.

    Raises WeakCredentialError listing all policy violations before any hashing work.
    The returned digest embeds its own salt and cost factor.
    """
    problems = (policy or PasswordPolicy()).violations(plain_password)
    if problems:
        raise WeakCredentialError(problems)
    return bcrypt.hashpw(
        _password_bytes(plain_password), bcrypt.gensalt(rounds=rounds)
    ).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash. Never raises on mismatch."""
    if not plain_password or not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache
def dummy_password_hash(rounds: int = 10) -> str:
    """
    Digest verified against when a login email is unknown.

    Computed once per cost factor so an unknown email costs the same bcrypt check
    as a wrong password for an existing account.
    """
    return bcrypt.hashpw(b"usergate-timing-dummy", bcrypt.gensalt(rounds=rounds)).decode("utf-8")
