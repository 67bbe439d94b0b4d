"""
Create a user in the database store (e.g. the first admin). Run from project root:
  python -m usergate.scripts.create_user NAME EMAIL PASSWORD [role]
Example:
  python -m usergate.scripts.create_user "Alice Johnson" alice@example.com 'Sup3rSecret' Admin
"""
import argparse
import sys
import uuid
from datetime import UTC, datetime

from usergate.core.config import get_settings
from usergate.core.database import get_session_factory
from usergate.core.security import PasswordPolicy, WeakCredentialError, hash_password
from usergate.schemas.users import Role, UserAccount, normalize_email
from usergate.services.errors import DuplicateEmailError
from usergate.services.user_store import SqlAlchemyUserStore


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Usergate user in the database.")
    parser.add_argument("name", help="Display name")
    parser.add_argument("email", help="Email address (unique)")
    parser.add_argument("password", help="Password (must satisfy the password policy)")
    parser.add_argument("role", nargs="?", default=Role.USER.value, choices=[r.value for r in Role])
    args = parser.parse_args(argv)

    name = args.name.strip()
    email = normalize_email(args.email)
    if not name or "@" not in email:
        print("Name and a valid email are required.", file=sys.stderr)
        return 1

    settings = get_settings()
    try:
        password_hash = hash_password(
            args.password, PasswordPolicy.from_settings(settings), settings.BCRYPT_ROUNDS
        )
    except WeakCredentialError as e:
        for violation in e.violations:
            print(violation, file=sys.stderr)
        return 1

    store = SqlAlchemyUserStore(get_session_factory())
    try:
        store.insert(
            UserAccount(
                id=str(uuid.uuid4()),
                name=name,
                email=email,
                password_hash=password_hash,
                role=Role(args.role),
                created_at=datetime.now(UTC),
            )
        )
    except DuplicateEmailError:
        print(f"User '{email}' already exists.", file=sys.stderr)
        return 1
    print(f"Created user '{email}' with role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
