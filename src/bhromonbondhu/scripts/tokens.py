# src/bhromonbondhu/scripts/tokens.py
"""Issue bearer tokens for local development.

Ensures the messaging tables exist, then looks a user up by username
(creating it when ``--create`` is given) and prints an access token that can
be sent as ``Authorization: Bearer <token>``.

    python -m bhromonbondhu.scripts.tokens karim --create --full-name "Karim Ahmed" \
        --email karim@example.com --role host
"""
from __future__ import annotations

import argparse
import sys

from sqlalchemy.orm import Session

from bhromonbondhu.core.security import create_access_token
from bhromonbondhu.db.session import SessionLocal, create_tables
from bhromonbondhu.models import ROLE_ADMIN, ROLE_HOST, ROLE_TRAVELER, User


def get_or_create_user(
    db: Session,
    username: str,
    *,
    create: bool = False,
    full_name: str | None = None,
    email: str | None = None,
    role: str = ROLE_TRAVELER,
) -> User:
    """Return the user named ``username``, optionally creating it.

    Raises:
        LookupError: If the user does not exist and ``create`` is false.
    """
    user = db.query(User).filter(User.username == username).first()
    if user is not None:
        return user
    if not create:
        raise LookupError(f"No user named {username!r}; pass --create to add one")

    user = User(
        username=username,
        full_name=full_name or username,
        email=email or f"{username}@example.com",
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Print a bearer token for a user")
    parser.add_argument("username")
    parser.add_argument("--create", action="store_true", help="Create the user if missing")
    parser.add_argument("--full-name", default=None)
    parser.add_argument("--email", default=None)
    parser.add_argument(
        "--role",
        choices=[ROLE_TRAVELER, ROLE_HOST, ROLE_ADMIN],
        default=ROLE_TRAVELER,
    )
    args = parser.parse_args(argv)

    create_tables()
    db = SessionLocal()
    try:
        user = get_or_create_user(
            db,
            args.username,
            create=args.create,
            full_name=args.full_name,
            email=args.email,
            role=args.role,
        )
    except LookupError as exc:
        print(f"[tokens] ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"[tokens] user_id={user.id} role={user.role}", file=sys.stderr)
    print(create_access_token(user.id))
    return 0


if __name__ == "__main__":
    sys.exit(main())
