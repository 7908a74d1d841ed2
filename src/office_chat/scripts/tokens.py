# src/office_chat/scripts/tokens.py
"""
Issue access tokens for local development and smoke testing.

Sign-in is handled by the company identity provider, which shares the signing
secret with this service. This script stands in for it on a developer machine:

1. Add a directory user (optional)
2. Print a bearer token for an existing user, looked up by email or id
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy import select
from sqlalchemy.orm import Session

from office_chat.core.security import create_access_token
from office_chat.db import SessionLocal, create_tables
from office_chat.models import User, UserRole


def find_user(db: Session, identifier: str) -> User | None:
    """Return the user whose email or id matches ``identifier``."""
    user = db.get(User, identifier)
    if user is not None:
        return user
    return db.scalars(select(User).where(User.email == identifier)).first()


def add_user(db: Session, name: str, email: str, role: UserRole) -> User:
    """Create a directory user, or return the existing one with that email."""
    existing = db.scalars(select(User).where(User.email == email)).first()
    if existing is not None:
        return existing
    user = User(name=name, email=email, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def issue_token(db: Session, identifier: str) -> str:
    """Return a signed token for the user.

    Raises:
        LookupError: If no active user matches ``identifier``.
    """
    user = find_user(db, identifier)
    if user is None or not user.is_active:
        raise LookupError(f"No active user matches {identifier!r}")
    return create_access_token(user.id, {"role": user.role_name})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Issue office chat access tokens")
    subparsers = parser.add_subparsers(dest="command", required=True)

    issue = subparsers.add_parser("issue", help="print a token for an existing user")
    issue.add_argument("user", help="user email or id")

    add = subparsers.add_parser("add-user", help="create a user and print a token")
    add.add_argument("name")
    add.add_argument("email")
    add.add_argument(
        "--role",
        choices=[role.value for role in UserRole],
        default=UserRole.GUEST_CLIENT.value,
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    create_tables()
    db = SessionLocal()
    try:
        if args.command == "add-user":
            user = add_user(db, args.name, args.email, UserRole(args.role))
            identifier = user.id
        else:
            identifier = args.user
        try:
            print(issue_token(db, identifier))
        except LookupError as exc:
            print(f"[tokens][FAIL] {exc}", file=sys.stderr)
            return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
