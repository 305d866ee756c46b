#!/usr/bin/env python3
"""
Provision tenant users and mint bearer tokens for local use.

Usage:
  python backend/scripts/manage_users.py create --username alice \
    --email alice@acme.test --organization acme --role editor
  python backend/scripts/manage_users.py list [--organization acme]
  python backend/scripts/manage_users.py token <user-id> [--expires-minutes 60]
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from jose import jwt
from sqlalchemy.orm import Session

# Allow running as a plain script from the repository root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import settings  # noqa: E402
from constants import Role  # noqa: E402
from database import SessionLocal  # noqa: E402
from exceptions import ApplicationError, ConfigurationError, UserNotFoundError, ValidationError  # noqa: E402
from models import User  # noqa: E402
from repositories import UserRepository  # noqa: E402


def create_user(db: Session, username: str, email: str, organization: str, role: str = "viewer") -> User:
    """
    Insert a user.

    Raises:
        ValidationError: Unknown role, empty organization, or a username/email already taken
        DatabaseError: If the insert cannot be committed
    """
    try:
        role = Role(role).value
    except ValueError:
        raise ValidationError("Invalid role", {"role": role})

    organization = organization.strip()
    if not organization:
        raise ValidationError("Organization is required", {"organization": organization})

    taken = db.query(User).filter((User.username == username) | (User.email == email)).first()
    if taken is not None:
        raise ValidationError("Username or email already registered", {"username": username, "email": email})

    repo = UserRepository(db)
    user = repo.create(User(username=username, email=email, organization=organization, role=role))
    repo.commit("create user")
    return user


def list_users(db: Session, organization: Optional[str] = None) -> List[User]:
    query = db.query(User)
    if organization:
        query = query.filter(User.organization == organization)
    return query.order_by(User.organization, User.username).all()


def issue_token(user: User, secret: Optional[str], algorithm: str, expires_minutes: int = 60) -> str:
    if not secret:
        raise ConfigurationError("JWT secret is not configured", ["VSP_JWT_SECRET"])
    claims = {
        "sub": user.id,
        "exp": datetime.utcnow() + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage video pipeline users")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a user")
    create.add_argument("--username", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--organization", required=True)
    create.add_argument("--role", default="viewer", choices=[r.value for r in Role])

    listing = sub.add_parser("list", help="List users")
    listing.add_argument("--organization")

    token = sub.add_parser("token", help="Mint a bearer token for a user")
    token.add_argument("user_id")
    token.add_argument("--expires-minutes", type=int, default=60)

    return parser


def main(argv: Optional[List[str]] = None, session_factory=SessionLocal) -> int:
    args = _build_parser().parse_args(argv)

    db = session_factory()
    try:
        if args.command == "create":
            user = create_user(db, args.username, args.email, args.organization, args.role)
            print(f"Created {user.role} {user.username} in {user.organization}: {user.id}")

        elif args.command == "list":
            users = list_users(db, args.organization)
            for user in users:
                print(f"{user.id}  {user.organization:<16} {user.role:<7} {user.username} <{user.email}>")
            print(f"{len(users)} user(s)")

        elif args.command == "token":
            user = db.query(User).filter(User.id == args.user_id).first()
            if user is None:
                raise UserNotFoundError(args.user_id)
            print(issue_token(user, settings.JWT_SECRET, settings.JWT_ALGORITHM, args.expires_minutes))

    except ApplicationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
