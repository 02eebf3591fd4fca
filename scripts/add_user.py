#!/usr/bin/env python3
"""
Create a user account directly in the database (registration is not exposed by the API).

Usage:
  python scripts/add_user.py --email ana@example.com [--name "Ana"] [--role admin] [--password ...] [--init-db]

--init-db creates any missing tables first, so a fresh database needs no other setup step.
"""
from __future__ import annotations

import argparse
import secrets
import string
import sys

from pydantic import ValidationError

from noteboard.core.security import hash_password
from noteboard.db import init_db
from noteboard.domain.accounts import ROLES, USER_ROLE
from noteboard.domain.forms import normalize_email, password_policy_errors
from noteboard.repositories.account_repository import AccountRepository


def gen_password(length: int = 16) -> str:
    # token_urlsafe may lack a letter or a digit; the policy needs both
    return secrets.choice(string.ascii_letters) + secrets.token_urlsafe(length)[:length] + str(secrets.randbelow(10))


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Create a Noteboard user")
    ap.add_argument("--email", required=True, help="Login e-mail (must be unique)")
    ap.add_argument("--name", help="Display name")
    ap.add_argument("--role", default=USER_ROLE, choices=sorted(ROLES), help="Account role (default: user)")
    ap.add_argument("--password", help="Initial password (default: random)")
    ap.add_argument("--init-db", action="store_true", help="Create missing tables before inserting")
    args = ap.parse_args(argv)

    try:
        email = normalize_email(args.email)
    except ValidationError:
        raise SystemExit("Invalid e-mail")

    if args.init_db:
        init_db()
    repo = AccountRepository()
    if repo.get_user_by_email(email):
        raise SystemExit(f"User '{email}' already exists")

    password = args.password or gen_password()
    problems = password_policy_errors(password)
    if problems:
        raise SystemExit("Weak password: " + " ".join(problems))

    user = repo.create_user(email, hash_password(password), name=(args.name or "").strip() or None, role=args.role)
    print("OK: user created")
    print(f"  ID: {user.id}")
    print(f"  E-mail: {user.email}")
    print(f"  Role: {user.role}")
    if not args.password:
        print(f"  Password: {password}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
