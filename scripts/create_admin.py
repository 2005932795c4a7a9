"""Create (or reset the password of) a dashboard admin.

Usage:
  python scripts/create_admin.py ops@example.com "Ops Lead" --role super_admin

The password is read from the ADMIN_PASSWORD environment variable or
prompted for interactively.
"""

from __future__ import annotations

import argparse
import getpass
import os
from typing import List

from api.auth import hash_password
from api.database import init_db
from api.repositories import create_admin, find_admin_by_email
from ingestion.db.session import session_scope
from ingestion.settings import get_settings


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a dashboard admin")
    parser.add_argument("email")
    parser.add_argument("full_name")
    parser.add_argument("--role", default="admin", choices=["super_admin", "admin", "editor", "viewer"])
    args = parser.parse_args(argv)

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters.")
        return 2

    settings = get_settings()
    init_db(settings)
    with session_scope(settings) as session:
        existing = find_admin_by_email(session, args.email)
        if existing is not None:
            existing.password_hash = hash_password(password)
            existing.is_active = True
            print(f"Updated password for {existing.email}.")
            return 0
        profile = create_admin(
            session,
            email=args.email,
            full_name=args.full_name,
            password_hash=hash_password(password),
            role=args.role,
        )
        print(f"Created {profile.role} {profile.email} ({profile.profile_id}).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
