#!/usr/bin/env python3
"""Create or update a Campustad admin account."""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from campustad.db.session import get_session
from campustad.web.auth import create_or_update_admin


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or update an admin account")
    parser.add_argument("--email", required=True, help="Admin email (login name)")
    parser.add_argument("--name", default="Admin", help="Display name for a new account")
    parser.add_argument(
        "--password",
        default=None,
        help="Admin password (omit to be prompted securely)",
    )
    parser.add_argument(
        "--inactive",
        action="store_true",
        help="Create/update the account as disabled",
    )
    args = parser.parse_args()

    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match.", file=sys.stderr)
            return 1

    try:
        with get_session() as session:
            admin = create_or_update_admin(
                db=session,
                email=args.email,
                password=password,
                name=args.name,
                is_active=not args.inactive,
            )
            print(
                f"Admin ready: id={admin.id}, email={admin.email}, status={admin.status}"
            )
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
