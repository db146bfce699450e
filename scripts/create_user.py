#!/usr/bin/env python3
"""Create a LaporFIK identity from the command line.

Usage:
  python scripts/create_user.py --login-key 2110511001 --name "Budi Santoso"
  python scripts/create_user.py --login-key staff01 --name "Staff" --role admin

The password is prompted for (twice) unless --password is given.
"""

import argparse
import getpass
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.laporfik.credentials import DEFAULT_HASH_METHOD, DEFAULT_MAJOR, register_identity
from app.laporfik.errors import LaporError
from app.laporfik.models import Role
from app.laporfik.repository import IdentityRepository
from scripts._db_utils import database_url_from_env, script_session


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="LaporFIK user creation tool")
    parser.add_argument("--login-key", required=True, help="Unique login key (NIM)")
    parser.add_argument("--name", required=True, help="Full name")
    parser.add_argument("--major", default=DEFAULT_MAJOR, help=f"Major (default: {DEFAULT_MAJOR})")
    parser.add_argument("--email", default=None, help="Email (optional)")
    parser.add_argument("--role", choices=[r.value for r in Role], default=Role.USER.value)
    parser.add_argument("--password", default=None, help="Password (prompted if omitted)")
    args = parser.parse_args(argv)

    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm Password: ")
        if password != confirm:
            print("Error: Passwords do not match!")
            return 1

    method = (os.environ.get("PASSWORD_HASH_METHOD") or DEFAULT_HASH_METHOD).strip()
    try:
        with script_session(database_url_from_env()) as s:
            user = register_identity(
                IdentityRepository(s),
                args.login_key,
                password,
                args.name,
                major=args.major,
                email=args.email,
                role=Role(args.role),
                method=method,
            )
            print("User created successfully!")
            print(f"  ID: {user.id}")
            print(f"  Name: {user.display_name}")
            print(f"  Login key: {user.login_key}")
            print(f"  Major: {user.major}")
            print(f"  Email: {user.email or 'Not provided'}")
            print(f"  Role: {user.role.value}")
    except LaporError as e:
        print(f"Error ({e.error_kind}): {e.detail}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
