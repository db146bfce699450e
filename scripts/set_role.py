#!/usr/bin/env python3
"""Change an identity's role (idempotent).

Usage:
  python scripts/set_role.py --login-key 2110511001 --role admin
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.laporfik.models import Role
from app.laporfik.repository import IdentityRepository
from scripts._db_utils import database_url_from_env, script_session


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--login-key", required=True, help="Login key of the identity")
    parser.add_argument("--role", required=True, choices=[r.value for r in Role])
    args = parser.parse_args(argv)

    with script_session(database_url_from_env()) as s:
        repo = IdentityRepository(s)
        user = repo.find_identity_by_login_key(args.login_key)
        if not user:
            print(f"User not found: {args.login_key}")
            return 1
        role = Role(args.role)
        if user.role is role:
            print(f"User already has role {role.value}: {args.login_key}")
            return 0
        repo.set_role(user, role)
        print(f"Role of {args.login_key} set to {role.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
