import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.laporfik.credentials import DEFAULT_HASH_METHOD, register_identity
from app.laporfik.models import Role
from app.laporfik.repository import IdentityRepository
from scripts._db_utils import database_url_from_env, script_session


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin identity in an idempotent way.
    Does NOT overwrite an existing admin's password; promotes the account to admin if needed.
    """
    admin_login_key = (os.environ.get("ADMIN_LOGIN_KEY") or "admin").strip()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()
    method = (os.environ.get("PASSWORD_HASH_METHOD") or DEFAULT_HASH_METHOD).strip()

    db_url = (database_url or database_url_from_env()).strip()

    with script_session(db_url) as s:
        repo = IdentityRepository(s)
        user = repo.find_identity_by_login_key(admin_login_key)
        if not user:
            user = register_identity(repo, admin_login_key, admin_password, admin_name, role=Role.ADMIN, method=method)
        elif user.role is not Role.ADMIN:
            repo.set_role(user, Role.ADMIN)

    print("Initialized database (seed_only).")
    print(f"Admin login key: {admin_login_key}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
