"""
Release phase: bring the schema to head, then make sure an admin can log in.

- Refuses to run without DATABASE_URL, and refuses SQLite when ENV=production.
- `alembic upgrade head` against DATABASE_URL.
- Seeds the admin identity (idempotent; existing passwords are left alone).

Usage:
  python scripts/release.py
  python scripts/release.py --skip-seed
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _require_env(name: str) -> str:
    v = (os.environ.get(name) or "").strip()
    if not v:
        raise RuntimeError(f"Missing required environment variable {name}.")
    return v


def alembic_config(db_url: str):
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def upgrade_schema(db_url: str, revision: str = "head") -> None:
    from alembic import command

    command.upgrade(alembic_config(db_url), revision)


def run_release(*, seed: bool = True) -> None:
    db_url = _require_env("DATABASE_URL")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    print(f"=== LaporFIK release (ENV={env or '(unset)'}) ===", flush=True)
    upgrade_schema(db_url)
    print("Schema at head.", flush=True)

    if not seed:
        print("Admin seed skipped.", flush=True)
        return

    from scripts import init_db

    init_db.seed_only(database_url=db_url)
    print("=== LaporFIK release done ===", flush=True)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run LaporFIK migrations and admin seed")
    parser.add_argument("--skip-seed", action="store_true", help="Only run migrations")
    args = parser.parse_args(argv)
    run_release(seed=not args.skip_seed)


if __name__ == "__main__":
    main()
