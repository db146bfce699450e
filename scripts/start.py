#!/usr/bin/env python3
"""
Container entrypoint: release phase, then gunicorn.

Reads PORT (default 5000) and WEB_CONCURRENCY (default 2 workers). gunicorn
replaces this process via os.execvp so it receives signals directly.

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 5000
DEFAULT_WORKERS = 2


def _int_env(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    value = int(raw)
    if value < lo or value > hi:
        raise ValueError(f"{name}={raw} out of range {lo}-{hi}")
    return value


def gunicorn_argv(port: int, workers: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", "60",
        # Load the app before forking; create_app() disposes the engine in each child.
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    try:
        port = _int_env("PORT", DEFAULT_PORT, lo=1, hi=65535)
        workers = _int_env("WEB_CONCURRENCY", DEFAULT_WORKERS, lo=1, hi=64)
    except ValueError as e:
        print(f"ERROR: {e}", flush=True)
        sys.exit(1)

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    argv = gunicorn_argv(port, workers)
    print(f"=== Starting {' '.join(argv)} ===", flush=True)
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
