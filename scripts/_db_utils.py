from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.laporfik.db import build_engine, make_sessionmaker


def database_url_from_env() -> str:
    return (os.environ.get("DATABASE_URL") or "sqlite:///laporfik.db").strip()


@contextmanager
def script_session(db_url: str) -> Generator[Session, None, None]:
    """Same engine settings as the app, but owned (and disposed) by the script."""
    engine = build_engine(db_url)
    s: Session = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
