"""
Error taxonomy for the LaporFIK core, plus the tagged result handed to the transport layer.

Core operations raise subclasses of LaporError. Routes never call the core directly:
they go through run_operation(), which turns every LaporError (and any storage error)
into an Outcome so nothing escapes the core boundary as an uncaught fault.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app.laporfik.storage import StorageError

logger = logging.getLogger(__name__)


class LaporError(Exception):
    error_kind = "LaporError"
    http_status = 500

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.error_kind)
        self.detail = detail or self.error_kind


class DuplicateIdentity(LaporError):
    error_kind = "DuplicateIdentity"
    http_status = 400


class WeakCredential(LaporError):
    error_kind = "WeakCredential"
    http_status = 400


class InvalidCredential(LaporError):
    error_kind = "InvalidCredential"
    http_status = 401


class TokenMissing(LaporError):
    error_kind = "TokenMissing"
    http_status = 401


class TokenMalformed(LaporError):
    error_kind = "TokenMalformed"
    http_status = 401


class TokenExpired(LaporError):
    error_kind = "TokenExpired"
    http_status = 401


class NotFound(LaporError):
    error_kind = "NotFound"
    http_status = 404


class Forbidden(LaporError):
    error_kind = "Forbidden"
    http_status = 403


class AccessDenied(Forbidden):
    error_kind = "AccessDenied"


class ValidationError(LaporError):
    error_kind = "ValidationError"
    http_status = 400


class InvalidStatus(LaporError):
    error_kind = "InvalidStatus"
    http_status = 400


class StorageFailure(LaporError):
    error_kind = "StorageFailure"
    http_status = 500

    def __init__(self, detail: str = "", *, internal: str | None = None) -> None:
        super().__init__(detail or "Storage failure")
        self.internal = internal


@dataclass(frozen=True)
class Outcome:
    ok: bool
    value: Any = None
    error_kind: str | None = None
    detail: str | None = None
    http_status: int = 200

    @classmethod
    def success(cls, value: Any, http_status: int = 200) -> "Outcome":
        return cls(ok=True, value=value, http_status=http_status)

    @classmethod
    def failure(cls, err: LaporError, *, debug: bool = False) -> "Outcome":
        detail = err.detail
        if isinstance(err, StorageFailure) and debug and err.internal:
            detail = f"{err.detail}: {err.internal}"
        return cls(ok=False, error_kind=err.error_kind, detail=detail, http_status=err.http_status)

    def to_error_dict(self) -> dict:
        return {"errorKind": self.error_kind, "detail": self.detail}


def wrap_storage_error(e: SQLAlchemyError | StorageError) -> StorageFailure:
    if isinstance(e, StaleDataError):
        return StorageFailure("Report was modified concurrently", internal=str(e))
    if isinstance(e, StorageError):
        return StorageFailure("File storage failure", internal=str(e))
    return StorageFailure("Storage failure", internal=f"{type(e).__name__}: {e}")


def run_operation(
    fn: Callable[..., Any],
    *args: Any,
    session: Any = None,
    debug: bool = False,
    success_status: int = 200,
    **kwargs: Any,
) -> Outcome:
    """
    Call a core operation and return its tagged result.

    When a session is given it is committed on success and rolled back on any failure,
    which makes one call one transaction.
    """
    try:
        value = fn(*args, **kwargs)
        if session is not None:
            session.commit()
        return Outcome.success(value, http_status=success_status)
    except LaporError as e:
        if session is not None:
            session.rollback()
        return Outcome.failure(e, debug=debug)
    except (SQLAlchemyError, StorageError) as e:
        logger.exception("Storage failure in %s", getattr(fn, "__name__", fn))
        if session is not None:
            session.rollback()
        return Outcome.failure(wrap_storage_error(e), debug=debug)
