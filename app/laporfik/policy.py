"""
Access control policy.

Every read and write on a report is decided here and nowhere else. The rules:
- admins may do anything to any resource
- members may only touch resources they own, and only read them, post messages
  on them, or mark them resolved themselves

Callers are expected to check that the resource exists before asking, so a missing
report is reported as NotFound and never leaks through as a denial.
"""

from __future__ import annotations

import enum
from typing import Protocol

from app.laporfik.errors import AccessDenied
from app.laporfik.models import Role


class Actor(Protocol):
    id: int
    role: Role


class Action(str, enum.Enum):
    READ = "read"
    APPEND_MESSAGE = "append_message"
    RESOLVE_SELF = "resolve_self"
    SET_STATUS = "set_status"
    SET_FEEDBACK = "set_feedback"
    LIST_ALL = "list_all"


OWNER_ACTIONS = frozenset({Action.READ, Action.APPEND_MESSAGE, Action.RESOLVE_SELF})


def can_access(actor: Actor | None, resource_owner_id: int | None, action: Action) -> bool:
    if actor is None:
        return False
    role = Role(actor.role)
    if role is Role.ADMIN:
        return True
    if role is Role.USER:
        if resource_owner_id is None or actor.id != resource_owner_id:
            return False
        return action in OWNER_ACTIONS
    raise AssertionError(f"Unhandled role: {role!r}")


def require_access(actor: Actor | None, resource_owner_id: int | None, action: Action) -> None:
    if not can_access(actor, resource_owner_id, action):
        raise AccessDenied("Access denied")


def is_owner(actor: Actor | None, resource_owner_id: int) -> bool:
    return actor is not None and actor.id == resource_owner_id
