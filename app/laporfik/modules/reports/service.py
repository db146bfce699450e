"""
Report lifecycle engine.

Every operation takes the repository it works against plus the acting identity, checks
existence first and the access policy second, then mutates. Mutations on an existing
report go through lock_report() so concurrent admin and owner actions on the same report
apply one after the other instead of interleaving.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from app.laporfik.audit import record_event
from app.laporfik.errors import Forbidden, InvalidStatus, NotFound
from app.laporfik.policy import Action, Actor, is_owner, require_access
from app.laporfik.models import Role
from app.laporfik.utils import optional_text, text_field

from .models import REPORT_STATUSES, Report, ReportMessage
from .repository import Page, PageRequest, ReportFilter, ReportRepository, SortSpec

logger = logging.getLogger(__name__)

VALID_STATUSES = frozenset(REPORT_STATUSES)

# Documented admin transitions. Only enforced in strict mode; by default any known
# status may follow any other.
STATUS_TRANSITIONS = {
    "pending": {"in_progress", "resolved", "rejected"},
    "in_progress": {"resolved", "rejected"},
    "resolved": set(),
    "rejected": set(),
}


def _required(value: object, name: str) -> str:
    return text_field(value, name, required=True)


def _load(repo: ReportRepository, report_id: int, *, for_update: bool = False) -> Report:
    report = repo.lock_report(report_id) if for_update else repo.find_report_by_id(report_id)
    if report is None:
        raise NotFound("Report not found")
    return report


def can_transition_to(report: Report, new_status: str, *, strict: bool = False) -> tuple[bool, list[str]]:
    """Check if report can move to new_status."""
    errors = []
    if new_status not in VALID_STATUSES:
        errors.append(f"Invalid status: {new_status!r}")
        return False, errors
    if new_status == report.status:
        return True, []
    if strict and new_status not in STATUS_TRANSITIONS.get(report.status, set()):
        errors.append(f"Cannot transition from '{report.status}' to '{new_status}'")
        return False, errors
    return True, []


def create_report(
    repo: ReportRepository,
    actor: Actor,
    category: str,
    title: str,
    details: str,
    images: Iterable[str] = (),
) -> Report:
    category = _required(category, "Category")
    title = _required(title, "Title")
    details = _required(details, "Details")

    report = repo.insert_report(
        owner_id=actor.id,
        category=category,
        title=title,
        details=details,
        images=[str(u) for u in images],
    )
    record_event(
        repo.session,
        actor=actor,
        action="report.create",
        entity_type="Report",
        entity_id=str(report.id),
        metadata={"category": category, "images": len(report.images)},
    )
    logger.info("Report created id=%s owner_id=%s category=%s", report.id, actor.id, category)
    return report


def get_report(repo: ReportRepository, report_id: int, actor: Actor) -> Report:
    report = _load(repo, report_id)
    require_access(actor, report.owner_id, Action.READ)
    return report


def set_status(
    repo: ReportRepository,
    report_id: int,
    actor: Actor,
    new_status: str,
    feedback: str | None = None,
    *,
    strict: bool = False,
) -> Report:
    """Admin status change. Also overwrites admin_feedback (None clears it)."""
    report = _load(repo, report_id, for_update=True)
    require_access(actor, report.owner_id, Action.SET_STATUS)

    # Anything that is not one of the known statuses, empty and non-string included, is InvalidStatus.
    new_status = text_field(new_status, "Status", required=True, error=InvalidStatus)
    feedback = optional_text(feedback, "Feedback")
    ok, errors = can_transition_to(report, new_status, strict=strict)
    if not ok:
        raise InvalidStatus("; ".join(errors))

    if report.status == new_status and report.admin_feedback == feedback:
        return report

    old_status = report.status
    repo.update_report_status(report, status=new_status, feedback=feedback)
    record_event(
        repo.session,
        actor=actor,
        action="report.status_change",
        entity_type="Report",
        entity_id=str(report.id),
        metadata={"from": old_status, "to": new_status},
    )
    logger.info("Report %s status %s -> %s by user_id=%s", report.id, old_status, new_status, actor.id)
    return report


def set_feedback(repo: ReportRepository, report_id: int, actor: Actor, feedback: str) -> Report:
    report = _load(repo, report_id, for_update=True)
    require_access(actor, report.owner_id, Action.SET_FEEDBACK)
    feedback = _required(feedback, "Feedback")

    repo.update_report_feedback(report, feedback=feedback)
    record_event(repo.session, actor=actor, action="report.feedback", entity_type="Report", entity_id=str(report.id))
    return report


def resolve_by_self(repo: ReportRepository, report_id: int, actor: Actor) -> Report:
    """
    Owner marks their own report finished. Applies from any status, including one an
    admin already closed. Ownership is required even for admins.
    """
    report = _load(repo, report_id, for_update=True)
    if not is_owner(actor, report.owner_id):
        raise Forbidden("You do not have permission to resolve this report")
    require_access(actor, report.owner_id, Action.RESOLVE_SELF)

    old_status = report.status
    repo.update_report_status(report, status="resolved", feedback=None, touch_feedback=False)
    record_event(
        repo.session,
        actor=actor,
        action="report.resolve_by_owner",
        entity_type="Report",
        entity_id=str(report.id),
        metadata={"from": old_status, "to": "resolved"},
    )
    return report


def append_message(repo: ReportRepository, report_id: int, actor: Actor, body: str) -> ReportMessage:
    report = _load(repo, report_id, for_update=True)
    require_access(actor, report.owner_id, Action.APPEND_MESSAGE)
    body = _required(body, "Message")

    msg = repo.insert_message(
        report_id=report.id,
        author_id=actor.id,
        body=body,
        is_admin_authored=Role(actor.role) is Role.ADMIN,
    )
    record_event(
        repo.session,
        actor=actor,
        action="report.message",
        entity_type="Report",
        entity_id=str(report.id),
        metadata={"message_id": msg.id, "is_admin_authored": msg.is_admin_authored},
    )
    return msg


def list_messages(repo: ReportRepository, report_id: int, actor: Actor) -> list[ReportMessage]:
    report = _load(repo, report_id)
    require_access(actor, report.owner_id, Action.READ)
    return repo.list_messages_by_report(report.id)


def _check_status_filter(filters: ReportFilter) -> None:
    if filters.status and filters.status not in VALID_STATUSES:
        raise InvalidStatus(f"Invalid status: {filters.status!r}")


def list_reports(
    repo: ReportRepository,
    actor: Actor,
    filters: ReportFilter = ReportFilter(),
    sort: SortSpec = SortSpec(),
    page: PageRequest = PageRequest(),
) -> Page:
    require_access(actor, None, Action.LIST_ALL)
    _check_status_filter(filters)
    return repo.list_reports(filters=filters, sort=sort, page=page)


def list_reports_by_owner(
    repo: ReportRepository,
    actor: Actor,
    owner_id: int,
    filters: ReportFilter = ReportFilter(),
    page: PageRequest = PageRequest(),
) -> Page:
    require_access(actor, owner_id, Action.READ)
    _check_status_filter(filters)
    return repo.list_reports_by_owner(owner_id, filters=filters, page=page)
