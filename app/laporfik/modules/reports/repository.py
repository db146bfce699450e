from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session

from .models import Report, ReportMessage

SORTABLE_FIELDS = {
    "created_at": Report.created_at,
    "updated_at": Report.updated_at,
    "status": Report.status,
    "category": Report.category,
}
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class ReportFilter:
    status: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class SortSpec:
    field: str = "created_at"
    descending: bool = True


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_args(cls, page: object = None, limit: object = None) -> "PageRequest":
        try:
            p = int(page) if page not in (None, "") else 1
        except (TypeError, ValueError):
            p = 1
        try:
            lim = int(limit) if limit not in (None, "") else DEFAULT_LIMIT
        except (TypeError, ValueError):
            lim = DEFAULT_LIMIT
        return cls(page=max(p, 1), limit=min(max(lim, 1), MAX_LIMIT))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination_dict(self) -> dict:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "totalCount": self.total,
            "limit": self.limit,
        }


@dataclass
class ReportRepository:
    """Report and message storage, backed by the request (or script) session."""

    session: Session

    def find_report_by_id(self, report_id: int) -> Report | None:
        return self.session.get(Report, report_id)

    def lock_report(self, report_id: int) -> Report | None:
        """Load a report for update. Postgres takes a row lock; the version column covers the rest."""
        stmt = select(Report).where(Report.id == report_id).with_for_update()
        return self.session.execute(stmt, execution_options={"populate_existing": True}).scalar_one_or_none()

    def insert_report(
        self,
        *,
        owner_id: int,
        category: str,
        title: str,
        details: str,
        images: list[str],
    ) -> Report:
        now = datetime.utcnow()
        r = Report(
            owner_id=owner_id,
            category=category,
            title=title,
            details=details,
            images=list(images),
            status="pending",
            admin_feedback=None,
            created_at=now,
            updated_at=now,
        )
        self.session.add(r)
        self.session.flush()
        return r

    def update_report_status(
        self,
        report: Report,
        *,
        status: str,
        feedback: str | None,
        touch_feedback: bool = True,
    ) -> Report:
        report.status = status
        if touch_feedback:
            report.admin_feedback = feedback
        report.updated_at = datetime.utcnow()
        self.session.flush()
        return report

    def update_report_feedback(self, report: Report, *, feedback: str) -> Report:
        report.admin_feedback = feedback
        report.updated_at = datetime.utcnow()
        self.session.flush()
        return report

    def insert_message(self, *, report_id: int, author_id: int, body: str, is_admin_authored: bool) -> ReportMessage:
        m = ReportMessage(
            report_id=report_id,
            author_id=author_id,
            body=body,
            is_admin_authored=is_admin_authored,
            created_at=datetime.utcnow(),
        )
        self.session.add(m)
        self.session.flush()
        return m

    def list_messages_by_report(self, report_id: int) -> list[ReportMessage]:
        stmt = (
            select(ReportMessage)
            .where(ReportMessage.report_id == report_id)
            .order_by(ReportMessage.created_at.asc(), ReportMessage.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def count_messages(self, report_id: int) -> int:
        stmt = select(func.count(ReportMessage.id)).where(ReportMessage.report_id == report_id)
        return int(self.session.execute(stmt).scalar_one())

    def _list(
        self,
        *,
        owner_id: int | None,
        filters: ReportFilter,
        sort: SortSpec,
        page: PageRequest,
    ) -> Page:
        conditions = []
        if owner_id is not None:
            conditions.append(Report.owner_id == owner_id)
        if filters.status:
            conditions.append(Report.status == filters.status)
        if filters.category:
            conditions.append(Report.category == filters.category)

        column = SORTABLE_FIELDS.get(sort.field, Report.created_at)
        direction = desc if sort.descending else asc

        stmt = select(Report).where(*conditions).order_by(direction(column), direction(Report.id))
        stmt = stmt.limit(page.limit).offset(page.offset)
        count_stmt = select(func.count(Report.id)).where(*conditions)

        items = list(self.session.execute(stmt).scalars().all())
        total = int(self.session.execute(count_stmt).scalar_one())
        return Page(items=items, total=total, page=page.page, limit=page.limit)

    def list_reports(self, *, filters: ReportFilter, sort: SortSpec, page: PageRequest) -> Page:
        return self._list(owner_id=None, filters=filters, sort=sort, page=page)

    def list_reports_by_owner(
        self,
        owner_id: int,
        *,
        filters: ReportFilter,
        sort: SortSpec = SortSpec(),
        page: PageRequest,
    ) -> Page:
        return self._list(owner_id=owner_id, filters=filters, sort=sort, page=page)
