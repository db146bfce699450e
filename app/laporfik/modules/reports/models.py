from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.laporfik.models import Base

# pending -> in_progress -> resolved / rejected
REPORT_STATUSES = ("pending", "in_progress", "resolved", "rejected")


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        Index("idx_reports_owner", "owner_id"),
        Index("idx_reports_status", "status"),
        Index("idx_reports_category", "category"),
        Index("idx_reports_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    category: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "Listrik"
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)  # public URLs

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    admin_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    # Optimistic lock: every UPDATE checks and bumps this.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    owner = relationship("User", lazy="selectin")

    __mapper_args__ = {"version_id_col": version}

    def to_dict(self, *, include_owner: bool = False) -> dict:
        d = {
            "id": self.id,
            "owner_id": self.owner_id,
            "category": self.category,
            "title": self.title,
            "details": self.details,
            "images": list(self.images or []),
            "status": self.status,
            "admin_feedback": self.admin_feedback,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_owner and self.owner is not None:
            d["owner_name"] = self.owner.display_name
            d["owner_login_key"] = self.owner.login_key
            d["owner_major"] = self.owner.major
        return d


class ReportMessage(Base):
    """Follow-up note on a report. Rows are only ever inserted."""

    __tablename__ = "report_messages"
    __table_args__ = (
        Index("idx_report_messages_report_created", "report_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_admin_authored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    author = relationship("User", lazy="selectin")

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "report_id": self.report_id,
            "author_id": self.author_id,
            "body": self.body,
            "is_admin_authored": self.is_admin_authored,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.author is not None:
            d["author_name"] = self.author.display_name
            d["author_login_key"] = self.author.login_key
        return d
