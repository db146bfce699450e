"""
Report endpoints.

Handlers stay thin: parse the request, call the lifecycle engine through run_operation()
with the request session as its repository, render the tagged result.
"""

from __future__ import annotations

from flask import Blueprint, current_app, request

from app.laporfik.auth import debug_errors, request_payload, current_identity, error_response, login_required, render
from app.laporfik.db import db_session
from app.laporfik.errors import ValidationError, run_operation
from app.laporfik.storage import (
    MAX_IMAGE_BYTES,
    MAX_REPORT_IMAGES,
    build_upload_key,
    discard_uploads,
    is_allowed_image,
    public_url,
    storage_from_config,
)

from . import service
from .repository import PageRequest, ReportFilter, ReportRepository, SortSpec

bp = Blueprint("reports", __name__)


def _repo() -> ReportRepository:
    return ReportRepository(db_session())


def _page_dict(page) -> dict:
    return {
        "reports": [r.to_dict(include_owner=True) for r in page.items],
        "pagination": page.pagination_dict(),
    }


def _read_images() -> list[tuple[str, str | None, bytes]]:
    """Check the uploaded images and assign each a storage key. Nothing is written yet."""
    files = [f for f in request.files.getlist("images") if f and f.filename]
    if len(files) > MAX_REPORT_IMAGES:
        raise ValidationError(f"Too many files. Maximum is {MAX_REPORT_IMAGES} files.")

    uploads = []
    for f in files:
        if not is_allowed_image(f.filename, f.mimetype):
            raise ValidationError("Only image files are allowed!")
        data = f.read()
        if len(data) > MAX_IMAGE_BYTES:
            raise ValidationError("File too large. Maximum size is 5MB.")
        uploads.append((build_upload_key("reports", f.filename), f.mimetype, data))
    return uploads


@bp.post("")
@login_required
def create():
    data = request_payload()
    try:
        uploads = _read_images()
    except ValidationError as e:
        return error_response(e)

    storage = storage_from_config(current_app.config)
    base_url = current_app.config.get("PUBLIC_BASE_URL") or request.host_url
    s = db_session()
    stored: list[str] = []

    def _create():
        report = service.create_report(
            ReportRepository(s),
            current_identity(),
            data.get("category") or data.get("kategori") or "",
            data.get("title") or data.get("judul") or "",
            data.get("details") or data.get("rincian") or "",
            [public_url(base_url, key) for key, _, _ in uploads],
        )
        # Files are written only after the report row passed validation.
        for key, content_type, blob in uploads:
            storage.put_bytes(key, blob, content_type=content_type)
            stored.append(key)
        return report

    outcome = run_operation(_create, session=s, debug=debug_errors(), success_status=201)
    if not outcome.ok:
        discard_uploads(storage, stored)
    return render(outcome, lambda r: {"report": r.to_dict()}, message="Report created successfully")


@bp.get("")
@login_required
def list_all():
    filters = ReportFilter(
        status=request.args.get("status") or None,
        category=request.args.get("category") or request.args.get("kategori") or None,
    )
    sort = SortSpec(
        field=request.args.get("sort") or "created_at",
        descending=(request.args.get("order") or "desc").lower() != "asc",
    )
    page = PageRequest.from_args(request.args.get("page"), request.args.get("limit"))
    outcome = run_operation(service.list_reports, _repo(), current_identity(), filters, sort, page, debug=debug_errors())
    return render(outcome, _page_dict)


@bp.get("/my-reports")
@login_required
def list_mine():
    ident = current_identity()
    filters = ReportFilter(status=request.args.get("status") or None)
    page = PageRequest.from_args(request.args.get("page"), request.args.get("limit"))
    outcome = run_operation(service.list_reports_by_owner, _repo(), ident, ident.id, filters, page, debug=debug_errors())
    return render(outcome, _page_dict)


@bp.get("/<int:report_id>")
@login_required
def detail(report_id: int):
    outcome = run_operation(service.get_report, _repo(), report_id, current_identity(), debug=debug_errors())
    return render(outcome, lambda r: {"report": r.to_dict(include_owner=True)})


@bp.patch("/<int:report_id>/status")
@login_required
def change_status(report_id: int):
    data = request_payload()
    s = db_session()
    outcome = run_operation(
        service.set_status,
        ReportRepository(s),
        report_id,
        current_identity(),
        data.get("status") or "",
        data.get("feedback"),
        strict=bool(current_app.config.get("STRICT_STATUS_TRANSITIONS")),
        session=s,
        debug=debug_errors(),
    )
    return render(outcome, lambda r: {"report": r.to_dict()}, message="Report status updated successfully")


@bp.patch("/<int:report_id>/feedback")
@login_required
def send_feedback(report_id: int):
    data = request_payload()
    s = db_session()
    outcome = run_operation(
        service.set_feedback,
        ReportRepository(s),
        report_id,
        current_identity(),
        data.get("feedback") or "",
        session=s,
        debug=debug_errors(),
    )
    return render(outcome, lambda r: {"data": r.to_dict()}, message="Feedback sent to user")


@bp.patch("/<int:report_id>/resolve")
@login_required
def resolve(report_id: int):
    s = db_session()
    outcome = run_operation(
        service.resolve_by_self, ReportRepository(s), report_id, current_identity(), session=s, debug=debug_errors()
    )
    return render(outcome, lambda r: {"data": r.to_dict()}, message="Report marked as resolved by user")


@bp.post("/<int:report_id>/messages")
@login_required
def add_message(report_id: int):
    data = request_payload()
    s = db_session()
    outcome = run_operation(
        service.append_message,
        ReportRepository(s),
        report_id,
        current_identity(),
        data.get("message") or data.get("body") or "",
        session=s,
        debug=debug_errors(),
        success_status=201,
    )
    return render(outcome, lambda m: {"reportMessage": m.to_dict()}, message="Message added successfully")


@bp.get("/<int:report_id>/messages")
@login_required
def messages(report_id: int):
    outcome = run_operation(service.list_messages, _repo(), report_id, current_identity(), debug=debug_errors())
    return render(outcome, lambda ms: {"messages": [m.to_dict() for m in ms]})
