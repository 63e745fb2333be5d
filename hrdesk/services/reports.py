"""Daily work reports.

Hours are derived, never taken from the client: the total is the span between
start and end, the working time is that span minus the break.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from hrdesk.exceptions import NotFoundError, ValidationFailed
from hrdesk.models import Report
from hrdesk.schemas import ReportCreate, ReportRead, ReportUpdate
from hrdesk.services.access import Actor, authorization
from hrdesk.services.query_filters import apply_record_filter
from hrdesk.services.todo_lifecycle import as_utc


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60}:{minutes % 60:02d}"


def to_report_read(report: Report) -> ReportRead:
    employee = report.employee
    employee_name = f"{employee.first_name} {employee.last_name}".strip() if employee else ""
    return ReportRead(
        id=report.id,
        employee_id=report.employee_id,
        employee_name=employee_name,
        report=report.report,
        start_time=report.start_time,
        end_time=report.end_time,
        break_minutes=report.break_minutes,
        total_minutes=report.total_minutes,
        working_minutes=report.working_minutes,
        todays_total_hours=format_minutes(report.total_minutes),
        todays_working_hours=format_minutes(report.working_minutes),
        note=report.note,
        created_at=report.created_at,
    )


def _validate_times(start: datetime, end: datetime, break_minutes: int) -> None:
    if as_utc(end) <= as_utc(start):
        raise ValidationFailed("End time must be after start time")
    span = (as_utc(end) - as_utc(start)).total_seconds() // 60
    if break_minutes > span:
        raise ValidationFailed("Break cannot be longer than the reported time")


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _get_report_or_404(db: Session, report_id: int) -> Report:
    report = db.scalar(select(Report).options(selectinload(Report.employee)).where(Report.id == report_id))
    if report is None:
        raise NotFoundError("Report not found")
    return report


def list_reports(
    db: Session,
    actor: Actor,
    *,
    employee_id: int | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[Report]:
    record_filter = authorization.report_list(actor, employee_id=employee_id).require()
    if from_date is not None and to_date is not None and from_date > to_date:
        raise ValidationFailed("From date cannot be after to date")

    stmt = apply_record_filter(select(Report).options(selectinload(Report.employee)), Report, record_filter)
    # Bounds are whole days on the submission timestamp.
    if from_date is not None:
        stmt = stmt.where(Report.created_at >= _day_start(from_date))
    if to_date is not None:
        stmt = stmt.where(Report.created_at < _day_start(to_date + timedelta(days=1)))
    stmt = stmt.order_by(Report.created_at.desc(), Report.id.desc())
    return list(db.scalars(stmt).all())


def get_report(db: Session, actor: Actor, report_id: int) -> Report:
    report = _get_report_or_404(db, report_id)
    authorization.report_read(actor, report).require()
    return report


def create_report(db: Session, actor: Actor, payload: ReportCreate) -> Report:
    authorization.report_create(actor).require()
    _validate_times(payload.start_time, payload.end_time, payload.break_minutes)

    report = Report(
        employee_id=actor.id,
        report=payload.report,
        start_time=as_utc(payload.start_time),
        end_time=as_utc(payload.end_time),
        break_minutes=payload.break_minutes,
        note=(payload.note or "").strip() or None,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return report


def update_report(db: Session, actor: Actor, report_id: int, payload: ReportUpdate) -> Report:
    report = _get_report_or_404(db, report_id)
    authorization.report_update(actor, report).require()

    start = as_utc(payload.start_time) if payload.start_time is not None else report.start_time
    end = as_utc(payload.end_time) if payload.end_time is not None else report.end_time
    break_minutes = payload.break_minutes if payload.break_minutes is not None else report.break_minutes
    _validate_times(start, end, break_minutes)

    report.start_time = start
    report.end_time = end
    report.break_minutes = break_minutes
    if payload.report is not None:
        report.report = payload.report
    if "note" in payload.model_fields_set:
        report.note = (payload.note or "").strip() or None

    db.commit()
    db.refresh(report)
    return report
