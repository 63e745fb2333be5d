from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrdesk.exceptions import ForbiddenError, NotFoundError, ValidationFailed
from hrdesk.models import Leave, LeaveStatus, Role, User
from hrdesk.schemas import LeaveCreateRequest, LeaveStatsRead, LeaveUpdateRequest
from hrdesk.services.access import Actor, authorization
from hrdesk.services.pagination import PageInfo, PageRequest, page_info
from hrdesk.services.query_filters import apply_record_filter, apply_search

_REVIEW_STATUSES = frozenset({LeaveStatus.APPROVED, LeaveStatus.REJECTED})


def _validate_range(from_date: date, to_date: date) -> None:
    if from_date > to_date:
        raise ValidationFailed("From date cannot be after to date")


def _get_leave_or_404(db: Session, leave_id: int) -> Leave:
    leave = db.get(Leave, leave_id)
    if leave is None:
        raise NotFoundError("Leave not found")
    return leave


def create_leave(db: Session, actor: Actor, payload: LeaveCreateRequest) -> Leave:
    employee_id = payload.employee_id if payload.employee_id is not None else actor.id
    authorization.leave_create(actor, employee_id=employee_id).require()
    requested_status = payload.status or LeaveStatus.PENDING
    if requested_status in _REVIEW_STATUSES:
        authorization.leave_review(actor, None).require()

    _validate_range(payload.from_date, payload.to_date)

    employee = db.get(User, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")

    leave = Leave(
        employee_id=employee_id,
        from_date=payload.from_date,
        to_date=payload.to_date,
        reason=payload.reason,
        status=requested_status,
        is_half_day=payload.is_half_day,
        created_by=actor.id,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def list_leaves(
    db: Session,
    actor: Actor,
    *,
    page: PageRequest,
    employee_id: int | None = None,
    status: LeaveStatus | None = None,
    search: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
) -> tuple[list[Leave], PageInfo]:
    record_filter = authorization.leave_list(actor, employee_id=employee_id).require()

    stmt = apply_record_filter(select(Leave), Leave, record_filter)
    stmt = apply_search(stmt, search, Leave.reason)
    if status is not None:
        stmt = stmt.where(Leave.status == status)
    # Both bounds apply to the start of the leave.
    if from_date is not None:
        stmt = stmt.where(Leave.from_date >= from_date)
    if to_date is not None:
        stmt = stmt.where(Leave.from_date <= to_date)

    total = int(db.scalar(select(func.count()).select_from(stmt.subquery())) or 0)
    rows = db.scalars(
        stmt.order_by(Leave.created_at.desc(), Leave.id.desc()).offset(page.offset).limit(page.limit)
    ).all()
    return list(rows), page_info(page, total)


def get_leave(db: Session, actor: Actor, leave_id: int) -> Leave:
    leave = _get_leave_or_404(db, leave_id)
    authorization.leave_read(actor, leave).require()
    return leave


def update_leave(db: Session, actor: Actor, leave_id: int, payload: LeaveUpdateRequest) -> Leave:
    leave = _get_leave_or_404(db, leave_id)
    authorization.leave_update(actor, leave).require()

    if actor.role is Role.EMPLOYEE and leave.status is not LeaveStatus.PENDING:
        raise ForbiddenError("Only pending leaves can be changed")
    if payload.status is not None and payload.status is not leave.status and payload.status in _REVIEW_STATUSES:
        authorization.leave_review(actor, leave).require()

    from_date = payload.from_date or leave.from_date
    to_date = payload.to_date or leave.to_date
    _validate_range(from_date, to_date)

    leave.from_date = from_date
    leave.to_date = to_date
    if payload.reason is not None:
        leave.reason = payload.reason
    if payload.status is not None:
        leave.status = payload.status
    if payload.is_half_day is not None:
        leave.is_half_day = payload.is_half_day

    db.commit()
    db.refresh(leave)
    return leave


def delete_leave(db: Session, actor: Actor, leave_id: int) -> None:
    leave = _get_leave_or_404(db, leave_id)
    authorization.leave_delete(actor, leave).require()
    db.delete(leave)
    db.commit()


def leave_stats(db: Session, actor: Actor) -> LeaveStatsRead:
    record_filter = authorization.leave_list(actor).require()

    def _count(status: LeaveStatus | None = None) -> int:
        stmt = apply_record_filter(select(func.count()).select_from(Leave), Leave, record_filter)
        if status is not None:
            stmt = stmt.where(Leave.status == status)
        return int(db.scalar(stmt) or 0)

    return LeaveStatsRead(
        total=_count(),
        pending=_count(LeaveStatus.PENDING),
        approved=_count(LeaveStatus.APPROVED),
        rejected=_count(LeaveStatus.REJECTED),
        cancelled=_count(LeaveStatus.CANCELLED),
    )
