"""Status lifecycle for todos: pending, completed, overdue.

``overdue`` is never stored on a client's say-so. Whenever a write touches the
status or the due date, the non-completed status is re-derived from the due
date: strictly before "now" means overdue, anything else means pending.
``completed_at`` is set exactly when the status is completed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from hrdesk.exceptions import ValidationFailed
from hrdesk.models import TodoPriority, TodoStatus


@dataclass(frozen=True)
class TodoState:
    status: TodoStatus
    due_date: datetime
    completed_at: datetime | None = None

    @classmethod
    def of(cls, todo: Any) -> TodoState:
        return cls(status=todo.status, due_date=todo.due_date, completed_at=todo.completed_at)


@dataclass(frozen=True)
class LifecycleResult:
    status: TodoStatus
    completed_at: datetime | None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # Naive values come from clients that omit the offset; treat them as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_status(value: Any) -> TodoStatus:
    if isinstance(value, TodoStatus):
        return value
    try:
        return TodoStatus(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationFailed("Invalid status value") from exc


def parse_priority(value: Any) -> TodoPriority:
    if isinstance(value, TodoPriority):
        return value
    try:
        return TodoPriority(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationFailed("Invalid priority value") from exc


def is_past_due(due_date: datetime, now: datetime) -> bool:
    return as_utc(due_date) < as_utc(now)


def check_due_date(due_date: datetime, now: datetime) -> None:
    if is_past_due(due_date, now):
        raise ValidationFailed("Due date cannot be in the past")


def derive_status(status: TodoStatus, due_date: datetime, now: datetime) -> TodoStatus:
    if status is TodoStatus.COMPLETED:
        return status
    if is_past_due(due_date, now):
        return TodoStatus.OVERDUE
    return TodoStatus.PENDING


def initial_state(due_date: datetime, now: datetime) -> LifecycleResult:
    check_due_date(due_date, now)
    return LifecycleResult(status=TodoStatus.PENDING, completed_at=None)


def plan_status_change(current: TodoState, requested: Any, now: datetime) -> LifecycleResult:
    target = parse_status(requested)
    if target is TodoStatus.COMPLETED:
        if current.status is TodoStatus.COMPLETED and current.completed_at is not None:
            return LifecycleResult(status=TodoStatus.COMPLETED, completed_at=current.completed_at)
        return LifecycleResult(status=TodoStatus.COMPLETED, completed_at=now)
    return LifecycleResult(status=derive_status(target, current.due_date, now), completed_at=None)


def plan_due_date_change(current: TodoState, due_date: datetime, now: datetime) -> LifecycleResult:
    check_due_date(due_date, now)
    status = derive_status(current.status, due_date, now)
    completed_at = current.completed_at if status is TodoStatus.COMPLETED else None
    return LifecycleResult(status=status, completed_at=completed_at)


def plan(
    current: TodoState,
    *,
    now: datetime,
    requested_status: Any = None,
    requested_due_date: datetime | None = None,
) -> LifecycleResult:
    """Combine a due-date write and a status write into one outcome.

    The due date is applied first so the status request is judged against the
    new date.
    """
    result = LifecycleResult(status=current.status, completed_at=current.completed_at)
    if requested_due_date is not None:
        result = plan_due_date_change(current, requested_due_date, now)
        current = TodoState(status=result.status, due_date=requested_due_date, completed_at=result.completed_at)
    if requested_status is not None:
        result = plan_status_change(current, requested_status, now)
    return result


def effective_status(todo: Any, now: datetime) -> TodoStatus:
    """Read-time recompute; does not persist anything."""
    return derive_status(todo.status, todo.due_date, now)


def apply_result(todo: Any, result: LifecycleResult) -> None:
    todo.status = result.status
    todo.completed_at = result.completed_at
