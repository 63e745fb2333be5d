from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from hrdesk.exceptions import ForbiddenError, NotFoundError, ValidationFailed
from hrdesk.models import Project, Role, Todo, TodoStatus, User
from hrdesk.schemas import TodoCreate, TodoRead, TodoStatsRead, TodoUpdate
from hrdesk.services.access import Actor, authorization
from hrdesk.services.query_filters import apply_record_filter, apply_search
from hrdesk.services.todo_lifecycle import (
    TodoState,
    apply_result,
    as_utc,
    effective_status,
    initial_state,
    parse_priority,
    parse_status,
    plan,
    plan_status_change,
    utcnow,
)

_SECONDS_PER_DAY = 24 * 60 * 60


def _effective_status_clause(status: TodoStatus, now: datetime):
    if status is TodoStatus.COMPLETED:
        return Todo.status == TodoStatus.COMPLETED
    not_completed = Todo.status != TodoStatus.COMPLETED
    if status is TodoStatus.OVERDUE:
        return and_(not_completed, Todo.due_date < now)
    return and_(not_completed, Todo.due_date >= now)


def to_todo_read(todo: Todo, now: datetime | None = None) -> TodoRead:
    now = now or utcnow()
    status = effective_status(todo, now)
    if status is TodoStatus.COMPLETED:
        days_remaining = 0
    else:
        delta = (as_utc(todo.due_date) - as_utc(now)).total_seconds()
        days_remaining = math.ceil(delta / _SECONDS_PER_DAY)
    return TodoRead(
        id=todo.id,
        title=todo.title,
        description=todo.description,
        notes=todo.notes,
        tags=list(todo.tags or []),
        due_date=todo.due_date,
        priority=todo.priority,
        status=status,
        employee_id=todo.employee_id,
        assigned_by=todo.assigned_by,
        project_id=todo.project_id,
        is_hidden_for_employee=bool(todo.is_hidden_for_employee),
        completed_at=todo.completed_at,
        created_at=todo.created_at,
        updated_at=todo.updated_at,
        is_overdue=status is TodoStatus.OVERDUE,
        days_remaining=days_remaining,
    )


def _get_todo_or_404(db: Session, todo_id: int) -> Todo:
    todo = db.get(Todo, todo_id)
    if todo is None:
        raise NotFoundError("Todo not found")
    return todo


def _clean_tags(tags: Iterable[str] | None) -> list[str]:
    return [tag.strip() for tag in tags or [] if tag and tag.strip()]


def _ensure_project_exists(db: Session, project_id: int | None) -> None:
    if project_id is not None and db.get(Project, project_id) is None:
        raise ValidationFailed("Project not found")


def list_todos(
    db: Session,
    actor: Actor,
    *,
    employee_id: int | None = None,
    status: str | None = None,
    priority: str | None = None,
    project_id: int | None = None,
    search: str | None = None,
    now: datetime | None = None,
) -> list[Todo]:
    now = now or utcnow()
    record_filter = authorization.todo_list(actor, employee_id=employee_id).require()

    stmt = apply_record_filter(select(Todo), Todo, record_filter)
    if status:
        stmt = stmt.where(_effective_status_clause(parse_status(status), now))
    if priority:
        stmt = stmt.where(Todo.priority == parse_priority(priority))
    if project_id is not None:
        stmt = stmt.where(Todo.project_id == project_id)
    stmt = apply_search(stmt, search, Todo.title, Todo.description, Todo.notes)
    stmt = stmt.order_by(Todo.due_date.asc(), Todo.id.asc())
    return list(db.scalars(stmt).all())


def get_todo(db: Session, actor: Actor, todo_id: int) -> Todo:
    todo = _get_todo_or_404(db, todo_id)
    authorization.todo_read(actor, todo).require()
    return todo


def create_todo(db: Session, actor: Actor, payload: TodoCreate, *, now: datetime | None = None) -> Todo:
    now = now or utcnow()
    authorization.todo_create(actor).require()

    priority = parse_priority(payload.priority)
    state = initial_state(payload.due_date, now)

    employee = db.get(User, payload.employee_id)
    if employee is None or not employee.is_active:
        raise ValidationFailed("Employee not found")
    _ensure_project_exists(db, payload.project_id)

    todo = Todo(
        title=payload.title,
        description=(payload.description or "").strip() or None,
        notes=(payload.notes or "").strip() or None,
        tags=_clean_tags(payload.tags),
        due_date=as_utc(payload.due_date),
        priority=priority,
        status=state.status,
        completed_at=state.completed_at,
        employee_id=payload.employee_id,
        assigned_by=actor.id,
        project_id=payload.project_id,
        is_hidden_for_employee=payload.is_hidden_for_employee,
    )
    db.add(todo)
    db.commit()
    db.refresh(todo)
    return todo


def update_todo(
    db: Session,
    actor: Actor,
    todo_id: int,
    payload: TodoUpdate,
    *,
    now: datetime | None = None,
) -> Todo:
    now = now or utcnow()
    todo = _get_todo_or_404(db, todo_id)
    authorization.todo_update(actor, todo).require()

    fields = payload.model_fields_set
    if payload.is_hidden_for_employee is not None and actor.role is Role.EMPLOYEE:
        raise ForbiddenError("Only the assigner can change todo visibility")

    priority = parse_priority(payload.priority) if payload.priority is not None else None
    lifecycle = None
    if payload.due_date is not None:
        lifecycle = plan(TodoState.of(todo), now=now, requested_due_date=payload.due_date)
    if "project_id" in fields:
        _ensure_project_exists(db, payload.project_id)

    if payload.title is not None:
        todo.title = payload.title
    if "description" in fields:
        todo.description = (payload.description or "").strip() or None
    if "notes" in fields:
        todo.notes = (payload.notes or "").strip() or None
    if payload.tags is not None:
        todo.tags = _clean_tags(payload.tags)
    if priority is not None:
        todo.priority = priority
    if "project_id" in fields:
        todo.project_id = payload.project_id
    if payload.is_hidden_for_employee is not None:
        todo.is_hidden_for_employee = payload.is_hidden_for_employee
    if lifecycle is not None:
        todo.due_date = as_utc(payload.due_date)
        apply_result(todo, lifecycle)

    db.commit()
    db.refresh(todo)
    return todo


def update_todo_status(
    db: Session,
    actor: Actor,
    todo_id: int,
    status: str,
    *,
    now: datetime | None = None,
) -> Todo:
    now = now or utcnow()
    todo = _get_todo_or_404(db, todo_id)
    authorization.todo_update_status(actor, todo).require()

    apply_result(todo, plan(TodoState.of(todo), now=now, requested_status=status))
    db.commit()
    db.refresh(todo)
    return todo


def bulk_update_todo_status(
    db: Session,
    actor: Actor,
    todo_ids: list[int],
    status: str,
    *,
    now: datetime | None = None,
) -> tuple[int, TodoStatus]:
    now = now or utcnow()
    if not todo_ids:
        raise ValidationFailed("Todo IDs array is required")

    unique_ids = list(dict.fromkeys(todo_ids))
    todos = list(db.scalars(select(Todo).where(Todo.id.in_(unique_ids)).order_by(Todo.id.asc())).all())
    missing = sorted(set(unique_ids) - {todo.id for todo in todos})
    if missing:
        raise NotFoundError(f"Todos not found: {', '.join(str(item) for item in missing)}")

    authorization.todo_bulk_update_status(actor, todos).require()
    target = parse_status(status)

    # Plan every row before touching any of them; one commit applies the batch.
    plans = [(todo, plan_status_change(TodoState.of(todo), target, now)) for todo in todos]
    for todo, result in plans:
        apply_result(todo, result)
    db.commit()
    return len(plans), target


def delete_todo(db: Session, actor: Actor, todo_id: int) -> None:
    todo = _get_todo_or_404(db, todo_id)
    authorization.todo_delete(actor, todo).require()
    db.delete(todo)
    db.commit()


def todo_stats(db: Session, actor: Actor, *, now: datetime | None = None) -> TodoStatsRead:
    now = now or utcnow()
    record_filter = authorization.todo_list(actor).require()

    def _count(*clauses) -> int:
        stmt = apply_record_filter(select(func.count()).select_from(Todo), Todo, record_filter)
        for clause in clauses:
            stmt = stmt.where(clause)
        return int(db.scalar(stmt) or 0)

    total = _count()
    completed = _count(_effective_status_clause(TodoStatus.COMPLETED, now))
    overdue = _count(_effective_status_clause(TodoStatus.OVERDUE, now))
    return TodoStatsRead(
        pending=max(total - completed - overdue, 0),
        completed=completed,
        overdue=overdue,
        total=total,
        overdue_count=overdue,
    )
