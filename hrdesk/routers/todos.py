from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.schemas import (
    TodoBulkStatusResponse,
    TodoBulkStatusUpdate,
    TodoCreate,
    TodoRead,
    TodoStatsRead,
    TodoStatusUpdate,
    TodoUpdate,
)
from hrdesk.security import get_current_actor
from hrdesk.services.access import Actor
from hrdesk.services.todo_lifecycle import utcnow
from hrdesk.services.todos import (
    bulk_update_todo_status,
    create_todo,
    delete_todo,
    get_todo,
    list_todos,
    to_todo_read,
    todo_stats,
    update_todo,
    update_todo_status,
)

router = APIRouter(tags=["todos"])


@router.get("/api/todos", response_model=list[TodoRead])
def list_todos_endpoint(
    employee_id: int | None = Query(default=None, ge=1),
    status_filter: str | None = Query(default=None, alias="status"),
    priority: str | None = Query(default=None),
    project_id: int | None = Query(default=None, ge=1),
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[TodoRead]:
    now = utcnow()
    todos = list_todos(
        db,
        actor,
        employee_id=employee_id,
        status=status_filter,
        priority=priority,
        project_id=project_id,
        search=search,
        now=now,
    )
    return [to_todo_read(todo, now) for todo in todos]


@router.get("/api/todos/stats", response_model=TodoStatsRead)
def todo_stats_endpoint(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TodoStatsRead:
    return todo_stats(db, actor)


@router.post("/api/todos/bulk-status", response_model=TodoBulkStatusResponse)
def bulk_update_todo_status_endpoint(
    payload: TodoBulkStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TodoBulkStatusResponse:
    updated, target = bulk_update_todo_status(db, actor, payload.todo_ids, payload.status)
    audit_request(
        db,
        request,
        actor,
        "TODO_BULK_STATUS_UPDATED",
        entity_type="todo",
        details={"todo_ids": sorted(set(payload.todo_ids)), "status": target.value},
    )
    return TodoBulkStatusResponse(updated=updated, status=target)


@router.get("/api/todos/{todo_id}", response_model=TodoRead)
def get_todo_endpoint(
    todo_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TodoRead:
    return to_todo_read(get_todo(db, actor, todo_id))


@router.post("/api/todos", response_model=TodoRead, status_code=status.HTTP_201_CREATED)
def create_todo_endpoint(
    payload: TodoCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TodoRead:
    todo = create_todo(db, actor, payload)
    audit_request(
        db,
        request,
        actor,
        "TODO_CREATED",
        entity_type="todo",
        entity_id=todo.id,
        details={"employee_id": todo.employee_id, "priority": todo.priority.value},
    )
    return to_todo_read(todo)


@router.put("/api/todos/{todo_id}", response_model=TodoRead)
def update_todo_endpoint(
    todo_id: int,
    payload: TodoUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TodoRead:
    todo = update_todo(db, actor, todo_id, payload)
    audit_request(
        db,
        request,
        actor,
        "TODO_UPDATED",
        entity_type="todo",
        entity_id=todo.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return to_todo_read(todo)


@router.patch("/api/todos/{todo_id}/status", response_model=TodoRead)
def update_todo_status_endpoint(
    todo_id: int,
    payload: TodoStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TodoRead:
    todo = update_todo_status(db, actor, todo_id, payload.status)
    audit_request(
        db,
        request,
        actor,
        "TODO_STATUS_UPDATED",
        entity_type="todo",
        entity_id=todo.id,
        details={"status": todo.status.value},
    )
    return to_todo_read(todo)


@router.delete("/api/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_todo_endpoint(
    todo_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    delete_todo(db, actor, todo_id)
    audit_request(db, request, actor, "TODO_DELETED", entity_type="todo", entity_id=todo_id)
