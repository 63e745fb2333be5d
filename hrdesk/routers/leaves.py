from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.models import LeaveStatus
from hrdesk.schemas import (
    LeaveCreateRequest,
    LeaveListResponse,
    LeaveRead,
    LeaveStatsRead,
    LeaveUpdateRequest,
    PaginationRead,
)
from hrdesk.security import get_current_actor
from hrdesk.services.access import Actor
from hrdesk.services.leaves import (
    create_leave,
    delete_leave,
    get_leave,
    leave_stats,
    list_leaves,
    update_leave,
)
from hrdesk.services.pagination import PageRequest

router = APIRouter(tags=["leaves"])


@router.get("/api/leaves", response_model=LeaveListResponse)
def list_leaves_endpoint(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    search: str | None = Query(default=None, max_length=100),
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    employee_id: int | None = Query(default=None, ge=1),
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LeaveListResponse:
    rows, info = list_leaves(
        db,
        actor,
        page=PageRequest.build(page, limit),
        employee_id=employee_id,
        status=status_filter,
        search=search,
        from_date=from_date,
        to_date=to_date,
    )
    return LeaveListResponse(
        leaves=[LeaveRead.model_validate(row) for row in rows],
        pagination=PaginationRead.model_validate(info),
    )


@router.get("/api/leaves/stats", response_model=LeaveStatsRead)
def leave_stats_endpoint(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LeaveStatsRead:
    return leave_stats(db, actor)


@router.get("/api/leaves/{leave_id}", response_model=LeaveRead)
def get_leave_endpoint(
    leave_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LeaveRead:
    return get_leave(db, actor, leave_id)


@router.post("/api/leaves", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
def create_leave_endpoint(
    payload: LeaveCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LeaveRead:
    leave = create_leave(db, actor, payload)
    audit_request(
        db,
        request,
        actor,
        "LEAVE_CREATED",
        entity_type="leave",
        entity_id=leave.id,
        details={"employee_id": leave.employee_id, "status": leave.status.value},
    )
    return leave


@router.put("/api/leaves/{leave_id}", response_model=LeaveRead)
def update_leave_endpoint(
    leave_id: int,
    payload: LeaveUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LeaveRead:
    leave = update_leave(db, actor, leave_id, payload)
    audit_request(
        db,
        request,
        actor,
        "LEAVE_UPDATED",
        entity_type="leave",
        entity_id=leave.id,
        details={"fields": sorted(payload.model_fields_set), "status": leave.status.value},
    )
    return leave


@router.delete("/api/leaves/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_leave_endpoint(
    leave_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    delete_leave(db, actor, leave_id)
    audit_request(db, request, actor, "LEAVE_DELETED", entity_type="leave", entity_id=leave_id)
