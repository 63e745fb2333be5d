from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.models import Role
from hrdesk.schemas import DashboardStatsRead, UserCreate, UserRead, UserUpdate
from hrdesk.security import require_staff
from hrdesk.services.access import Actor
from hrdesk.services.users import (
    create_user,
    dashboard_stats,
    deactivate_user,
    get_user,
    list_users,
    update_user,
)

router = APIRouter(tags=["employees"])


@router.get("/api/employees", response_model=list[UserRead])
def list_employees_endpoint(
    role: Role | None = Query(default=Role.EMPLOYEE),
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> list[UserRead]:
    return list_users(db, role=role, search=search)


@router.post("/api/employees", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_employee_endpoint(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> UserRead:
    user = create_user(db, actor, payload)
    audit_request(
        db,
        request,
        actor,
        "USER_CREATED",
        entity_type="user",
        entity_id=user.id,
        details={"email": user.email, "role": user.role.value},
    )
    return user


@router.get("/api/employees/{user_id}", response_model=UserRead)
def get_employee_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> UserRead:
    return get_user(db, user_id)


@router.put("/api/employees/{user_id}", response_model=UserRead)
def update_employee_endpoint(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> UserRead:
    user = update_user(db, actor, user_id, payload)
    audit_request(
        db,
        request,
        actor,
        "USER_UPDATED",
        entity_type="user",
        entity_id=user.id,
        details={
            "fields": sorted(payload.model_fields_set - {"password"}),
            "password_changed": payload.password is not None,
        },
    )
    return user


@router.delete("/api/employees/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_employee_endpoint(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> None:
    deactivate_user(db, actor, user_id)
    audit_request(db, request, actor, "USER_DEACTIVATED", entity_type="user", entity_id=user_id)


@router.get("/api/dashboard/stats", response_model=DashboardStatsRead)
def dashboard_stats_endpoint(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> DashboardStatsRead:
    return dashboard_stats(db)
