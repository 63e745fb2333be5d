from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.models import Role
from hrdesk.schemas import DepartmentCreate, DepartmentRead, DepartmentUpdate
from hrdesk.security import get_current_actor, require_staff
from hrdesk.services.access import Actor
from hrdesk.services.departments import (
    create_department,
    get_department,
    list_departments,
    soft_delete_department,
    update_department,
)

router = APIRouter(tags=["departments"])


@router.get("/api/departments", response_model=list[DepartmentRead])
def list_departments_endpoint(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[DepartmentRead]:
    # Inactive departments are an admin concern only.
    return list_departments(db, include_inactive=include_inactive and actor.role is not Role.EMPLOYEE)


@router.get("/api/departments/{department_id}", response_model=DepartmentRead)
def get_department_endpoint(
    department_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> DepartmentRead:
    return get_department(db, department_id)


@router.post("/api/departments", response_model=DepartmentRead, status_code=status.HTTP_201_CREATED)
def create_department_endpoint(
    payload: DepartmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> DepartmentRead:
    department = create_department(db, payload)
    audit_request(
        db,
        request,
        actor,
        "DEPARTMENT_CREATED",
        entity_type="department",
        entity_id=department.id,
        details={"name": department.name},
    )
    return department


@router.put("/api/departments/{department_id}", response_model=DepartmentRead)
def update_department_endpoint(
    department_id: int,
    payload: DepartmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> DepartmentRead:
    department = update_department(db, department_id, payload)
    audit_request(
        db,
        request,
        actor,
        "DEPARTMENT_UPDATED",
        entity_type="department",
        entity_id=department.id,
        details={"name": department.name},
    )
    return department


@router.delete("/api/departments/{department_id}", response_model=DepartmentRead)
def delete_department_endpoint(
    department_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> DepartmentRead:
    department = soft_delete_department(db, department_id)
    audit_request(
        db,
        request,
        actor,
        "DEPARTMENT_DEACTIVATED",
        entity_type="department",
        entity_id=department.id,
    )
    return department
