from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.exceptions import ConflictError, NotFoundError
from hrdesk.models import Department
from hrdesk.schemas import DepartmentCreate, DepartmentUpdate


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Department name already exists") from exc


def list_departments(db: Session, *, include_inactive: bool = False) -> list[Department]:
    stmt = select(Department).order_by(Department.name.asc())
    if not include_inactive:
        stmt = stmt.where(Department.is_active.is_(True))
    return list(db.scalars(stmt).all())


def get_department(db: Session, department_id: int) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise NotFoundError("Department not found")
    return department


def create_department(db: Session, payload: DepartmentCreate) -> Department:
    department = Department(
        name=payload.name.strip(),
        description=(payload.description or "").strip() or None,
        is_active=True,
    )
    db.add(department)
    _commit(db)
    db.refresh(department)
    return department


def update_department(db: Session, department_id: int, payload: DepartmentUpdate) -> Department:
    department = get_department(db, department_id)
    if payload.name is not None:
        department.name = payload.name.strip()
    if "description" in payload.model_fields_set:
        department.description = (payload.description or "").strip() or None
    _commit(db)
    db.refresh(department)
    return department


def soft_delete_department(db: Session, department_id: int) -> Department:
    """Departments are never removed; they are hidden from listings instead."""
    department = get_department(db, department_id)
    department.is_active = False
    db.commit()
    db.refresh(department)
    return department
