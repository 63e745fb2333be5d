from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailed
from hrdesk.models import ActiveStatus, Client, Department, Project, Role, User
from hrdesk.schemas import DashboardStatsRead, UserCreate, UserUpdate
from hrdesk.security import hash_password, verify_password
from hrdesk.services.access import Actor
from hrdesk.services.query_filters import apply_search


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = db.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("Employee not found")
    return user


def list_users(db: Session, *, role: Role | None = Role.EMPLOYEE, search: str | None = None) -> list[User]:
    stmt = select(User).where(User.is_active.is_(True))
    if role is not None:
        stmt = stmt.where(User.role == role)
    stmt = apply_search(stmt, search, User.first_name, User.last_name, User.email)
    stmt = stmt.order_by(User.first_name.asc(), User.last_name.asc(), User.id.asc())
    return list(db.scalars(stmt).all())


def _ensure_department(db: Session, department_id: int) -> None:
    department = db.get(Department, department_id)
    if department is None or not department.is_active:
        raise ValidationFailed("Department not found")


def _ensure_can_manage(actor: Actor, user: User) -> None:
    if user.role is not Role.EMPLOYEE and actor.role is not Role.SUPER_ADMIN:
        raise ForbiddenError("Only a super admin can change admin accounts")


def create_user(db: Session, actor: Actor | None, payload: UserCreate) -> User:
    """Create a login. ``actor=None`` is the bootstrap path used by the CLI script."""
    if actor is not None and payload.role is not Role.EMPLOYEE and actor.role is not Role.SUPER_ADMIN:
        raise ForbiddenError("Only a super admin can create admin accounts")

    email = payload.email.strip().lower()
    if db.scalar(select(User).where(User.email == email)) is not None:
        raise ConflictError("Email already exists")
    if payload.department_id is not None:
        _ensure_department(db, payload.department_id)

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        role=payload.role,
        department_id=payload.department_id,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Email already exists") from exc
    db.refresh(user)
    return user


def update_user(db: Session, actor: Actor, user_id: int, payload: UserUpdate) -> User:
    user = get_user(db, user_id)
    _ensure_can_manage(actor, user)
    if payload.role is not None and payload.role is not Role.EMPLOYEE and actor.role is not Role.SUPER_ADMIN:
        raise ForbiddenError("Only a super admin can grant admin roles")
    if payload.department_id is not None:
        _ensure_department(db, payload.department_id)

    if payload.first_name is not None:
        user.first_name = payload.first_name
    if payload.last_name is not None:
        user.last_name = payload.last_name
    if payload.role is not None:
        user.role = payload.role
    if "department_id" in payload.model_fields_set:
        user.department_id = payload.department_id
    if payload.password is not None:
        user.password_hash = hash_password(payload.password)
    db.commit()
    db.refresh(user)
    return user


def deactivate_user(db: Session, actor: Actor, user_id: int) -> User:
    """Soft delete: the row stays so todos, leaves and reports keep their owner."""
    if actor.id == user_id:
        raise ValidationFailed("You cannot deactivate your own account")
    user = get_user(db, user_id)
    _ensure_can_manage(actor, user)
    user.is_active = False
    db.commit()
    return user


def dashboard_stats(db: Session) -> DashboardStatsRead:
    def _count(stmt) -> int:
        return int(db.scalar(stmt) or 0)

    return DashboardStatsRead(
        total_admins=_count(
            select(func.count(User.id)).where(User.role.in_([Role.ADMIN, Role.SUPER_ADMIN]))
        ),
        total_employees=_count(select(func.count(User.id)).where(User.role == Role.EMPLOYEE)),
        total_departments=_count(select(func.count(Department.id)).where(Department.is_active.is_(True))),
        total_clients=_count(select(func.count(Client.id))),
        total_projects=_count(select(func.count(Project.id))),
        active_projects=_count(select(func.count(Project.id)).where(Project.status == ActiveStatus.ACTIVE)),
    )
