from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from hrdesk.exceptions import NotFoundError, ValidationFailed
from hrdesk.models import ActiveStatus, Client, Project, User
from hrdesk.schemas import (
    ProjectCreate,
    ProjectRead,
    ProjectsByClientItem,
    ProjectStatsResponse,
    ProjectUpdate,
    UserBrief,
)
from hrdesk.services.access import Actor, authorization
from hrdesk.services.query_filters import apply_record_filter, apply_search

_TOP_CLIENTS = 5


def to_project_read(project: Project) -> ProjectRead:
    return ProjectRead(
        id=project.id,
        project_name=project.project_name,
        project_description=project.project_description,
        project_technology=project.project_technology,
        client_id=project.client_id,
        client_name=project.client.name if project.client else None,
        team_members=[UserBrief.model_validate(member) for member in project.team_members],
        project_start_date=project.project_start_date,
        project_end_date=project.project_end_date,
        status=project.status,
        created_by=project.created_by,
        created_at=project.created_at,
    )


def _base_query():
    return select(Project).options(selectinload(Project.team_members), selectinload(Project.client))


def _get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.scalar(_base_query().where(Project.id == project_id))
    if project is None:
        raise NotFoundError("Project not found")
    return project


def _validate_dates(start: date, end: date | None) -> None:
    if end is not None and end < start:
        raise ValidationFailed("Project end date cannot be before start date")


def _resolve_client(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise ValidationFailed("Client not found")
    return client


def _resolve_members(db: Session, member_ids: list[int]) -> list[User]:
    if not member_ids:
        raise ValidationFailed("At least one team member is required")
    members = list(db.scalars(select(User).where(User.id.in_(member_ids))).all())
    if len(members) != len(set(member_ids)):
        raise ValidationFailed("One or more team members not found")
    return members


def list_projects(
    db: Session,
    actor: Actor,
    *,
    search: str | None = None,
    status: ActiveStatus | None = None,
    client_id: int | None = None,
) -> list[Project]:
    record_filter = authorization.project_list(actor).require()

    stmt = apply_record_filter(_base_query(), Project, record_filter)
    stmt = apply_search(
        stmt,
        search,
        Project.project_name,
        Project.project_description,
        Project.project_technology,
    )
    if status is not None:
        stmt = stmt.where(Project.status == status)
    if client_id is not None:
        stmt = stmt.where(Project.client_id == client_id)
    stmt = stmt.order_by(Project.created_at.desc(), Project.id.desc())
    return list(db.scalars(stmt).all())


def get_project(db: Session, actor: Actor, project_id: int) -> Project:
    project = _get_project_or_404(db, project_id)
    authorization.project_read(actor, project).require()
    return project


def create_project(db: Session, actor: Actor, payload: ProjectCreate) -> Project:
    authorization.project_create(actor).require()
    _validate_dates(payload.project_start_date, payload.project_end_date)
    client = _resolve_client(db, payload.client_id)
    members = _resolve_members(db, payload.team_members)

    project = Project(
        project_name=payload.project_name,
        project_description=payload.project_description,
        project_technology=payload.project_technology,
        client_id=client.id,
        project_start_date=payload.project_start_date,
        project_end_date=payload.project_end_date,
        status=payload.status,
        created_by=actor.id,
    )
    project.client = client
    project.team_members = members
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def update_project(db: Session, actor: Actor, project_id: int, payload: ProjectUpdate) -> Project:
    project = _get_project_or_404(db, project_id)
    authorization.project_update(actor, project).require()

    fields = payload.model_fields_set
    start = payload.project_start_date or project.project_start_date
    end = payload.project_end_date if "project_end_date" in fields else project.project_end_date
    _validate_dates(start, end)

    if payload.client_id is not None:
        project.client = _resolve_client(db, payload.client_id)
        project.client_id = project.client.id
    if payload.team_members is not None:
        project.team_members = _resolve_members(db, payload.team_members)
    if payload.project_name is not None:
        project.project_name = payload.project_name
    if payload.project_description is not None:
        project.project_description = payload.project_description
    if payload.project_technology is not None:
        project.project_technology = payload.project_technology
    if payload.status is not None:
        project.status = payload.status
    project.project_start_date = start
    project.project_end_date = end

    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, actor: Actor, project_id: int) -> None:
    project = _get_project_or_404(db, project_id)
    authorization.project_delete(actor, project).require()
    db.delete(project)
    db.commit()


def project_stats(db: Session, actor: Actor) -> ProjectStatsResponse:
    record_filter = authorization.project_list(actor).require()

    def _count(status: ActiveStatus | None = None) -> int:
        stmt = apply_record_filter(select(func.count(Project.id)), Project, record_filter)
        if status is not None:
            stmt = stmt.where(Project.status == status)
        return int(db.scalar(stmt) or 0)

    project_count = func.count(Project.id).label("project_count")
    by_client_stmt = apply_record_filter(
        select(Project.client_id, Client.name, project_count).join(Client, Client.id == Project.client_id),
        Project,
        record_filter,
    )
    by_client_stmt = (
        by_client_stmt.group_by(Project.client_id, Client.name)
        .order_by(project_count.desc(), Project.client_id.asc())
        .limit(_TOP_CLIENTS)
    )
    by_client = [
        ProjectsByClientItem(client_id=client_id, client_name=client_name, count=int(count))
        for client_id, client_name, count in db.execute(by_client_stmt).all()
    ]

    return ProjectStatsResponse(
        total=_count(),
        active=_count(ActiveStatus.ACTIVE),
        inactive=_count(ActiveStatus.INACTIVE),
        projects_by_client=by_client,
    )
