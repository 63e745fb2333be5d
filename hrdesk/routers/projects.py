from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.models import ActiveStatus
from hrdesk.schemas import ProjectCreate, ProjectRead, ProjectStatsResponse, ProjectUpdate
from hrdesk.security import get_current_actor
from hrdesk.services.access import Actor
from hrdesk.services.projects import (
    create_project,
    delete_project,
    get_project,
    list_projects,
    project_stats,
    to_project_read,
    update_project,
)

router = APIRouter(tags=["projects"])


@router.get("/api/projects", response_model=list[ProjectRead])
def list_projects_endpoint(
    search: str | None = Query(default=None, max_length=100),
    status_filter: ActiveStatus | None = Query(default=None, alias="status"),
    client_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[ProjectRead]:
    projects = list_projects(db, actor, search=search, status=status_filter, client_id=client_id)
    return [to_project_read(project) for project in projects]


@router.get("/api/projects/stats/overview", response_model=ProjectStatsResponse)
def project_stats_endpoint(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ProjectStatsResponse:
    return project_stats(db, actor)


@router.get("/api/projects/client/{client_id}", response_model=list[ProjectRead])
def list_client_projects_endpoint(
    client_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[ProjectRead]:
    return [to_project_read(project) for project in list_projects(db, actor, client_id=client_id)]


@router.get("/api/projects/{project_id}", response_model=ProjectRead)
def get_project_endpoint(
    project_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ProjectRead:
    return to_project_read(get_project(db, actor, project_id))


@router.post("/api/projects", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project_endpoint(
    payload: ProjectCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ProjectRead:
    project = create_project(db, actor, payload)
    audit_request(
        db,
        request,
        actor,
        "PROJECT_CREATED",
        entity_type="project",
        entity_id=project.id,
        details={"client_id": project.client_id, "team_members": project.team_member_ids},
    )
    return to_project_read(project)


@router.put("/api/projects/{project_id}", response_model=ProjectRead)
def update_project_endpoint(
    project_id: int,
    payload: ProjectUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ProjectRead:
    project = update_project(db, actor, project_id, payload)
    audit_request(
        db,
        request,
        actor,
        "PROJECT_UPDATED",
        entity_type="project",
        entity_id=project.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return to_project_read(project)


@router.delete("/api/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project_endpoint(
    project_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    delete_project(db, actor, project_id)
    audit_request(db, request, actor, "PROJECT_DELETED", entity_type="project", entity_id=project_id)
