from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.models import LinkTab
from hrdesk.schemas import LinkCreate, LinkListResponse, LinkRead, LinkStatsRead, LinkUpdate, PaginationRead
from hrdesk.security import get_current_actor
from hrdesk.services.access import Actor
from hrdesk.services.links import create_link, delete_link, get_link, link_stats, list_links, update_link
from hrdesk.services.pagination import PageRequest

router = APIRouter(tags=["links"])


@router.get("/api/links", response_model=LinkListResponse)
def list_links_endpoint(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    tab: LinkTab | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LinkListResponse:
    rows, info = list_links(db, actor, page=PageRequest.build(page, limit), tab=tab, search=search)
    return LinkListResponse(
        links=[LinkRead.model_validate(row) for row in rows],
        pagination=PaginationRead.model_validate(info),
    )


@router.get("/api/links/stats", response_model=LinkStatsRead)
def link_stats_endpoint(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LinkStatsRead:
    return link_stats(db, actor)


@router.get("/api/links/{link_id}", response_model=LinkRead)
def get_link_endpoint(
    link_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LinkRead:
    return get_link(db, actor, link_id)


@router.post("/api/links", response_model=LinkRead, status_code=status.HTTP_201_CREATED)
def create_link_endpoint(
    payload: LinkCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LinkRead:
    link = create_link(db, actor, payload)
    audit_request(
        db,
        request,
        actor,
        "LINK_CREATED",
        entity_type="link",
        entity_id=link.id,
        details={"tab": link.tab.value, "title": link.title},
    )
    return link


@router.put("/api/links/{link_id}", response_model=LinkRead)
def update_link_endpoint(
    link_id: int,
    payload: LinkUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> LinkRead:
    link = update_link(db, actor, link_id, payload)
    audit_request(
        db,
        request,
        actor,
        "LINK_UPDATED",
        entity_type="link",
        entity_id=link.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return link


@router.delete("/api/links/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_link_endpoint(
    link_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    delete_link(db, actor, link_id)
    audit_request(db, request, actor, "LINK_DELETED", entity_type="link", entity_id=link_id)
