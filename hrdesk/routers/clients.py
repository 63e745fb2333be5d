from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.models import ActiveStatus
from hrdesk.schemas import (
    ClientCreate,
    ClientListResponse,
    ClientRead,
    ClientStatsResponse,
    ClientUpdate,
    PaginationRead,
)
from hrdesk.security import get_current_actor, require_staff
from hrdesk.services.access import Actor
from hrdesk.services.clients import (
    client_stats,
    create_client,
    delete_client,
    get_client,
    list_clients,
    update_client,
)
from hrdesk.services.pagination import PageRequest

router = APIRouter(tags=["clients"])


@router.get("/api/clients", response_model=ClientListResponse)
def list_clients_endpoint(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    search: str | None = Query(default=None, max_length=100),
    status_filter: ActiveStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ClientListResponse:
    rows, info = list_clients(db, page=PageRequest.build(page, limit), search=search, status=status_filter)
    return ClientListResponse(
        clients=[ClientRead.model_validate(row) for row in rows],
        pagination=PaginationRead.model_validate(info),
    )


@router.get("/api/clients/stats", response_model=ClientStatsResponse)
def client_stats_endpoint(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> ClientStatsResponse:
    return client_stats(db)


@router.get("/api/clients/{client_id}", response_model=ClientRead)
def get_client_endpoint(
    client_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ClientRead:
    return get_client(db, client_id)


@router.post("/api/clients", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def create_client_endpoint(
    payload: ClientCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> ClientRead:
    client = create_client(db, actor, payload)
    audit_request(
        db,
        request,
        actor,
        "CLIENT_CREATED",
        entity_type="client",
        entity_id=client.id,
        details={"name": client.name, "email": client.email},
    )
    return client


@router.put("/api/clients/{client_id}", response_model=ClientRead)
def update_client_endpoint(
    client_id: int,
    payload: ClientUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> ClientRead:
    client = update_client(db, client_id, payload)
    audit_request(
        db,
        request,
        actor,
        "CLIENT_UPDATED",
        entity_type="client",
        entity_id=client.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return client


@router.delete("/api/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client_endpoint(
    client_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> None:
    delete_client(db, client_id)
    audit_request(db, request, actor, "CLIENT_DELETED", entity_type="client", entity_id=client_id)
