from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.exceptions import ConflictError, NotFoundError
from hrdesk.models import ActiveStatus, Client, Project
from hrdesk.schemas import ClientCreate, ClientRead, ClientsByCountryItem, ClientStatsResponse, ClientUpdate
from hrdesk.services.access import Actor
from hrdesk.services.pagination import PageInfo, PageRequest, page_info
from hrdesk.services.query_filters import apply_search

_TOP_COUNTRIES = 5
_RECENT_CLIENTS = 5


def _get_client_or_404(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client


def _ensure_email_free(db: Session, email: str, *, exclude_id: int | None = None) -> None:
    stmt = select(Client).where(Client.email == email)
    if exclude_id is not None:
        stmt = stmt.where(Client.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError("Email already exists")


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Email already exists") from exc


def list_clients(
    db: Session,
    *,
    page: PageRequest,
    search: str | None = None,
    status: ActiveStatus | None = None,
) -> tuple[list[Client], PageInfo]:
    stmt = apply_search(
        select(Client),
        search,
        Client.name,
        Client.email,
        Client.country,
        Client.state,
        Client.city,
    )
    if status is not None:
        stmt = stmt.where(Client.status == status)

    total = int(db.scalar(select(func.count()).select_from(stmt.subquery())) or 0)
    rows = db.scalars(
        stmt.order_by(Client.created_at.desc(), Client.id.desc()).offset(page.offset).limit(page.limit)
    ).all()
    return list(rows), page_info(page, total)


def get_client(db: Session, client_id: int) -> Client:
    return _get_client_or_404(db, client_id)


def create_client(db: Session, actor: Actor, payload: ClientCreate) -> Client:
    email = payload.email.strip().lower()
    _ensure_email_free(db, email)
    client = Client(
        name=payload.name.strip(),
        email=email,
        about=(payload.about or "").strip() or None,
        country=payload.country.strip(),
        state=payload.state.strip(),
        city=payload.city.strip(),
        status=payload.status,
        created_by=actor.id,
    )
    db.add(client)
    _commit(db)
    db.refresh(client)
    return client


def update_client(db: Session, client_id: int, payload: ClientUpdate) -> Client:
    client = _get_client_or_404(db, client_id)
    if payload.email is not None:
        email = payload.email.strip().lower()
        _ensure_email_free(db, email, exclude_id=client.id)
        client.email = email
    for field_name in ("name", "country", "state", "city"):
        value = getattr(payload, field_name)
        if value is not None:
            setattr(client, field_name, value.strip())
    if "about" in payload.model_fields_set:
        client.about = (payload.about or "").strip() or None
    if payload.status is not None:
        client.status = payload.status
    _commit(db)
    db.refresh(client)
    return client


def delete_client(db: Session, client_id: int) -> None:
    client = _get_client_or_404(db, client_id)
    project_count = int(db.scalar(select(func.count(Project.id)).where(Project.client_id == client.id)) or 0)
    if project_count:
        raise ConflictError("Client has projects and cannot be deleted")
    db.delete(client)
    db.commit()


def client_stats(db: Session) -> ClientStatsResponse:
    def _count(status: ActiveStatus | None = None) -> int:
        stmt = select(func.count(Client.id))
        if status is not None:
            stmt = stmt.where(Client.status == status)
        return int(db.scalar(stmt) or 0)

    client_count = func.count(Client.id).label("client_count")
    by_country_stmt = (
        select(Client.country, client_count)
        .group_by(Client.country)
        .order_by(client_count.desc(), Client.country.asc())
        .limit(_TOP_COUNTRIES)
    )
    by_country = [
        ClientsByCountryItem(country=country, count=int(count))
        for country, count in db.execute(by_country_stmt).all()
    ]
    recent = db.scalars(
        select(Client).order_by(Client.created_at.desc(), Client.id.desc()).limit(_RECENT_CLIENTS)
    ).all()

    return ClientStatsResponse(
        total=_count(),
        active=_count(ActiveStatus.ACTIVE),
        inactive=_count(ActiveStatus.INACTIVE),
        clients_by_country=by_country,
        recent_clients=[ClientRead.model_validate(client) for client in recent],
    )
