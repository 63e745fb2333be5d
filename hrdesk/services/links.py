from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrdesk.exceptions import NotFoundError
from hrdesk.models import Link, LinkTab
from hrdesk.schemas import LinkCreate, LinkStatsRead, LinkUpdate
from hrdesk.services.access import Actor, authorization
from hrdesk.services.pagination import PageInfo, PageRequest, page_info
from hrdesk.services.query_filters import apply_record_filter, apply_search


def _get_link_or_404(db: Session, link_id: int) -> Link:
    link = db.get(Link, link_id)
    if link is None:
        raise NotFoundError("Link not found")
    return link


def list_links(
    db: Session,
    actor: Actor,
    *,
    page: PageRequest,
    tab: LinkTab | None = None,
    search: str | None = None,
) -> tuple[list[Link], PageInfo]:
    record_filter = authorization.link_list(actor).require()

    stmt = apply_record_filter(select(Link), Link, record_filter)
    stmt = apply_search(stmt, search, Link.title, Link.url)
    if tab is not None:
        stmt = stmt.where(Link.tab == tab)

    total = int(db.scalar(select(func.count()).select_from(stmt.subquery())) or 0)
    rows = db.scalars(
        stmt.order_by(Link.created_at.desc(), Link.id.desc()).offset(page.offset).limit(page.limit)
    ).all()
    return list(rows), page_info(page, total)


def get_link(db: Session, actor: Actor, link_id: int) -> Link:
    link = _get_link_or_404(db, link_id)
    authorization.link_read(actor, link).require()
    return link


def create_link(db: Session, actor: Actor, payload: LinkCreate) -> Link:
    authorization.link_create(actor).require()
    link = Link(title=payload.title, url=payload.url, tab=payload.tab, created_by=actor.id)
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def update_link(db: Session, actor: Actor, link_id: int, payload: LinkUpdate) -> Link:
    link = _get_link_or_404(db, link_id)
    authorization.link_update(actor, link).require()

    if payload.title is not None:
        link.title = payload.title
    if payload.url is not None:
        link.url = payload.url
    if payload.tab is not None:
        link.tab = payload.tab
    db.commit()
    db.refresh(link)
    return link


def delete_link(db: Session, actor: Actor, link_id: int) -> None:
    link = _get_link_or_404(db, link_id)
    authorization.link_delete(actor, link).require()
    db.delete(link)
    db.commit()


def link_stats(db: Session, actor: Actor) -> LinkStatsRead:
    record_filter = authorization.link_list(actor).require()

    def _count(tab: LinkTab | None = None) -> int:
        stmt = apply_record_filter(select(func.count(Link.id)), Link, record_filter)
        if tab is not None:
            stmt = stmt.where(Link.tab == tab)
        return int(db.scalar(stmt) or 0)

    return LinkStatsRead(
        git=_count(LinkTab.GIT),
        excel=_count(LinkTab.EXCEL),
        codebase=_count(LinkTab.CODEBASE),
        total=_count(),
    )
