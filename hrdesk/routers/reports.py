from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.schemas import ReportCreate, ReportRead, ReportUpdate
from hrdesk.security import get_current_actor
from hrdesk.services.access import Actor
from hrdesk.services.reports import create_report, get_report, list_reports, to_report_read, update_report

router = APIRouter(tags=["reports"])


@router.get("/api/reports", response_model=list[ReportRead])
def list_reports_endpoint(
    employee_id: int | None = Query(default=None, ge=1),
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[ReportRead]:
    reports = list_reports(db, actor, employee_id=employee_id, from_date=from_date, to_date=to_date)
    return [to_report_read(report) for report in reports]


@router.get("/api/reports/{report_id}", response_model=ReportRead)
def get_report_endpoint(
    report_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ReportRead:
    return to_report_read(get_report(db, actor, report_id))


@router.post("/api/reports", response_model=ReportRead, status_code=status.HTTP_201_CREATED)
def create_report_endpoint(
    payload: ReportCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ReportRead:
    report = create_report(db, actor, payload)
    audit_request(
        db,
        request,
        actor,
        "REPORT_CREATED",
        entity_type="report",
        entity_id=report.id,
        details={"working_minutes": report.working_minutes},
    )
    return to_report_read(report)


@router.put("/api/reports/{report_id}", response_model=ReportRead)
def update_report_endpoint(
    report_id: int,
    payload: ReportUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ReportRead:
    report = update_report(db, actor, report_id, payload)
    audit_request(
        db,
        request,
        actor,
        "REPORT_UPDATED",
        entity_type="report",
        entity_id=report.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return to_report_read(report)
