from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_request
from hrdesk.db import get_db
from hrdesk.schemas import HolidayCreate, HolidayRead, HolidayUpdate
from hrdesk.security import get_current_actor, require_staff
from hrdesk.services.access import Actor
from hrdesk.services.holidays import create_holiday, delete_holiday, list_holidays, update_holiday

router = APIRouter(tags=["holidays"])


@router.get("/api/holidays", response_model=list[HolidayRead])
def list_holidays_endpoint(
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[HolidayRead]:
    return list_holidays(db, from_date=from_date, to_date=to_date)


@router.post("/api/holidays", response_model=HolidayRead, status_code=status.HTTP_201_CREATED)
def create_holiday_endpoint(
    payload: HolidayCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> HolidayRead:
    holiday = create_holiday(db, payload)
    audit_request(
        db,
        request,
        actor,
        "HOLIDAY_CREATED",
        entity_type="holiday",
        entity_id=holiday.id,
        details={"holiday_date": holiday.holiday_date.isoformat()},
    )
    return holiday


@router.put("/api/holidays/{holiday_id}", response_model=HolidayRead)
def update_holiday_endpoint(
    holiday_id: int,
    payload: HolidayUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> HolidayRead:
    holiday = update_holiday(db, holiday_id, payload)
    audit_request(
        db,
        request,
        actor,
        "HOLIDAY_UPDATED",
        entity_type="holiday",
        entity_id=holiday.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return holiday


@router.delete("/api/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday_endpoint(
    holiday_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> None:
    delete_holiday(db, holiday_id)
    audit_request(db, request, actor, "HOLIDAY_DELETED", entity_type="holiday", entity_id=holiday_id)
