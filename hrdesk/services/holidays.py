from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrdesk.exceptions import NotFoundError, ValidationFailed
from hrdesk.models import Holiday
from hrdesk.schemas import HolidayCreate, HolidayUpdate


def _get_holiday_or_404(db: Session, holiday_id: int) -> Holiday:
    holiday = db.get(Holiday, holiday_id)
    if holiday is None:
        raise NotFoundError("Holiday not found")
    return holiday


def list_holidays(db: Session, *, from_date: date | None = None, to_date: date | None = None) -> list[Holiday]:
    if from_date is not None and to_date is not None and from_date > to_date:
        raise ValidationFailed("From date cannot be after to date")
    stmt = select(Holiday)
    if from_date is not None:
        stmt = stmt.where(Holiday.holiday_date >= from_date)
    if to_date is not None:
        stmt = stmt.where(Holiday.holiday_date <= to_date)
    return list(db.scalars(stmt.order_by(Holiday.holiday_date.asc(), Holiday.id.asc())).all())


def create_holiday(db: Session, payload: HolidayCreate) -> Holiday:
    holiday = Holiday(title=payload.title, holiday_date=payload.holiday_date)
    db.add(holiday)
    db.commit()
    db.refresh(holiday)
    return holiday


def update_holiday(db: Session, holiday_id: int, payload: HolidayUpdate) -> Holiday:
    holiday = _get_holiday_or_404(db, holiday_id)
    if payload.title is not None:
        holiday.title = payload.title
    if payload.holiday_date is not None:
        holiday.holiday_date = payload.holiday_date
    db.commit()
    db.refresh(holiday)
    return holiday


def delete_holiday(db: Session, holiday_id: int) -> None:
    holiday = _get_holiday_or_404(db, holiday_id)
    db.delete(holiday)
    db.commit()
