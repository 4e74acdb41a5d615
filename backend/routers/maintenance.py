"""
Maintenance Router — completed work and scheduled upkeep
Records, schedule entries, due-soon view and completion of recurring entries
"""

import datetime
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from inventory import (
    InstrumentService, get_instrument_service, NotFound, ValidationFailed,
    record_to_dict, schedule_to_dict,
)
from models import (
    Instrument, MaintenanceRecord, MaintenanceSchedule, RecurrenceType, utcnow,
)

router = APIRouter(prefix="/api/maintenance", tags=["Maintenance"])

RECURRENCE_STEP = {
    RecurrenceType.DAILY: lambda n: relativedelta(days=n),
    RecurrenceType.WEEKLY: lambda n: relativedelta(weeks=n),
    RecurrenceType.MONTHLY: lambda n: relativedelta(months=n),
    RecurrenceType.YEARLY: lambda n: relativedelta(years=n),
}


# ── Schemas ──────────────────────────────────────────────────

class RecordCreate(BaseModel):
    instrument_id: int
    type: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    date: datetime.date
    description: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    performed_by: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class RecordUpdate(BaseModel):
    type: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1)
    date: Optional[datetime.date] = None
    description: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    performed_by: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class ScheduleCreate(BaseModel):
    instrument_id: int
    type: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    due_date: date
    description: Optional[str] = None
    recurrence_type: RecurrenceType = RecurrenceType.NONE
    recurrence_interval: Optional[int] = Field(None, ge=1)
    reminder_enabled: bool = True
    reminder_days_before: int = Field(7, ge=0)


class ScheduleUpdate(BaseModel):
    type: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1)
    due_date: Optional[date] = None
    description: Optional[str] = None
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_interval: Optional[int] = Field(None, ge=1)
    reminder_enabled: Optional[bool] = None
    reminder_days_before: Optional[int] = Field(None, ge=0)


class ScheduleComplete(BaseModel):
    completed_on: Optional[date] = None
    cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    performed_by: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


NOT_NULL = ("type", "title", "date", "due_date")


def _apply(obj, changes: dict) -> None:
    for field, value in changes.items():
        if field in NOT_NULL and value is None:
            raise ValidationFailed.for_field(field, f"{field} cannot be empty")
        setattr(obj, field, value)


def next_due_date(due: date, recurrence_type: Optional[RecurrenceType], interval: Optional[int]) -> Optional[date]:
    """Due date of the next occurrence, or None for one-off entries"""
    step = RECURRENCE_STEP.get(recurrence_type)
    if step is None:
        return None
    return due + step(interval or 1)


async def _owned_record(db: AsyncSession, record_id: int, owner_id: str) -> MaintenanceRecord:
    result = await db.execute(
        select(MaintenanceRecord)
        .join(Instrument, Instrument.id == MaintenanceRecord.instrument_id)
        .where(and_(MaintenanceRecord.id == record_id, Instrument.owner_id == owner_id))
    )
    record = result.scalars().first()
    if record is None:
        raise NotFound("Maintenance record not found")
    return record


async def _owned_schedule(db: AsyncSession, schedule_id: int, owner_id: str) -> MaintenanceSchedule:
    result = await db.execute(
        select(MaintenanceSchedule)
        .join(Instrument, Instrument.id == MaintenanceSchedule.instrument_id)
        .where(and_(MaintenanceSchedule.id == schedule_id, Instrument.owner_id == owner_id))
    )
    entry = result.scalars().first()
    if entry is None:
        raise NotFound("Maintenance schedule entry not found")
    return entry


# ── Records ──────────────────────────────────────────────────

@router.get("/records")
async def list_records(
    instrument_id: Optional[int] = None,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    stmt = (
        select(MaintenanceRecord)
        .join(Instrument, Instrument.id == MaintenanceRecord.instrument_id)
        .where(Instrument.owner_id == user.id)
    )
    if instrument_id is not None:
        stmt = stmt.where(MaintenanceRecord.instrument_id == instrument_id)
    result = await service.db.execute(
        stmt.order_by(MaintenanceRecord.date.desc(), MaintenanceRecord.id.desc())
    )
    return [record_to_dict(r) for r in result.scalars().all()]


@router.post("/records", status_code=201)
async def create_record(
    body: RecordCreate,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    await service.require_owned(user.id, body.instrument_id)
    record = MaintenanceRecord(user_id=user.id, **body.model_dump())
    service.db.add(record)
    await service.db.commit()
    await service.db.refresh(record)
    return record_to_dict(record)


@router.patch("/records/{record_id}")
async def update_record(
    record_id: int,
    body: RecordUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    record = await _owned_record(service.db, record_id, user.id)
    _apply(record, body.model_dump(exclude_unset=True))
    await service.db.commit()
    await service.db.refresh(record)
    return record_to_dict(record)


@router.delete("/records/{record_id}")
async def delete_record(
    record_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    record = await _owned_record(service.db, record_id, user.id)
    await service.db.delete(record)
    await service.db.commit()
    return {"message": "Maintenance record deleted successfully"}


# ── Schedule ─────────────────────────────────────────────────

@router.get("/schedule")
async def list_schedule(
    instrument_id: Optional[int] = None,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    stmt = (
        select(MaintenanceSchedule)
        .join(Instrument, Instrument.id == MaintenanceSchedule.instrument_id)
        .where(Instrument.owner_id == user.id)
    )
    if instrument_id is not None:
        stmt = stmt.where(MaintenanceSchedule.instrument_id == instrument_id)
    result = await service.db.execute(
        stmt.order_by(MaintenanceSchedule.due_date.asc(), MaintenanceSchedule.id.asc())
    )
    return [schedule_to_dict(s) for s in result.scalars().all()]


@router.get("/schedule/due")
async def due_schedule(
    days: int = Query(30, ge=0, le=365),
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    """Entries due within the next N days, overdue ones included"""
    horizon = utcnow().date() + timedelta(days=days)
    result = await service.db.execute(
        select(MaintenanceSchedule, Instrument.name)
        .join(Instrument, Instrument.id == MaintenanceSchedule.instrument_id)
        .where(and_(Instrument.owner_id == user.id, MaintenanceSchedule.due_date <= horizon))
        .order_by(MaintenanceSchedule.due_date.asc(), MaintenanceSchedule.id.asc())
    )
    return [
        {**schedule_to_dict(s), "instrument_name": name}
        for s, name in result.all()
    ]


@router.post("/schedule", status_code=201)
async def create_schedule(
    body: ScheduleCreate,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    await service.require_owned(user.id, body.instrument_id)
    entry = MaintenanceSchedule(user_id=user.id, **body.model_dump())
    service.db.add(entry)
    await service.db.commit()
    await service.db.refresh(entry)
    return schedule_to_dict(entry)


@router.patch("/schedule/{schedule_id}")
async def update_schedule(
    schedule_id: int,
    body: ScheduleUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    entry = await _owned_schedule(service.db, schedule_id, user.id)
    _apply(entry, body.model_dump(exclude_unset=True))
    await service.db.commit()
    await service.db.refresh(entry)
    return schedule_to_dict(entry)


@router.delete("/schedule/{schedule_id}")
async def delete_schedule(
    schedule_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    entry = await _owned_schedule(service.db, schedule_id, user.id)
    await service.db.delete(entry)
    await service.db.commit()
    return {"message": "Maintenance schedule entry deleted successfully"}


@router.post("/schedule/{schedule_id}/complete")
async def complete_schedule(
    schedule_id: int,
    body: ScheduleComplete,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    """Log the work as a maintenance record; roll recurring entries forward, drop one-offs."""
    db = service.db
    entry = await _owned_schedule(db, schedule_id, user.id)

    record = MaintenanceRecord(
        instrument_id=entry.instrument_id,
        type=entry.type,
        title=entry.title,
        description=entry.description,
        date=body.completed_on or utcnow().date(),
        cost=body.cost,
        performed_by=body.performed_by,
        location=body.location,
        notes=body.notes,
        user_id=user.id,
    )
    db.add(record)

    next_due = next_due_date(entry.due_date, entry.recurrence_type, entry.recurrence_interval)
    if next_due is None:
        await db.delete(entry)
    else:
        entry.due_date = next_due

    await db.commit()
    await db.refresh(record)
    return {
        "record": record_to_dict(record),
        "schedule": schedule_to_dict(entry) if next_due is not None else None,
    }
