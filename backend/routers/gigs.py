# routers/gigs.py — Gigs and gig gear lists
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import select, and_, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from inventory import (
    InstrumentService, Conflict, NotFound, ValidationFailed, iso,
)
from models import Gig, GigGear, BandMember, Instrument, utcnow
from routers.bands import get_membership

router = APIRouter(prefix="/api/gigs", tags=["Gigs"])


# ============================================================
# SCHEMAS
# ============================================================

class GigCreate(BaseModel):
    band_id: int
    title: str = Field(..., min_length=1, max_length=200)
    start_time: datetime
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    venue: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    notes: Optional[str] = None


class GigUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    venue: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    notes: Optional[str] = None


class GearAdd(BaseModel):
    instrument_id: int
    notes: Optional[str] = None
    is_packed: bool = False


class GearUpdate(BaseModel):
    notes: Optional[str] = None
    is_packed: Optional[bool] = None


# ============================================================
# HELPERS
# ============================================================

def _gig_to_dict(g: Gig) -> dict:
    return {
        "id": g.id, "band_id": g.band_id, "title": g.title,
        "description": g.description, "start_time": iso(g.start_time),
        "end_time": iso(g.end_time), "venue": g.venue, "address": g.address,
        "city": g.city, "state": g.state, "country": g.country,
        "postal_code": g.postal_code, "notes": g.notes,
        "created_by": g.created_by, "created_at": iso(g.created_at),
    }


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_utc(changes: dict) -> dict:
    """Store gig times in UTC; naive input is taken as UTC already."""
    for field in ("start_time", "end_time"):
        if changes.get(field) is not None:
            changes[field] = _as_utc(changes[field]).astimezone(timezone.utc)
    return changes


def _check_window(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and _as_utc(end) < _as_utc(start):
        raise ValidationFailed.for_field("end_time", "End time must be after start time")


async def _get_gig(db: AsyncSession, gig_id: int, user_id: str) -> Gig:
    """A gig of one of the caller's bands"""
    result = await db.execute(
        select(Gig)
        .join(BandMember, BandMember.band_id == Gig.band_id)
        .where(and_(Gig.id == gig_id, BandMember.user_id == user_id))
    )
    gig = result.scalars().first()
    if gig is None:
        raise NotFound("Gig not found")
    return gig


# ============================================================
# GIGS
# ============================================================

@router.post("", status_code=201)
async def create_gig(
    body: GigCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await get_membership(db, body.band_id, user.id)
    except NotFound:
        raise ValidationFailed.for_field("band_id", "Band not found")
    _check_window(body.start_time, body.end_time)

    gig = Gig(created_by=user.id, **_to_utc(body.model_dump()))
    db.add(gig)
    await db.commit()
    await db.refresh(gig)
    return _gig_to_dict(gig)


@router.get("")
async def list_gigs(
    upcoming: bool = Query(False, description="Only gigs that have not started yet"),
    band_id: Optional[int] = None,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    stmt = (
        select(Gig)
        .join(BandMember, BandMember.band_id == Gig.band_id)
        .where(BandMember.user_id == user.id)
    )
    if upcoming:
        stmt = stmt.where(Gig.start_time >= utcnow())
    if band_id is not None:
        stmt = stmt.where(Gig.band_id == band_id)
    result = await db.execute(stmt.order_by(Gig.start_time.asc(), Gig.id.asc()))
    return [_gig_to_dict(g) for g in result.scalars().all()]


@router.get("/{gig_id}")
async def get_gig(
    gig_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    gig = await _get_gig(db, gig_id, user.id)
    gear_q = await db.execute(
        select(GigGear, Instrument)
        .join(Instrument, Instrument.id == GigGear.instrument_id)
        .where(GigGear.gig_id == gig_id)
        .order_by(Instrument.name.asc())
    )
    gear = [
        {"instrument_id": i.id, "name": i.name, "type": i.type,
         "owner_id": i.owner_id, "notes": gg.notes, "is_packed": bool(gg.is_packed)}
        for gg, i in gear_q.all()
    ]
    return {
        **_gig_to_dict(gig),
        "gear": gear,
        "packed": sum(1 for g in gear if g["is_packed"]),
    }


@router.patch("/{gig_id}")
async def update_gig(
    gig_id: int,
    body: GigUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    gig = await _get_gig(db, gig_id, user.id)
    changes = _to_utc(body.model_dump(exclude_unset=True))
    for field in ("title", "start_time"):
        if field in changes and changes[field] is None:
            raise ValidationFailed.for_field(field, f"{field} cannot be empty")
    _check_window(changes.get("start_time", gig.start_time), changes.get("end_time", gig.end_time))

    for field, value in changes.items():
        setattr(gig, field, value)
    await db.commit()
    await db.refresh(gig)
    return _gig_to_dict(gig)


@router.delete("/{gig_id}")
async def delete_gig(
    gig_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    gig = await _get_gig(db, gig_id, user.id)
    await db.delete(gig)
    await db.commit()
    return {"message": "Gig deleted successfully"}


# ============================================================
# GEAR LIST
# ============================================================

@router.post("/{gig_id}/gear", status_code=201)
async def add_gear(
    gig_id: int,
    body: GearAdd,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Put one of the caller's instruments on the gig's gear list. Duplicates are a 409."""
    await _get_gig(db, gig_id, user.id)
    try:
        await InstrumentService(db).require_owned(user.id, body.instrument_id)
    except NotFound:
        raise ValidationFailed.for_field("instrument_id", "Instrument not found")

    existing = await db.execute(
        select(GigGear.id).where(
            and_(GigGear.gig_id == gig_id, GigGear.instrument_id == body.instrument_id)
        )
    )
    if existing.first() is not None:
        raise Conflict("Instrument is already on this gig's gear list")

    item = GigGear(gig_id=gig_id, **body.model_dump())
    db.add(item)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Instrument is already on this gig's gear list")
    await db.refresh(item)
    return {"id": item.id, "gig_id": gig_id, "instrument_id": item.instrument_id,
            "notes": item.notes, "is_packed": bool(item.is_packed)}


async def _get_gear(db: AsyncSession, gig_id: int, instrument_id: int) -> GigGear:
    result = await db.execute(
        select(GigGear).where(
            and_(GigGear.gig_id == gig_id, GigGear.instrument_id == instrument_id)
        )
    )
    item = result.scalars().first()
    if item is None:
        raise NotFound("Instrument is not on this gig's gear list")
    return item


@router.patch("/{gig_id}/gear/{instrument_id}")
async def update_gear(
    gig_id: int,
    instrument_id: int,
    body: GearUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await _get_gig(db, gig_id, user.id)
    item = await _get_gear(db, gig_id, instrument_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if field == "is_packed" and value is None:
            continue
        setattr(item, field, value)
    await db.commit()
    await db.refresh(item)
    return {"id": item.id, "gig_id": gig_id, "instrument_id": instrument_id,
            "notes": item.notes, "is_packed": bool(item.is_packed)}


@router.delete("/{gig_id}/gear/{instrument_id}")
async def remove_gear(
    gig_id: int,
    instrument_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await _get_gig(db, gig_id, user.id)
    result = await db.execute(
        delete(GigGear).where(
            and_(GigGear.gig_id == gig_id, GigGear.instrument_id == instrument_id)
        )
    )
    await db.commit()
    if not result.rowcount:
        raise NotFound("Instrument is not on this gig's gear list")
    return {"message": "Removed from gear list"}
