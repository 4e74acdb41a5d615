# routers/bands.py — Bands and band membership
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from inventory import Conflict, NotFound, ValidationFailed, iso, enum_value
from models import Band, BandMember, BandRole, User

router = APIRouter(prefix="/api/bands", tags=["Bands"])

MANAGER_ROLES = {BandRole.OWNER, BandRole.ADMIN}


# --- Schemas ---

class BandCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    photo_url: Optional[str] = None


class BandUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    photo_url: Optional[str] = None


class MemberAdd(BaseModel):
    user_id: str = Field(..., min_length=1)
    role: BandRole = BandRole.MEMBER


# --- Helpers ---

def _band_to_dict(b: Band, role: Optional[BandRole] = None) -> dict:
    data = {
        "id": b.id, "name": b.name, "description": b.description,
        "photo_url": b.photo_url, "owner_id": b.owner_id,
        "created_at": iso(b.created_at), "updated_at": iso(b.updated_at),
    }
    if role is not None:
        data["my_role"] = enum_value(role)
    return data


async def get_membership(db: AsyncSession, band_id: int, user_id: str) -> BandMember:
    """The caller's membership of a band; non-members get NotFound."""
    result = await db.execute(
        select(BandMember).where(and_(BandMember.band_id == band_id, BandMember.user_id == user_id))
    )
    member = result.scalars().first()
    if member is None:
        raise NotFound("Band not found")
    return member


async def _require_manager(db: AsyncSession, band_id: int, user_id: str) -> BandMember:
    member = await get_membership(db, band_id, user_id)
    if member.role not in MANAGER_ROLES:
        raise HTTPException(status_code=403, detail="Only band owners and admins can do that")
    return member


async def _get_band(db: AsyncSession, band_id: int) -> Band:
    result = await db.execute(select(Band).where(Band.id == band_id))
    band = result.scalars().first()
    if band is None:
        raise NotFound("Band not found")
    return band


# --- Endpoints ---

@router.post("", status_code=201)
async def create_band(
    body: BandCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    band = Band(owner_id=user.id, **body.model_dump())
    db.add(band)
    await db.flush()
    db.add(BandMember(band_id=band.id, user_id=user.id, role=BandRole.OWNER))
    await db.commit()
    await db.refresh(band)
    return _band_to_dict(band, BandRole.OWNER)


@router.get("")
async def list_bands(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Bands the current user belongs to"""
    result = await db.execute(
        select(Band, BandMember.role)
        .join(BandMember, BandMember.band_id == Band.id)
        .where(BandMember.user_id == user.id)
        .order_by(Band.name.asc())
    )
    return [_band_to_dict(b, role) for b, role in result.all()]


@router.get("/{band_id}")
async def get_band(
    band_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    membership = await get_membership(db, band_id, user.id)
    band = await _get_band(db, band_id)

    members_q = await db.execute(
        select(BandMember, User)
        .join(User, User.id == BandMember.user_id)
        .where(BandMember.band_id == band_id)
        .order_by(BandMember.created_at.asc(), BandMember.id.asc())
    )
    return {
        **_band_to_dict(band, membership.role),
        "members": [
            {"user_id": u.id, "display_name": u.display_name, "email": u.email,
             "photo_url": u.photo_url, "role": enum_value(m.role)}
            for m, u in members_q.all()
        ],
    }


@router.patch("/{band_id}")
async def update_band(
    band_id: int,
    body: BandUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    membership = await _require_manager(db, band_id, user.id)
    band = await _get_band(db, band_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            raise ValidationFailed.for_field("name", "Name cannot be empty")
        setattr(band, field, value)
    await db.commit()
    await db.refresh(band)
    return _band_to_dict(band, membership.role)


@router.delete("/{band_id}")
async def delete_band(
    band_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Owner only. Gigs and memberships go with the band; instruments stay, unassigned."""
    membership = await get_membership(db, band_id, user.id)
    if membership.role != BandRole.OWNER:
        raise HTTPException(status_code=403, detail="Only the band owner can delete the band")
    band = await _get_band(db, band_id)
    await db.delete(band)
    await db.commit()
    return {"message": "Band deleted successfully"}


# --- Members ---

@router.post("/{band_id}/members", status_code=201)
async def add_member(
    band_id: int,
    body: MemberAdd,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Add a user to the band. A second add for the same user is a 409."""
    await _require_manager(db, band_id, user.id)
    if body.role == BandRole.OWNER:
        raise ValidationFailed.for_field("role", "A band has exactly one owner")

    target = await db.execute(select(User.id).where(User.id == body.user_id))
    if target.first() is None:
        raise ValidationFailed.for_field("user_id", "User not found")

    existing = await db.execute(
        select(BandMember.id).where(
            and_(BandMember.band_id == band_id, BandMember.user_id == body.user_id)
        )
    )
    if existing.first() is not None:
        raise Conflict("User is already a member of this band")

    member = BandMember(band_id=band_id, user_id=body.user_id, role=body.role)
    db.add(member)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User is already a member of this band")
    await db.refresh(member)
    return {"id": member.id, "band_id": band_id, "user_id": member.user_id, "role": enum_value(member.role)}


@router.delete("/{band_id}/members/{member_user_id}")
async def remove_member(
    band_id: int,
    member_user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    if member_user_id != user.id:
        await _require_manager(db, band_id, user.id)
    member = await get_membership(db, band_id, member_user_id)
    if member.role == BandRole.OWNER:
        raise HTTPException(status_code=400, detail="The band owner cannot be removed")
    await db.delete(member)
    await db.commit()
    return {"message": "Member removed"}
