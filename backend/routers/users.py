# routers/users.py — Profile of the signed-in user, plus an admin listing
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, require_role, CurrentUser
from database import get_db_session
from inventory import iso, enum_value
from models import User, UserRole

router = APIRouter(prefix="/api/users", tags=["Users"])


# --- Schemas ---

class UserOut(BaseModel):
    id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: str
    created_at: Optional[str] = None


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


def _user_to_out(u: User) -> UserOut:
    return UserOut(
        id=u.id,
        email=u.email,
        display_name=u.display_name,
        photo_url=u.photo_url,
        role=enum_value(u.role),
        created_at=iso(u.created_at),
    )


async def _load(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# --- Endpoints ---

@router.get("/me", response_model=UserOut)
async def get_me(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return _user_to_out(await _load(db, user.id))


@router.patch("/me", response_model=UserOut)
async def update_me(
    body: ProfileUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    record = await _load(db, user.id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(record, field, value)
    await db.commit()
    await db.refresh(record)
    return _user_to_out(record)


@router.get("", response_model=List[UserOut])
async def list_users(
    user: CurrentUser = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db_session),
    limit: int = Query(default=50, le=200),
    offset: int = Query(default=0, ge=0),
):
    """All registered users (admins only)"""
    result = await db.execute(
        select(User).order_by(User.created_at.desc(), User.id).offset(offset).limit(limit)
    )
    return [_user_to_out(u) for u in result.scalars().all()]
