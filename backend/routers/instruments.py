"""
Instruments Router — owner-scoped gear inventory
Instrument CRUD, the instrument detail aggregate, images and value history
"""

import datetime
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import delete, and_

from auth import get_current_user, CurrentUser
from inventory import (
    InstrumentService, get_instrument_service, NotFound,
    instrument_to_dict, image_to_dict, value_to_dict,
)
from models import InstrumentImage, ValueSource

router = APIRouter(prefix="/api/instruments", tags=["Instruments"])


# ── Schemas ──────────────────────────────────────────────────

class InstrumentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    make: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    current_value: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    condition: Optional[str] = None
    insured: Optional[bool] = None
    insurance_policy: Optional[str] = None
    notes: Optional[str] = None
    band_id: Optional[int] = None
    storage_location: Optional[str] = None


class InstrumentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    make: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    current_value: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    condition: Optional[str] = None
    insured: Optional[bool] = None
    insurance_policy: Optional[str] = None
    notes: Optional[str] = None
    band_id: Optional[int] = None
    storage_location: Optional[str] = None
    is_active: Optional[bool] = None


class ImageCreate(BaseModel):
    image_url: str = Field(..., min_length=1)
    thumbnail_url: Optional[str] = None
    caption: Optional[str] = None
    display_order: int = 0


class ValueCreate(BaseModel):
    value: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    source: ValueSource = ValueSource.APPRAISAL
    date: Optional[datetime.date] = None
    notes: Optional[str] = None


# ── Instruments ──────────────────────────────────────────────

@router.get("")
async def list_instruments(
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    """All instruments owned by the current user, by name"""
    return [instrument_to_dict(i) for i in await service.list(user.id)]


@router.get("/{instrument_id}")
async def get_instrument(
    instrument_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    return await service.get_detail(user.id, instrument_id)


@router.post("", status_code=201)
async def create_instrument(
    body: InstrumentCreate,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    instrument_id = await service.create(user.id, body.model_dump(exclude_unset=True))
    return {"id": instrument_id, "message": "Instrument created successfully"}


@router.put("/{instrument_id}")
async def update_instrument(
    instrument_id: int,
    body: InstrumentUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    await service.update(user.id, instrument_id, body.model_dump(exclude_unset=True))
    return {"message": "Instrument updated successfully"}


@router.delete("/{instrument_id}")
async def delete_instrument(
    instrument_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    await service.delete(user.id, instrument_id)
    return {"message": "Instrument deleted successfully"}


# ── Images ───────────────────────────────────────────────────

@router.post("/{instrument_id}/images", status_code=201)
async def add_image(
    instrument_id: int,
    body: ImageCreate,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    await service.require_owned(user.id, instrument_id)
    image = InstrumentImage(instrument_id=instrument_id, **body.model_dump())
    service.db.add(image)
    await service.db.commit()
    await service.db.refresh(image)
    return image_to_dict(image)


@router.delete("/{instrument_id}/images/{image_id}")
async def delete_image(
    instrument_id: int,
    image_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    await service.require_owned(user.id, instrument_id)
    result = await service.db.execute(
        delete(InstrumentImage).where(
            and_(InstrumentImage.id == image_id, InstrumentImage.instrument_id == instrument_id)
        )
    )
    await service.db.commit()
    if not result.rowcount:
        raise NotFound("Image not found")
    return {"message": "Image deleted successfully"}


# ── Value history ────────────────────────────────────────────

@router.get("/{instrument_id}/value-history")
async def value_history(
    instrument_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    return [value_to_dict(v) for v in await service.value_history(user.id, instrument_id)]


@router.post("/{instrument_id}/value-history", status_code=201)
async def record_value(
    instrument_id: int,
    body: ValueCreate,
    user: CurrentUser = Depends(get_current_user),
    service: InstrumentService = Depends(get_instrument_service),
):
    """Record an appraisal or market lookup; it becomes the current value"""
    entry = await service.append_value(
        user.id, instrument_id, body.value,
        source=body.source, notes=body.notes, on=body.date,
    )
    return value_to_dict(entry)
