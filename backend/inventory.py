"""
Gear Tracker — Instrument Aggregate Service
Owner-scoped CRUD over instruments and assembly of the instrument detail
aggregate (images, maintenance records, maintenance schedule, value history).

Every mutating statement carries the owner in its WHERE clause and the
affected row count decides whether the caller gets NotFound.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import select, update, delete, and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from models import (
    Instrument, InstrumentImage, MaintenanceRecord, MaintenanceSchedule,
    ValueHistory, ValueSource, Band, BandMember, utcnow,
)

logger = logging.getLogger("gear-tracker.inventory")

# Columns a caller may set on create/update
INSTRUMENT_FIELDS = (
    "name", "type", "make", "model", "serial_number", "purchase_date",
    "purchase_price", "current_value", "description", "condition", "insured",
    "insurance_policy", "notes", "band_id", "storage_location", "is_active",
)
REQUIRED_FIELDS = ("name", "type")
# Boolean flags that may be changed but never cleared
FLAG_FIELDS = ("insured", "is_active")


# ============================================================
# ERRORS
# ============================================================

class InventoryError(Exception):
    """Base class for service-level failures"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationFailed(InventoryError):
    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__("Validation failed")
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls([{"field": field, "message": message}])


class NotFound(InventoryError):
    """No such record, or it belongs to someone else"""


class Conflict(InventoryError):
    """Uniqueness violation on a join pair"""


class StorageFailure(InventoryError):
    """The persistence layer failed; details are logged, never returned"""


# ============================================================
# SERIALISATION
# ============================================================

def money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def enum_value(value):
    return value.value if hasattr(value, "value") else value


def instrument_to_dict(i: Instrument) -> Dict[str, Any]:
    return {
        "id": i.id, "name": i.name, "type": i.type, "make": i.make,
        "model": i.model, "serial_number": i.serial_number,
        "purchase_date": iso(i.purchase_date),
        "purchase_price": money(i.purchase_price),
        "current_value": money(i.current_value),
        "description": i.description, "condition": i.condition,
        "insured": bool(i.insured), "insurance_policy": i.insurance_policy,
        "notes": i.notes, "owner_id": i.owner_id, "band_id": i.band_id,
        "storage_location": i.storage_location, "is_active": bool(i.is_active),
        "created_at": iso(i.created_at), "updated_at": iso(i.updated_at),
    }


def image_to_dict(img: InstrumentImage) -> Dict[str, Any]:
    return {
        "id": img.id, "instrument_id": img.instrument_id,
        "image_url": img.image_url, "thumbnail_url": img.thumbnail_url,
        "caption": img.caption, "display_order": img.display_order,
        "created_at": iso(img.created_at),
    }


def record_to_dict(r: MaintenanceRecord) -> Dict[str, Any]:
    return {
        "id": r.id, "instrument_id": r.instrument_id, "type": r.type,
        "title": r.title, "description": r.description, "date": iso(r.date),
        "cost": money(r.cost), "performed_by": r.performed_by,
        "location": r.location, "notes": r.notes, "user_id": r.user_id,
        "created_at": iso(r.created_at),
    }


def schedule_to_dict(s: MaintenanceSchedule) -> Dict[str, Any]:
    return {
        "id": s.id, "instrument_id": s.instrument_id, "type": s.type,
        "title": s.title, "description": s.description,
        "due_date": iso(s.due_date),
        "recurrence_type": enum_value(s.recurrence_type),
        "recurrence_interval": s.recurrence_interval,
        "reminder_enabled": bool(s.reminder_enabled),
        "reminder_days_before": s.reminder_days_before,
        "user_id": s.user_id, "created_at": iso(s.created_at),
    }


def value_to_dict(v: ValueHistory) -> Dict[str, Any]:
    return {
        "id": v.id, "instrument_id": v.instrument_id, "value": money(v.value),
        "date": iso(v.date), "source": enum_value(v.source), "notes": v.notes,
        "created_at": iso(v.created_at),
    }


def _as_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValidationFailed.for_field("current_value", "Current value must be a number")


# ============================================================
# SERVICE
# ============================================================

class InstrumentService:
    """Owner-scoped operations on the instrument aggregate"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _run(self, action: str, coro):
        try:
            return await coro
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error {action}: {e}", exc_info=True)
            raise StorageFailure(f"Failed {action}") from e

    # ── Reads ────────────────────────────────────────────────

    async def list(self, owner_id: str) -> List[Instrument]:
        async def _q():
            result = await self.db.execute(
                select(Instrument)
                .where(Instrument.owner_id == owner_id)
                .order_by(Instrument.name.asc(), Instrument.id.asc())
            )
            return list(result.scalars().all())
        return await self._run("fetching instruments", _q())

    async def require_owned(self, owner_id: str, instrument_id: int) -> Instrument:
        async def _q():
            result = await self.db.execute(
                select(Instrument).where(
                    and_(Instrument.id == instrument_id, Instrument.owner_id == owner_id)
                )
            )
            return result.scalars().first()
        instrument = await self._run("fetching instrument", _q())
        if instrument is None:
            raise NotFound("Instrument not found")
        return instrument

    async def get_detail(self, owner_id: str, instrument_id: int) -> Dict[str, Any]:
        instrument = await self.require_owned(owner_id, instrument_id)

        async def _children():
            images = await self.db.execute(
                select(InstrumentImage).where(InstrumentImage.instrument_id == instrument_id)
                .order_by(InstrumentImage.display_order.asc(), InstrumentImage.id.asc())
            )
            records = await self.db.execute(
                select(MaintenanceRecord).where(MaintenanceRecord.instrument_id == instrument_id)
                .order_by(MaintenanceRecord.date.desc(), MaintenanceRecord.id.desc())
            )
            schedule = await self.db.execute(
                select(MaintenanceSchedule).where(MaintenanceSchedule.instrument_id == instrument_id)
                .order_by(MaintenanceSchedule.due_date.asc(), MaintenanceSchedule.id.asc())
            )
            values = await self.db.execute(
                select(ValueHistory).where(ValueHistory.instrument_id == instrument_id)
                .order_by(ValueHistory.date.desc(), ValueHistory.id.desc())
            )
            return (
                images.scalars().all(), records.scalars().all(),
                schedule.scalars().all(), values.scalars().all(),
            )

        images, records, schedule, values = await self._run(
            "fetching instrument details", _children()
        )
        return {
            **instrument_to_dict(instrument),
            "images": [image_to_dict(i) for i in images],
            "maintenanceRecords": [record_to_dict(r) for r in records],
            "maintenanceSchedule": [schedule_to_dict(s) for s in schedule],
            "valueHistory": [value_to_dict(v) for v in values],
        }

    async def value_history(self, owner_id: str, instrument_id: int) -> List[ValueHistory]:
        await self.require_owned(owner_id, instrument_id)

        async def _q():
            result = await self.db.execute(
                select(ValueHistory).where(ValueHistory.instrument_id == instrument_id)
                .order_by(ValueHistory.date.desc(), ValueHistory.id.desc())
            )
            return list(result.scalars().all())
        return await self._run("fetching value history", _q())

    # ── Writes ───────────────────────────────────────────────

    def _clean(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        unknown = [k for k in fields if k not in INSTRUMENT_FIELDS]
        if unknown:
            raise ValidationFailed([{"field": k, "message": "Unknown field"} for k in unknown])
        errors = []
        for name in REQUIRED_FIELDS:
            if name in fields and (fields[name] is None or not str(fields[name]).strip()):
                errors.append({"field": name, "message": f"{name.capitalize()} cannot be empty"})
        for name in FLAG_FIELDS:
            if name in fields and fields[name] is None:
                errors.append({"field": name, "message": f"{name} must be true or false"})
        if errors:
            raise ValidationFailed(errors)
        return dict(fields)

    async def _check_band(self, owner_id: str, band_id: Optional[int]) -> None:
        if band_id is None:
            return
        result = await self.db.execute(
            select(BandMember.id).join(Band, Band.id == BandMember.band_id).where(
                and_(BandMember.band_id == band_id, BandMember.user_id == owner_id)
            )
        )
        if result.first() is None:
            raise ValidationFailed.for_field("band_id", "Band not found")

    def _history_entry(self, instrument_id: int, value: Decimal, notes: str,
                       source: ValueSource = ValueSource.MANUAL,
                       on: Optional[date] = None) -> ValueHistory:
        return ValueHistory(
            instrument_id=instrument_id,
            value=value,
            date=on or utcnow().date(),
            source=source,
            notes=notes,
        )

    async def create(self, owner_id: str, fields: Dict[str, Any]) -> int:
        data = self._clean(fields)
        missing = [
            {"field": name, "message": f"{name.capitalize()} is required"}
            for name in REQUIRED_FIELDS if not data.get(name)
        ]
        if missing:
            raise ValidationFailed(missing)

        value = _as_decimal(data.get("current_value"))

        async def _write():
            await self._check_band(owner_id, data.get("band_id"))
            instrument = Instrument(**data, owner_id=owner_id)
            self.db.add(instrument)
            await self.db.flush()
            if value is not None:
                self.db.add(self._history_entry(
                    instrument.id, value, "Initial value set during creation"
                ))
            await self.db.commit()
            return instrument.id

        instrument_id = await self._run("creating instrument", _write())
        logger.info(f"Instrument {instrument_id} created for {owner_id}")
        return instrument_id

    async def update(self, owner_id: str, instrument_id: int, fields: Dict[str, Any]) -> None:
        data = self._clean(fields)
        new_value = _as_decimal(data["current_value"]) if "current_value" in data else None

        async def _write():
            prior = await self.db.execute(
                select(Instrument.current_value).where(
                    and_(Instrument.id == instrument_id, Instrument.owner_id == owner_id)
                ).with_for_update()
            )
            row = prior.first()
            if row is None:
                return False
            if "band_id" in data:
                try:
                    await self._check_band(owner_id, data["band_id"])
                except ValidationFailed:
                    await self.db.rollback()
                    raise

            if data:
                result = await self.db.execute(
                    update(Instrument)
                    .where(and_(Instrument.id == instrument_id, Instrument.owner_id == owner_id))
                    .values(**data, updated_at=utcnow())
                )
                if result.rowcount == 0:
                    await self.db.rollback()
                    return False

            old_value = _as_decimal(row[0])
            if new_value is not None and new_value != old_value:
                self.db.add(self._history_entry(instrument_id, new_value, "Value updated"))
            await self.db.commit()
            return True

        if not await self._run("updating instrument", _write()):
            raise NotFound("Instrument not found or you do not have permission to update it")

    async def delete(self, owner_id: str, instrument_id: int) -> None:
        async def _write():
            result = await self.db.execute(
                delete(Instrument).where(
                    and_(Instrument.id == instrument_id, Instrument.owner_id == owner_id)
                )
            )
            await self.db.commit()
            return result.rowcount

        if not await self._run("deleting instrument", _write()):
            raise NotFound("Instrument not found or you do not have permission to delete it")
        logger.info(f"Instrument {instrument_id} deleted by {owner_id}")

    async def append_value(
        self,
        owner_id: str,
        instrument_id: int,
        value,
        source: ValueSource = ValueSource.MANUAL,
        notes: Optional[str] = None,
        on: Optional[date] = None,
    ) -> ValueHistory:
        """Record a valuation (e.g. an appraisal).

        The instrument's current_value follows the newest entry by date, so a
        back-dated valuation is stored in the history only.
        """
        amount = _as_decimal(value)
        if amount is None:
            raise ValidationFailed.for_field("value", "Value is required")
        await self.require_owned(owner_id, instrument_id)

        entry_date = on or utcnow().date()

        async def _write():
            latest = await self.db.execute(
                select(func.max(ValueHistory.date)).where(ValueHistory.instrument_id == instrument_id)
            )
            latest_date = latest.scalar()
            if latest_date is None or entry_date >= latest_date:
                await self.db.execute(
                    update(Instrument)
                    .where(and_(Instrument.id == instrument_id, Instrument.owner_id == owner_id))
                    .values(current_value=amount, updated_at=utcnow())
                )
            entry = self._history_entry(instrument_id, amount, notes, source=source, on=entry_date)
            self.db.add(entry)
            await self.db.commit()
            await self.db.refresh(entry)
            return entry

        return await self._run("recording value", _write())


async def get_instrument_service(db: AsyncSession = Depends(get_db_session)) -> InstrumentService:
    return InstrumentService(db)
