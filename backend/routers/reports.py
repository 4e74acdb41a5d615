# routers/reports.py — Inventory valuation summary
from fastapi import APIRouter, Depends
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from inventory import money
from models import Instrument

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("/inventory")
async def inventory_report(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Counts and value totals over the caller's active instruments"""
    scope = and_(Instrument.owner_id == user.id, Instrument.is_active == True)

    totals_q = await db.execute(
        select(
            func.count(Instrument.id),
            func.sum(Instrument.purchase_price),
            func.sum(Instrument.current_value),
        ).where(scope)
    )
    count, purchased, current = totals_q.one()

    by_type_q = await db.execute(
        select(Instrument.type, func.count(Instrument.id), func.sum(Instrument.current_value))
        .where(scope)
        .group_by(Instrument.type)
        .order_by(Instrument.type)
    )
    by_type = {
        t: {"count": n, "current_value": money(v) or 0.0}
        for t, n, v in by_type_q.all()
    }

    insured_q = await db.execute(
        select(func.count(Instrument.id)).where(and_(scope, Instrument.insured == True))
    )
    insured = insured_q.scalar() or 0

    return {
        "instrument_count": count or 0,
        "total_purchase_price": money(purchased) or 0.0,
        "total_current_value": money(current) or 0.0,
        "by_type": by_type,
        "insured": insured,
        "uninsured": (count or 0) - insured,
    }
