# backend/crud/mrn.py
"""
MRN (customs declaration) batches held in fixed tanks.

Fuel leaves a fixed tank oldest batch first: records are consumed in
`date_added` order, and a withdrawal that the batches cannot cover is
refused before anything is touched.
"""
import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import MrnRecordDB, FixedStorageTankDB

logger = logging.getLogger(__name__)

# float noise below this is treated as zero
EPSILON = 1e-6


async def get_mrn_records(db: AsyncSession, tank_id: int, only_remaining: bool = False) -> List[MrnRecordDB]:
    stmt = select(MrnRecordDB).where(MrnRecordDB.fixed_tank_id == tank_id)
    if only_remaining:
        stmt = stmt.where(MrnRecordDB.remaining_quantity_liters > 0)
    stmt = stmt.order_by(MrnRecordDB.date_added.asc(), MrnRecordDB.id.asc())
    q = await db.execute(stmt)
    return list(q.scalars().all())


async def get_mrn_total(db: AsyncSession, tank_id: int) -> float:
    stmt = select(func.coalesce(func.sum(MrnRecordDB.remaining_quantity_liters), 0)).where(
        MrnRecordDB.fixed_tank_id == tank_id
    )
    res = await db.execute(stmt)
    return float(res.scalar() or 0)


async def upsert_mrn_record(
    db: AsyncSession,
    tank_id: int,
    mrn: str,
    quantity_liters: float,
    intake_record_id: Optional[int] = None,
) -> MrnRecordDB:
    """Add fuel to the tank's record for this MRN, creating the record if needed. No commit."""
    stmt = select(MrnRecordDB).where(
        MrnRecordDB.fixed_tank_id == tank_id,
        MrnRecordDB.customs_declaration_number == mrn,
    )
    record = (await db.execute(stmt)).scalar_one_or_none()

    if record:
        record.quantity_liters += quantity_liters
        record.remaining_quantity_liters += quantity_liters
        logger.info(f"MRN {mrn} in tank {tank_id} topped up by {quantity_liters:.2f} L")
    else:
        record = MrnRecordDB(
            fixed_tank_id=tank_id,
            customs_declaration_number=mrn,
            quantity_liters=quantity_liters,
            remaining_quantity_liters=quantity_liters,
            intake_record_id=intake_record_id,
        )
        db.add(record)
        logger.info(f"MRN {mrn} created in tank {tank_id} with {quantity_liters:.2f} L")

    await db.flush()
    return record


async def remove_fuel_fifo(db: AsyncSession, tank_id: int, quantity_liters: float) -> List[dict]:
    """
    Deduct `quantity_liters` from the tank's MRN records, oldest first.

    Returns one entry per touched record. Raises 400 without modifying
    anything when the records hold less than requested. No commit.
    """
    records = await get_mrn_records(db, tank_id, only_remaining=True)
    available = sum(r.remaining_quantity_liters for r in records)

    if available + EPSILON < quantity_liters:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Insufficient MRN fuel in tank {tank_id}: "
                f"requested {quantity_liters:.2f} L, available {available:.2f} L"
            ),
        )

    left = quantity_liters
    breakdown = []

    for record in records:
        if left <= EPSILON:
            break
        take = min(record.remaining_quantity_liters, left)
        record.remaining_quantity_liters = round(record.remaining_quantity_liters - take, 6)
        if record.remaining_quantity_liters < EPSILON:
            record.remaining_quantity_liters = 0.0
        left -= take
        breakdown.append({
            "mrn_record_id": record.id,
            "mrn": record.customs_declaration_number,
            "quantity_liters": round(take, 3),
            "remaining_after": record.remaining_quantity_liters,
        })

    await db.flush()
    return breakdown


async def can_perform_fuel_operation(db: AsyncSession, tank: FixedStorageTankDB, quantity_liters: float) -> bool:
    if tank.current_quantity_liters + EPSILON < quantity_liters:
        return False
    return (await get_mrn_total(db, tank.id)) + EPSILON >= quantity_liters


async def require_fuel_available(db: AsyncSession, tank: FixedStorageTankDB, quantity_liters: float):
    """Raise 400 unless both the tank and its MRN records can supply `quantity_liters`."""
    if await can_perform_fuel_operation(db, tank, quantity_liters):
        return
    mrn_total = await get_mrn_total(db, tank.id)
    raise HTTPException(
        status_code=400,
        detail=(
            f"Insufficient fuel in fixed tank {tank.tank_name}: "
            f"{tank.current_quantity_liters:.2f} L in tank, {mrn_total:.2f} L in MRN records, "
            f"{quantity_liters:.2f} L requested"
        ),
    )
