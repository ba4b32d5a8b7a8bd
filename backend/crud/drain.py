# backend/crud/drain.py
import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from models import FuelDrainRecordDB, FuelDrainReversalDB, UserDB
from schemas.drain import FuelDrainCreate, FuelDrainReversalCreate
from constants.fuel import DrainSource, FixedTankOperation
from crud.activity import log_activity
from crud.fixed_tank import get_fixed_tank_or_404
from crud.tanker import get_tanker_or_404
from crud.mrn import remove_fuel_fifo, require_fuel_available, upsert_mrn_record, EPSILON
from services.fuel_consistency import ensure_consistent_or_override
from utils.dates import apply_range

logger = logging.getLogger(__name__)


# =======================================================
# CREATE DRAIN
# =======================================================
async def create_drain_record(db: AsyncSession, data: FuelDrainCreate, user: Optional[UserDB] = None):
    qty = data.quantity_liters

    try:
        breakdown = []
        if data.source_type == DrainSource.FIXED:
            tank = await get_fixed_tank_or_404(db, data.source_id)
            await ensure_consistent_or_override(db, tank.id, FixedTankOperation.FUEL_DRAIN.value, data.override_token)
            await require_fuel_available(db, tank, qty)
            breakdown = await remove_fuel_fifo(db, tank.id, qty)
            tank.current_quantity_liters = round(tank.current_quantity_liters - qty, 6)
            source_name = tank.tank_name
        else:
            tanker = await get_tanker_or_404(db, data.source_id)
            if tanker.current_liters < qty:
                raise HTTPException(
                    status_code=400,
                    detail=f"Insufficient fuel in tanker {tanker.identifier}: {tanker.current_liters:.2f} L available",
                )
            tanker.current_liters = round(tanker.current_liters - qty, 6)
            source_name = tanker.identifier

        record = FuelDrainRecordDB(
            date_time=data.date_time,
            source_type=data.source_type.value,
            source_fixed_tank_id=data.source_id if data.source_type == DrainSource.FIXED else None,
            source_mobile_tank_id=data.source_id if data.source_type == DrainSource.MOBILE else None,
            quantity_liters=qty,
            mrn_breakdown=breakdown,
            notes=data.notes,
            user_id=user.id if user else None,
        )
        db.add(record)
        await db.flush()

        log_activity(
            db, user, "CREATE", "FUEL_DRAIN",
            f"Drained {qty:.2f} L from {data.source_type.value} tank {source_name}",
            record.id,
            {"mrn_breakdown": breakdown},
        )
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.exception(f"Fuel drain failed ({data.source_type.value} {data.source_id})")
        raise

    logger.info(f"Fuel drain {record.id} recorded: {qty:.2f} L from {source_name}")
    return await get_drain_record_or_404(db, record.id)


# =======================================================
# READ
# =======================================================
async def get_drain_records(
    db: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
):
    stmt = apply_range(select(FuelDrainRecordDB), FuelDrainRecordDB.date_time, start_date, end_date)

    if source_type:
        stmt = stmt.where(FuelDrainRecordDB.source_type == source_type)
        if source_id is not None:
            column = (
                FuelDrainRecordDB.source_fixed_tank_id
                if source_type == DrainSource.FIXED.value
                else FuelDrainRecordDB.source_mobile_tank_id
            )
            stmt = stmt.where(column == source_id)
    elif source_id is not None:
        stmt = stmt.where(or_(
            FuelDrainRecordDB.source_fixed_tank_id == source_id,
            FuelDrainRecordDB.source_mobile_tank_id == source_id,
        ))

    q = await db.execute(stmt.order_by(FuelDrainRecordDB.date_time.desc()))
    return q.scalars().all()


async def get_drain_record_or_404(db: AsyncSession, record_id: int) -> FuelDrainRecordDB:
    res = await db.execute(
        select(FuelDrainRecordDB)
        .where(FuelDrainRecordDB.id == record_id)
        .execution_options(populate_existing=True)
    )
    record = res.scalar_one_or_none()
    if not record:
        raise HTTPException(status_code=404, detail="Fuel drain record not found")
    return record


# =======================================================
# REVERSE (RETURN FILTERED FUEL)
# =======================================================
async def _returned_so_far(db: AsyncSession, drain_id: int):
    """Liters already returned from a drain, in total and per MRN."""
    q = await db.execute(
        select(FuelDrainReversalDB).where(FuelDrainReversalDB.original_drain_id == drain_id)
    )
    total = 0.0
    per_mrn = {}
    for reversal in q.scalars().all():
        total += reversal.quantity_liters
        for item in reversal.mrn_breakdown or []:
            per_mrn[item["mrn"]] = per_mrn.get(item["mrn"], 0.0) + item["quantity_liters"]
    return total, per_mrn


def _allocate_to_mrns(breakdown, already_returned, quantity_liters):
    """Spread a returned quantity over the MRNs the drain took fuel from, in drain order."""
    left = quantity_liters
    allocation = []
    for item in breakdown:
        if left <= EPSILON:
            break
        open_qty = item["quantity_liters"] - already_returned.get(item["mrn"], 0.0)
        take = min(open_qty, left)
        if take <= EPSILON:
            continue
        allocation.append({"mrn": item["mrn"], "quantity_liters": round(take, 3)})
        left -= take
    return allocation


async def reverse_drain_record(db: AsyncSession, data: FuelDrainReversalCreate, user: Optional[UserDB] = None):
    drain = await get_drain_record_or_404(db, data.original_drain_id)
    qty = data.quantity_liters

    returned, returned_per_mrn = await _returned_so_far(db, drain.id)
    if returned + qty > drain.quantity_liters + EPSILON:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Cannot return {qty:.2f} L: drain {drain.id} removed {drain.quantity_liters:.2f} L "
                f"and {returned:.2f} L has already been returned"
            ),
        )

    origin = drain.source_fixed_tank if drain.source_type == DrainSource.FIXED.value else drain.source_mobile_tank
    origin_fuel = origin.fuel_type.strip().lower() if origin else None

    try:
        allocation = []
        if data.destination_type == DrainSource.FIXED:
            tank = await get_fixed_tank_or_404(db, data.destination_id)
            if origin_fuel and tank.fuel_type.strip().lower() != origin_fuel:
                raise HTTPException(status_code=400, detail="Fuel type of the drain and destination tank do not match")
            if tank.current_quantity_liters + qty > tank.capacity_liters:
                raise HTTPException(
                    status_code=400,
                    detail=(
                        f"Insufficient capacity in fixed tank {tank.tank_name}: "
                        f"{tank.capacity_liters - tank.current_quantity_liters:.2f} L available"
                    ),
                )

            if drain.mrn_breakdown:
                allocation = _allocate_to_mrns(drain.mrn_breakdown, returned_per_mrn, qty)
            elif data.customs_declaration_number and data.customs_declaration_number.strip():
                allocation = [{"mrn": data.customs_declaration_number.strip(), "quantity_liters": qty}]
            else:
                raise HTTPException(
                    status_code=400,
                    detail="Fuel drained from a tanker carries no MRN; customs_declaration_number is required",
                )

            for item in allocation:
                await upsert_mrn_record(db, tank.id, item["mrn"], item["quantity_liters"])
            tank.current_quantity_liters = round(tank.current_quantity_liters + qty, 6)
            destination_name = tank.tank_name
        else:
            tanker = await get_tanker_or_404(db, data.destination_id)
            if origin_fuel and tanker.fuel_type.strip().lower() != origin_fuel:
                raise HTTPException(status_code=400, detail="Fuel type of the drain and destination tanker do not match")
            if tanker.current_liters + qty > tanker.capacity_liters:
                raise HTTPException(
                    status_code=400,
                    detail=(
                        f"Tanker capacity exceeded: {tanker.current_liters:.2f} + {qty:.2f} "
                        f"> {tanker.capacity_liters:.2f} L"
                    ),
                )
            tanker.current_liters = round(tanker.current_liters + qty, 6)
            destination_name = tanker.identifier

        reversal = FuelDrainReversalDB(
            original_drain_id=drain.id,
            date_time=data.date_time,
            destination_type=data.destination_type.value,
            destination_fixed_tank_id=data.destination_id if data.destination_type == DrainSource.FIXED else None,
            destination_mobile_tank_id=data.destination_id if data.destination_type == DrainSource.MOBILE else None,
            quantity_liters=qty,
            mrn_breakdown=allocation,
            notes=data.notes or f"Filtered fuel returned from drain {drain.id}",
            user_id=user.id if user else None,
        )
        db.add(reversal)
        await db.flush()

        log_activity(
            db, user, "REVERSE", "FUEL_DRAIN",
            f"Returned {qty:.2f} L from drain {drain.id} to {data.destination_type.value} tank {destination_name}",
            drain.id,
            {"reversal_id": reversal.id, "mrn_breakdown": allocation},
        )
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.exception(f"Drain reversal failed for drain {data.original_drain_id}")
        raise

    logger.info(f"Drain {drain.id}: {qty:.2f} L returned to {destination_name}")
    return await get_drain_reversal_or_404(db, reversal.id)


async def get_drain_reversals(db: AsyncSession, original_drain_id: Optional[int] = None):
    stmt = select(FuelDrainReversalDB)
    if original_drain_id is not None:
        stmt = stmt.where(FuelDrainReversalDB.original_drain_id == original_drain_id)
    q = await db.execute(stmt.order_by(FuelDrainReversalDB.date_time.desc(), FuelDrainReversalDB.id.desc()))
    return q.scalars().all()


async def get_drain_reversal_or_404(db: AsyncSession, reversal_id: int) -> FuelDrainReversalDB:
    res = await db.execute(
        select(FuelDrainReversalDB)
        .where(FuelDrainReversalDB.id == reversal_id)
        .execution_options(populate_existing=True)
    )
    reversal = res.scalar_one_or_none()
    if not reversal:
        raise HTTPException(status_code=404, detail="Fuel drain reversal not found")
    return reversal
