# backend/crud/tanker.py
import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    FuelTankDB,
    TankerRefillDB,
    FuelingOperationDB,
    FuelDrainRecordDB,
    FuelDrainReversalDB,
    FixedStorageTankDB,
    UserDB,
)
from schemas.tank import TankerCreate, TankerUpdate, TankerRefillCreate
from constants.fuel import (
    RefillSource,
    DrainSource,
    FixedTankOperation,
    TX_SUPPLIER_REFILL,
    TX_FIXED_TANK_TRANSFER,
    TX_AIRCRAFT_FUELING,
    TX_DRAIN,
    TX_DRAIN_RETURN,
)
from crud.activity import log_activity
from crud.fixed_tank import get_fixed_tank_or_404
from crud.mrn import remove_fuel_fifo, require_fuel_available
from services.fuel_consistency import ensure_consistent_or_override

logger = logging.getLogger(__name__)


# =======================================================
# TANKER CRUD
# =======================================================
async def get_tankers(db: AsyncSession):
    q = await db.execute(select(FuelTankDB).order_by(FuelTankDB.identifier))
    return q.scalars().all()


async def get_tanker_or_404(db: AsyncSession, tanker_id: int) -> FuelTankDB:
    res = await db.execute(select(FuelTankDB).where(FuelTankDB.id == tanker_id))
    tanker = res.scalar_one_or_none()
    if not tanker:
        raise HTTPException(status_code=404, detail="Fuel tanker not found")
    return tanker


async def _identifier_taken(db: AsyncSession, identifier: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(FuelTankDB.id).where(FuelTankDB.identifier == identifier)
    if exclude_id is not None:
        stmt = stmt.where(FuelTankDB.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_tanker(db: AsyncSession, data: TankerCreate, user: Optional[UserDB] = None):
    if await _identifier_taken(db, data.identifier):
        raise HTTPException(status_code=409, detail="Tanker identifier already exists")

    tanker = FuelTankDB(**data.model_dump())
    db.add(tanker)
    await db.flush()
    log_activity(db, user, "CREATE", "FUEL_TANK", f"Created tanker {tanker.identifier}", tanker.id)
    await db.commit()
    await db.refresh(tanker)
    return tanker


async def update_tanker(db: AsyncSession, tanker_id: int, data: TankerUpdate, user: Optional[UserDB] = None):
    tanker = await get_tanker_or_404(db, tanker_id)
    values = data.model_dump(exclude_unset=True)

    if "identifier" in values and await _identifier_taken(db, values["identifier"], tanker_id):
        raise HTTPException(status_code=409, detail="Tanker identifier already exists")

    capacity = values.get("capacity_liters", tanker.capacity_liters)
    current = values.get("current_liters", tanker.current_liters)
    if current > capacity:
        raise HTTPException(status_code=400, detail=f"Quantity {current} L exceeds tanker capacity {capacity} L")

    for k, v in values.items():
        setattr(tanker, k, v)

    log_activity(db, user, "UPDATE", "FUEL_TANK", f"Updated tanker {tanker.identifier}", tanker.id, values)
    await db.commit()
    await db.refresh(tanker)
    return tanker


async def delete_tanker(db: AsyncSession, tanker_id: int, user: Optional[UserDB] = None):
    tanker = await get_tanker_or_404(db, tanker_id)

    ops = (await db.execute(
        select(func.count(FuelingOperationDB.id)).where(FuelingOperationDB.tank_id == tanker_id)
    )).scalar() or 0
    if ops:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete tanker: foreign key constraint, {ops} fueling operation(s) reference it",
        )

    log_activity(db, user, "DELETE", "FUEL_TANK", f"Deleted tanker {tanker.identifier}", tanker.id)
    await db.delete(tanker)
    await db.commit()


# =======================================================
# REFILLS (SUPPLIER OR FIXED TANK)
# =======================================================
async def refill_tanker(db: AsyncSession, tanker_id: int, data: TankerRefillCreate, user: Optional[UserDB] = None):
    tanker = await get_tanker_or_404(db, tanker_id)
    qty = data.quantity_liters

    if tanker.current_liters + qty > tanker.capacity_liters:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Tanker capacity exceeded: {tanker.current_liters:.2f} + {qty:.2f} "
                f"> {tanker.capacity_liters:.2f} L"
            ),
        )

    try:
        breakdown = []
        source: Optional[FixedStorageTankDB] = None

        if data.source_type == RefillSource.FIXED:
            source = await get_fixed_tank_or_404(db, data.source_fixed_tank_id)
            if source.fuel_type.strip().lower() != tanker.fuel_type.strip().lower():
                raise HTTPException(status_code=400, detail="Fuel type of fixed tank and tanker do not match")

            await ensure_consistent_or_override(
                db, source.id, FixedTankOperation.TANKER_REFILL.value, data.override_token
            )
            await require_fuel_available(db, source, qty)
            breakdown = await remove_fuel_fifo(db, source.id, qty)
            source.current_quantity_liters = round(source.current_quantity_liters - qty, 6)

        refill = TankerRefillDB(
            tanker_id=tanker.id,
            refill_datetime=data.refill_datetime or datetime.now(),
            source_type=data.source_type.value,
            source_fixed_tank_id=source.id if source else None,
            quantity_liters=qty,
            supplier_name=data.supplier_name,
            mrn_breakdown=breakdown,
            notes=data.notes,
            user_id=user.id if user else None,
        )
        db.add(refill)
        tanker.current_liters = round(tanker.current_liters + qty, 6)
        await db.flush()

        origin = f"fixed tank {source.tank_name}" if source else f"supplier {data.supplier_name}"
        log_activity(
            db, user, "REFILL", "FUEL_TANK",
            f"Tanker {tanker.identifier} refilled with {qty:.2f} L from {origin}",
            tanker.id,
            {"refill_id": refill.id, "mrn_breakdown": breakdown},
        )
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.exception(f"Tanker refill failed for tanker {tanker_id}")
        raise

    await db.refresh(refill)
    logger.info(f"Tanker {tanker_id} refilled: {qty:.2f} L ({data.source_type.value})")
    return refill


async def get_refills(db: AsyncSession, tanker_id: int):
    await get_tanker_or_404(db, tanker_id)
    q = await db.execute(
        select(TankerRefillDB)
        .where(TankerRefillDB.tanker_id == tanker_id)
        .order_by(TankerRefillDB.refill_datetime.desc())
    )
    return q.scalars().all()


# =======================================================
# UNIFIED TRANSACTION HISTORY
# =======================================================
async def get_tanker_transactions(db: AsyncSession, tanker_id: int):
    """Refills, aircraft fuelings, drains and drain returns of one tanker, newest first."""
    await get_tanker_or_404(db, tanker_id)
    rows = []

    refills = (await db.execute(
        select(TankerRefillDB, FixedStorageTankDB.tank_name)
        .outerjoin(FixedStorageTankDB, FixedStorageTankDB.id == TankerRefillDB.source_fixed_tank_id)
        .where(TankerRefillDB.tanker_id == tanker_id)
    )).all()
    for refill, fixed_name in refills:
        is_fixed = refill.source_type == RefillSource.FIXED.value
        rows.append({
            "id": refill.id,
            "type": TX_FIXED_TANK_TRANSFER if is_fixed else TX_SUPPLIER_REFILL,
            "datetime": refill.refill_datetime,
            "quantity_liters": refill.quantity_liters,
            "source_name": fixed_name if is_fixed else refill.supplier_name,
            "destination_name": None,
            "notes": refill.notes,
            "mrn_breakdown": refill.mrn_breakdown or [],
        })

    ops = (await db.execute(
        select(FuelingOperationDB).where(FuelingOperationDB.tank_id == tanker_id)
    )).scalars().all()
    for op in ops:
        rows.append({
            "id": op.id,
            "type": TX_AIRCRAFT_FUELING,
            "datetime": op.date_time,
            "quantity_liters": op.quantity_liters,
            "source_name": None,
            "destination_name": f"{op.aircraft_registration} ({op.airline.name if op.airline else '-'})",
            "notes": op.notes,
            "mrn_breakdown": [],
        })

    drains = (await db.execute(
        select(FuelDrainRecordDB).where(
            FuelDrainRecordDB.source_type == DrainSource.MOBILE.value,
            FuelDrainRecordDB.source_mobile_tank_id == tanker_id,
        )
    )).scalars().all()
    for d in drains:
        rows.append({
            "id": d.id,
            "type": TX_DRAIN,
            "datetime": d.date_time,
            "quantity_liters": d.quantity_liters,
            "source_name": None,
            "destination_name": None,
            "notes": d.notes,
            "mrn_breakdown": [],
        })

    returns = (await db.execute(
        select(FuelDrainReversalDB).where(
            FuelDrainReversalDB.destination_type == DrainSource.MOBILE.value,
            FuelDrainReversalDB.destination_mobile_tank_id == tanker_id,
        )
    )).scalars().all()
    for r in returns:
        rows.append({
            "id": r.id,
            "type": TX_DRAIN_RETURN,
            "datetime": r.date_time,
            "quantity_liters": r.quantity_liters,
            "source_name": f"Drain {r.original_drain_id}",
            "destination_name": None,
            "notes": r.notes,
            "mrn_breakdown": [],
        })

    rows.sort(key=lambda r: r["datetime"], reverse=True)
    return rows
