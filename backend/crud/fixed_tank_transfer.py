# backend/crud/fixed_tank_transfer.py
"""
Fuel moved between two fixed tanks.

The source gives up its MRN batches oldest first and every batch portion
is booked under the same MRN in the destination, so both tanks stay
reconciled with their batches.
"""
import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from models import FixedTankTransferDB, UserDB
from schemas.transfer import FixedTankTransferCreate
from constants.fuel import TankStatus, FixedTankOperation
from crud.activity import log_activity
from crud.fixed_tank import get_fixed_tank_or_404
from crud.mrn import remove_fuel_fifo, require_fuel_available, upsert_mrn_record
from services.fuel_consistency import ensure_consistent_or_override
from utils.dates import apply_range

logger = logging.getLogger(__name__)


# =======================================================
# CREATE TRANSFER
# =======================================================
async def create_fixed_tank_transfer(
    db: AsyncSession, data: FixedTankTransferCreate, user: Optional[UserDB] = None
):
    source = await get_fixed_tank_or_404(db, data.source_tank_id)
    destination = await get_fixed_tank_or_404(db, data.destination_tank_id)
    qty = data.quantity_liters

    for role, tank in (("Source", source), ("Destination", destination)):
        if tank.status != TankStatus.ACTIVE.value:
            raise HTTPException(status_code=400, detail=f"{role} tank {tank.tank_name} is not active")

    if source.fuel_type.strip().lower() != destination.fuel_type.strip().lower():
        raise HTTPException(
            status_code=400,
            detail=f"Fuel type mismatch: source has {source.fuel_type}, destination has {destination.fuel_type}",
        )

    free = destination.capacity_liters - destination.current_quantity_liters
    if qty > free:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient capacity in destination tank {destination.tank_name}: {free:.2f} L available",
        )

    try:
        await ensure_consistent_or_override(
            db, source.id, FixedTankOperation.TANK_TRANSFER.value, data.override_token
        )
        await require_fuel_available(db, source, qty)

        breakdown = await remove_fuel_fifo(db, source.id, qty)
        for item in breakdown:
            await upsert_mrn_record(db, destination.id, item["mrn"], item["quantity_liters"])

        source.current_quantity_liters = round(source.current_quantity_liters - qty, 6)
        destination.current_quantity_liters = round(destination.current_quantity_liters + qty, 6)

        transfer = FixedTankTransferDB(
            transfer_datetime=data.transfer_datetime or datetime.now(),
            source_tank_id=source.id,
            destination_tank_id=destination.id,
            quantity_liters=qty,
            mrn_breakdown=breakdown,
            notes=data.notes,
            user_id=user.id if user else None,
        )
        db.add(transfer)
        await db.flush()

        log_activity(
            db, user, "TRANSFER", "FIXED_TANK",
            f"Transferred {qty:.2f} L from {source.tank_name} to {destination.tank_name}",
            source.id,
            {"transfer_id": transfer.id, "destination_tank_id": destination.id, "mrn_breakdown": breakdown},
        )
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.exception(f"Fixed tank transfer {data.source_tank_id} -> {data.destination_tank_id} failed")
        raise

    logger.info(f"Fixed tank transfer {transfer.id}: {qty:.2f} L {source.tank_name} -> {destination.tank_name}")
    return await get_fixed_tank_transfer_or_404(db, transfer.id)


# =======================================================
# READ
# =======================================================
async def get_fixed_tank_transfers(
    db: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    tank_id: Optional[int] = None,
):
    stmt = apply_range(select(FixedTankTransferDB), FixedTankTransferDB.transfer_datetime, start_date, end_date)
    if tank_id is not None:
        stmt = stmt.where(or_(
            FixedTankTransferDB.source_tank_id == tank_id,
            FixedTankTransferDB.destination_tank_id == tank_id,
        ))
    q = await db.execute(stmt.order_by(FixedTankTransferDB.transfer_datetime.desc(), FixedTankTransferDB.id.desc()))
    return q.scalars().all()


async def get_fixed_tank_transfer_or_404(db: AsyncSession, transfer_id: int) -> FixedTankTransferDB:
    res = await db.execute(
        select(FixedTankTransferDB)
        .where(FixedTankTransferDB.id == transfer_id)
        .execution_options(populate_existing=True)
    )
    transfer = res.scalar_one_or_none()
    if not transfer:
        raise HTTPException(status_code=404, detail="Fixed tank transfer not found")
    return transfer
