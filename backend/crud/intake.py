# backend/crud/intake.py
import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import FuelIntakeRecordDB, UserDB
from schemas.intake import FuelIntakeCreate
from constants.fuel import TankStatus, INTAKE_DISTRIBUTION_TOLERANCE
from crud.fixed_tank import get_fixed_tank_or_404
from crud.mrn import upsert_mrn_record
from crud.activity import log_activity
from utils.dates import apply_range

logger = logging.getLogger(__name__)


# =======================================================
# CREATE INTAKE (DISTRIBUTE INTO FIXED TANKS)
# =======================================================
async def create_intake_record(db: AsyncSession, data: FuelIntakeCreate, user: Optional[UserDB] = None):
    distributed = sum(d.quantity_liters for d in data.distributions)
    if abs(distributed - data.quantity_liters_received) > INTAKE_DISTRIBUTION_TOLERANCE:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Distributed quantity {distributed:.2f} L does not match "
                f"received quantity {data.quantity_liters_received:.2f} L"
            ),
        )

    per_tank = defaultdict(float)
    for d in data.distributions:
        per_tank[d.fixed_tank_id] += d.quantity_liters

    tanks = {}
    for tank_id, qty in per_tank.items():
        tank = await get_fixed_tank_or_404(db, tank_id)
        if tank.status != TankStatus.ACTIVE.value:
            raise HTTPException(status_code=400, detail=f"Tank {tank.tank_name} is not active")
        if tank.fuel_type.strip().lower() != data.fuel_type.strip().lower():
            raise HTTPException(
                status_code=400,
                detail=f"Fuel type {data.fuel_type} does not match tank {tank.tank_name} ({tank.fuel_type})",
            )
        if tank.current_quantity_liters + qty > tank.capacity_liters:
            raise HTTPException(
                status_code=400,
                detail=(
                    f"Tank {tank.tank_name} capacity exceeded: "
                    f"{tank.current_quantity_liters:.2f} + {qty:.2f} > {tank.capacity_liters:.2f} L"
                ),
            )
        tanks[tank_id] = tank

    try:
        record = FuelIntakeRecordDB(
            **data.model_dump(exclude={"distributions"}),
            distributions=[d.model_dump() for d in data.distributions],
        )
        db.add(record)
        await db.flush()

        for tank_id, qty in per_tank.items():
            tank = tanks[tank_id]
            tank.current_quantity_liters += qty
            await upsert_mrn_record(db, tank_id, data.customs_declaration_number, qty, record.id)

        log_activity(
            db, user, "CREATE", "FUEL_INTAKE",
            f"Fuel intake {data.quantity_liters_received:.2f} L under MRN {data.customs_declaration_number}",
            record.id,
            {"distributions": record.distributions},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception(f"Fuel intake failed for MRN {data.customs_declaration_number}")
        raise

    await db.refresh(record)
    logger.info(f"Fuel intake {record.id} recorded: {record.quantity_liters_received:.2f} L")
    return record


async def get_intake_records(
    db: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    fuel_type: Optional[str] = None,
):
    stmt = apply_range(select(FuelIntakeRecordDB), FuelIntakeRecordDB.delivery_datetime, start_date, end_date)
    if fuel_type:
        stmt = stmt.where(FuelIntakeRecordDB.fuel_type == fuel_type)
    q = await db.execute(stmt.order_by(FuelIntakeRecordDB.delivery_datetime.desc()))
    return q.scalars().all()


async def get_intake_record_or_404(db: AsyncSession, record_id: int):
    res = await db.execute(select(FuelIntakeRecordDB).where(FuelIntakeRecordDB.id == record_id))
    record = res.scalar_one_or_none()
    if not record:
        raise HTTPException(status_code=404, detail="Fuel intake record not found")
    return record
