# backend/crud/fixed_tank.py
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    FixedStorageTankDB,
    MrnRecordDB,
    TankerRefillDB,
    FuelDrainRecordDB,
    FuelDrainReversalDB,
    FixedTankTransferDB,
    UserDB,
)
from schemas.tank import FixedTankCreate, FixedTankUpdate
from crud.activity import log_activity

logger = logging.getLogger(__name__)


async def get_fixed_tanks(db: AsyncSession, status: Optional[str] = None, fuel_type: Optional[str] = None):
    stmt = select(FixedStorageTankDB)
    if status:
        stmt = stmt.where(FixedStorageTankDB.status == status)
    if fuel_type:
        stmt = stmt.where(FixedStorageTankDB.fuel_type == fuel_type)
    q = await db.execute(stmt.order_by(FixedStorageTankDB.tank_name))
    return q.scalars().all()


async def get_fixed_tank_or_404(db: AsyncSession, tank_id: int) -> FixedStorageTankDB:
    res = await db.execute(select(FixedStorageTankDB).where(FixedStorageTankDB.id == tank_id))
    tank = res.scalar_one_or_none()
    if not tank:
        raise HTTPException(status_code=404, detail="Fixed storage tank not found")
    return tank


async def _identifier_taken(db: AsyncSession, identifier: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(FixedStorageTankDB.id).where(FixedStorageTankDB.tank_identifier == identifier)
    if exclude_id is not None:
        stmt = stmt.where(FixedStorageTankDB.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_fixed_tank(db: AsyncSession, data: FixedTankCreate, user: Optional[UserDB] = None):
    if await _identifier_taken(db, data.tank_identifier):
        raise HTTPException(status_code=409, detail="Tank identifier already exists")

    tank = FixedStorageTankDB(**data.model_dump(mode="json"))
    db.add(tank)
    await db.flush()
    log_activity(db, user, "CREATE", "FIXED_TANK", f"Created fixed tank {tank.tank_name}", tank.id)
    await db.commit()
    await db.refresh(tank)
    return tank


async def update_fixed_tank(db: AsyncSession, tank_id: int, data: FixedTankUpdate, user: Optional[UserDB] = None):
    tank = await get_fixed_tank_or_404(db, tank_id)
    values = data.model_dump(exclude_unset=True, mode="json")

    if "tank_identifier" in values and await _identifier_taken(db, values["tank_identifier"], tank_id):
        raise HTTPException(status_code=409, detail="Tank identifier already exists")

    capacity = values.get("capacity_liters", tank.capacity_liters)
    current = values.get("current_quantity_liters", tank.current_quantity_liters)
    if current > capacity:
        raise HTTPException(
            status_code=400,
            detail=f"Quantity {current} L exceeds tank capacity {capacity} L",
        )

    for k, v in values.items():
        setattr(tank, k, v)

    log_activity(db, user, "UPDATE", "FIXED_TANK", f"Updated fixed tank {tank.tank_name}", tank.id, values)
    await db.commit()
    await db.refresh(tank)
    return tank


async def delete_fixed_tank(db: AsyncSession, tank_id: int, user: Optional[UserDB] = None):
    tank = await get_fixed_tank_or_404(db, tank_id)

    refs = 0
    for model, column in (
        (MrnRecordDB, MrnRecordDB.fixed_tank_id),
        (TankerRefillDB, TankerRefillDB.source_fixed_tank_id),
        (FuelDrainRecordDB, FuelDrainRecordDB.source_fixed_tank_id),
        (FuelDrainReversalDB, FuelDrainReversalDB.destination_fixed_tank_id),
        (FixedTankTransferDB, FixedTankTransferDB.source_tank_id),
        (FixedTankTransferDB, FixedTankTransferDB.destination_tank_id),
    ):
        refs += (await db.execute(select(func.count()).select_from(model).where(column == tank_id))).scalar() or 0

    if refs:
        raise HTTPException(
            status_code=400,
            detail=(
                "Cannot delete fixed tank: foreign key constraint, "
                f"{refs} MRN/refill/drain/transfer record(s) reference it"
            ),
        )

    log_activity(db, user, "DELETE", "FIXED_TANK", f"Deleted fixed tank {tank.tank_name}", tank.id)
    await db.delete(tank)
    await db.commit()
