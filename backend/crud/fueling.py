# backend/crud/fueling.py
import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import FuelingOperationDB, UserDB
from schemas.fueling import FuelingOperationCreate, FuelingOperationUpdate
from constants.fuel import DEFAULT_SPECIFIC_DENSITY
from crud.airline import get_airline_or_404, find_price_rule
from crud.tanker import get_tanker_or_404
from crud.activity import log_activity
from utils.dates import apply_range

logger = logging.getLogger(__name__)


def compute_amounts(
    quantity_liters: float,
    specific_density: Optional[float],
    quantity_kg: Optional[float],
    price_per_kg: Optional[float],
    total_amount: Optional[float],
):
    """Fill in density, kg and total the way the fueling form does."""
    density = specific_density or DEFAULT_SPECIFIC_DENSITY
    if quantity_kg is None:
        quantity_kg = round(quantity_liters * density, 2)
    if total_amount is None and price_per_kg is not None:
        total_amount = round(quantity_kg * price_per_kg, 2)
    return density, quantity_kg, total_amount


# =======================================================
# CREATE
# =======================================================
async def create_fueling_operation(db: AsyncSession, data: FuelingOperationCreate, user: Optional[UserDB] = None):
    airline = await get_airline_or_404(db, data.airline_id)
    tanker = await get_tanker_or_404(db, data.tank_id)

    if tanker.current_liters < data.quantity_liters:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Insufficient fuel in tanker {tanker.identifier}: "
                f"{tanker.current_liters:.2f} L available, {data.quantity_liters:.2f} L requested"
            ),
        )

    currency = data.currency.value if data.currency else None
    price = data.price_per_kg
    if price is None and currency:
        rule = await find_price_rule(db, airline.id, currency)
        if rule:
            price = rule.price

    density, kg, total = compute_amounts(
        data.quantity_liters, data.specific_density, data.quantity_kg, price, data.total_amount
    )

    try:
        op = FuelingOperationDB(
            **data.model_dump(exclude={"specific_density", "quantity_kg", "price_per_kg", "currency", "total_amount"}),
            specific_density=density,
            quantity_kg=kg,
            price_per_kg=price,
            currency=currency,
            total_amount=total,
        )
        db.add(op)
        tanker.current_liters = round(tanker.current_liters - data.quantity_liters, 6)
        await db.flush()

        log_activity(
            db, user, "CREATE", "FUELING_OPERATION",
            f"Fueled {data.aircraft_registration} ({airline.name}) with {data.quantity_liters:.2f} L from {tanker.identifier}",
            op.id,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception(f"Fueling operation failed for {data.aircraft_registration}")
        raise

    return await get_fueling_operation_or_404(db, op.id)


# =======================================================
# READ
# =======================================================
async def get_fueling_operations(
    db: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    airline_id: Optional[int] = None,
    destination: Optional[str] = None,
    tank_id: Optional[int] = None,
    traffic_type: Optional[str] = None,
    currency: Optional[str] = None,
):
    stmt = apply_range(select(FuelingOperationDB), FuelingOperationDB.date_time, start_date, end_date)

    if airline_id is not None:
        stmt = stmt.where(FuelingOperationDB.airline_id == airline_id)
    if destination:
        stmt = stmt.where(FuelingOperationDB.destination.ilike(f"%{destination}%"))
    if tank_id is not None:
        stmt = stmt.where(FuelingOperationDB.tank_id == tank_id)
    if traffic_type:
        stmt = stmt.where(FuelingOperationDB.traffic_type == traffic_type)
    if currency:
        stmt = stmt.where(FuelingOperationDB.currency == currency.upper())

    stmt = stmt.order_by(FuelingOperationDB.date_time.desc(), FuelingOperationDB.id.desc())
    q = await db.execute(stmt)
    return q.scalars().all()


async def get_fueling_operation_or_404(db: AsyncSession, op_id: int) -> FuelingOperationDB:
    res = await db.execute(
        select(FuelingOperationDB)
        .where(FuelingOperationDB.id == op_id)
        .execution_options(populate_existing=True)
    )
    op = res.scalar_one_or_none()
    if not op:
        raise HTTPException(status_code=404, detail="Fueling operation not found")
    return op


# =======================================================
# UPDATE / DELETE
# =======================================================
async def update_fueling_operation(
    db: AsyncSession, op_id: int, data: FuelingOperationUpdate, user: Optional[UserDB] = None
):
    op = await get_fueling_operation_or_404(db, op_id)
    values = data.model_dump(exclude_unset=True)
    for k, v in values.items():
        setattr(op, k, v)

    log_activity(db, user, "UPDATE", "FUELING_OPERATION", f"Updated fueling operation {op.id}", op.id, values)
    await db.commit()
    return await get_fueling_operation_or_404(db, op_id)


async def delete_fueling_operation(db: AsyncSession, op_id: int, user: Optional[UserDB] = None):
    """Delete the operation and return its fuel to the tanker."""
    op = await get_fueling_operation_or_404(db, op_id)
    tanker = await get_tanker_or_404(db, op.tank_id)

    if tanker.current_liters + op.quantity_liters > tanker.capacity_liters:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Tanker capacity exceeded: {tanker.current_liters:.2f} + {op.quantity_liters:.2f} "
                f"> {tanker.capacity_liters:.2f} L"
            ),
        )

    try:
        tanker.current_liters = round(tanker.current_liters + op.quantity_liters, 6)
        log_activity(
            db, user, "DELETE", "FUELING_OPERATION",
            f"Deleted fueling operation {op.id}, {op.quantity_liters:.2f} L returned to {tanker.identifier}",
            op.id,
        )
        await db.delete(op)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception(f"Deleting fueling operation {op_id} failed")
        raise
