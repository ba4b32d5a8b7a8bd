# services/report_loaders.py
"""
Row loaders for the consolidated fuel report.

Each loader returns plain dict rows for one section. A section that fails
to load is reported as unavailable instead of failing the whole report.
"""

from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, List, Optional, Tuple
import logging

from models import (
    FuelingOperationDB,
    FuelIntakeRecordDB,
    TankerRefillDB,
    FuelTankDB,
    FuelDrainRecordDB,
)
from constants.fuel import RefillSource, DrainSource, TX_SUPPLIER_REFILL, TX_FIXED_TANK_TRANSFER, TX_AIRCRAFT_FUELING
from utils.dates import apply_range

logger = logging.getLogger(__name__)

SECTION_FUELING = "fueling_operations"
SECTION_INTAKE = "intake_records"
SECTION_TANKER = "tanker_transactions"
SECTION_DRAINS = "drain_records"

SECTIONS = [SECTION_FUELING, SECTION_INTAKE, SECTION_TANKER, SECTION_DRAINS]


async def load_fueling_rows(db: AsyncSession, start: date, end: date) -> List[dict]:
    stmt = apply_range(select(FuelingOperationDB), FuelingOperationDB.date_time, start, end)
    ops = (await db.execute(stmt.order_by(FuelingOperationDB.date_time.asc()))).scalars().all()
    return [
        {
            "id": op.id,
            "date_time": op.date_time,
            "aircraft_registration": op.aircraft_registration,
            "airline": op.airline.name if op.airline else "",
            "destination": op.destination,
            "quantity_liters": op.quantity_liters,
            "specific_density": op.specific_density,
            "quantity_kg": op.quantity_kg,
            "price_per_kg": op.price_per_kg,
            "currency": op.currency,
            "total_amount": op.total_amount,
            "tank": op.tank.identifier if op.tank else "",
            "flight_number": op.flight_number,
            "operator_name": op.operator_name,
            "traffic_type": op.traffic_type,
        }
        for op in ops
    ]


async def load_intake_rows(db: AsyncSession, start: date, end: date) -> List[dict]:
    stmt = apply_range(select(FuelIntakeRecordDB), FuelIntakeRecordDB.delivery_datetime, start, end)
    records = (await db.execute(stmt.order_by(FuelIntakeRecordDB.delivery_datetime.asc()))).scalars().all()
    return [
        {
            "delivery_datetime": r.delivery_datetime,
            "fuel_type": r.fuel_type,
            "fuel_category": r.fuel_category,
            "quantity_liters": r.quantity_liters_received,
            "supplier_name": r.supplier_name,
            "delivery_note_number": r.delivery_note_number,
            "customs_declaration_number": r.customs_declaration_number,
        }
        for r in records
    ]


async def load_tanker_rows(db: AsyncSession, start: date, end: date) -> List[dict]:
    rows = []

    refill_stmt = apply_range(
        select(TankerRefillDB, FuelTankDB.identifier).join(FuelTankDB, FuelTankDB.id == TankerRefillDB.tanker_id),
        TankerRefillDB.refill_datetime, start, end,
    )
    for refill, identifier in (await db.execute(refill_stmt)).all():
        rows.append({
            "datetime": refill.refill_datetime,
            "tanker": identifier,
            "type": TX_FIXED_TANK_TRANSFER if refill.source_type == RefillSource.FIXED.value else TX_SUPPLIER_REFILL,
            "quantity_liters": refill.quantity_liters,
            "notes": refill.notes,
        })

    op_stmt = apply_range(select(FuelingOperationDB), FuelingOperationDB.date_time, start, end)
    for op in (await db.execute(op_stmt)).scalars().all():
        rows.append({
            "datetime": op.date_time,
            "tanker": op.tank.identifier if op.tank else "",
            "type": TX_AIRCRAFT_FUELING,
            "quantity_liters": op.quantity_liters,
            "notes": op.notes,
        })

    rows.sort(key=lambda r: r["datetime"])
    return rows


async def load_drain_rows(db: AsyncSession, start: date, end: date) -> List[dict]:
    stmt = apply_range(select(FuelDrainRecordDB), FuelDrainRecordDB.date_time, start, end)
    records = (await db.execute(stmt.order_by(FuelDrainRecordDB.date_time.asc()))).scalars().all()
    rows = []
    for d in records:
        if d.source_type == DrainSource.FIXED.value:
            source = d.source_fixed_tank.tank_name if d.source_fixed_tank else ""
        else:
            source = d.source_mobile_tank.identifier if d.source_mobile_tank else ""
        rows.append({
            "date_time": d.date_time,
            "source_type": d.source_type,
            "source": source,
            "quantity_liters": d.quantity_liters,
            "notes": d.notes,
            "user": d.user.username if d.user else "",
        })
    return rows


LOADERS = {
    SECTION_FUELING: load_fueling_rows,
    SECTION_INTAKE: load_intake_rows,
    SECTION_TANKER: load_tanker_rows,
    SECTION_DRAINS: load_drain_rows,
}


async def load_report_sections(
    db: AsyncSession, start: date, end: date
) -> Tuple[Dict[str, Optional[List[dict]]], List[str]]:
    """Load every section; failed sections map to None and are named in the warnings."""
    sections: Dict[str, Optional[List[dict]]] = {}
    warnings: List[str] = []

    for name in SECTIONS:
        try:
            sections[name] = await LOADERS[name](db, start, end)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(f"Consolidated report: section {name} unavailable")
            sections[name] = None
            warnings.append(name)

    return sections, warnings
