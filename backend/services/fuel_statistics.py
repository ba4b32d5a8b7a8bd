# services/fuel_statistics.py
"""
Comprehensive fuel statistics for a date range
"""

from collections import defaultdict
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Dict, Any, Optional

from models import (
    FuelingOperationDB,
    FuelTankDB,
    FixedStorageTankDB,
    TankerRefillDB,
    FuelIntakeRecordDB,
    FuelDrainRecordDB,
)
from constants.fuel import RefillSource, DrainSource
from utils.dates import apply_range


def _r(value: float) -> float:
    return round(value, 2)


async def get_fuel_statistics(
    db: AsyncSession,
    start_date: date,
    end_date: date,
    airline_id: Optional[int] = None,
) -> Dict[str, Any]:
    stmt = apply_range(select(FuelingOperationDB), FuelingOperationDB.date_time, start_date, end_date)
    if airline_id is not None:
        stmt = stmt.where(FuelingOperationDB.airline_id == airline_id)
    ops = (await db.execute(stmt.order_by(FuelingOperationDB.date_time.asc()))).scalars().all()

    by_airline = {}
    by_destination = defaultdict(lambda: {"total_liters": 0.0, "operation_count": 0})
    by_day = defaultdict(lambda: {"total_liters": 0.0, "operation_count": 0})
    by_traffic = defaultdict(float)
    by_company_type = {"foreign": 0.0, "domestic": 0.0}

    for op in ops:
        entry = by_airline.setdefault(op.airline_id, {
            "airline_id": op.airline_id,
            "airline_name": op.airline.name if op.airline else "Unknown",
            "total_liters": 0.0,
            "total_kg": 0.0,
            "operation_count": 0,
        })
        entry["total_liters"] += op.quantity_liters
        entry["total_kg"] += op.quantity_kg
        entry["operation_count"] += 1

        by_destination[op.destination]["total_liters"] += op.quantity_liters
        by_destination[op.destination]["operation_count"] += 1

        day = op.date_time.date().isoformat()
        by_day[day]["total_liters"] += op.quantity_liters
        by_day[day]["operation_count"] += 1

        by_traffic[op.traffic_type or "UNSPECIFIED"] += op.quantity_liters

        company_type = "foreign" if op.airline and op.airline.is_foreign else "domestic"
        by_company_type[company_type] += op.quantity_liters

    # ---------------- tanker levels ----------------
    tankers = (await db.execute(select(FuelTankDB).order_by(FuelTankDB.identifier))).scalars().all()
    tanker_levels = [
        {
            "tank_id": t.id,
            "tank_name": f"{t.identifier} - {t.name}",
            "current_liters": t.current_liters,
            "capacity_liters": t.capacity_liters,
            "utilization_percentage": _r(min(100.0, t.current_liters / t.capacity_liters * 100)) if t.capacity_liters > 0 else 0,
            "fuel_type": t.fuel_type,
        }
        for t in tankers
    ]

    # ---------------- tanker intake / output ----------------
    refills = (await db.execute(
        apply_range(select(TankerRefillDB), TankerRefillDB.refill_datetime, start_date, end_date)
    )).scalars().all()
    drains = (await db.execute(
        apply_range(select(FuelDrainRecordDB), FuelDrainRecordDB.date_time, start_date, end_date)
    )).scalars().all()

    tanker_flows = defaultdict(lambda: {"total_intake": 0.0, "total_output": 0.0})
    for refill in refills:
        tanker_flows[refill.tanker_id]["total_intake"] += refill.quantity_liters
    for op in ops:
        tanker_flows[op.tank_id]["total_output"] += op.quantity_liters
    for d in drains:
        if d.source_type == DrainSource.MOBILE.value:
            tanker_flows[d.source_mobile_tank_id]["total_output"] += d.quantity_liters

    tanker_names = {t.id: f"{t.identifier} - {t.name}" for t in tankers}

    # ---------------- fixed tank intake / output ----------------
    intakes = (await db.execute(
        apply_range(select(FuelIntakeRecordDB), FuelIntakeRecordDB.delivery_datetime, start_date, end_date)
    )).scalars().all()

    fixed_flows = defaultdict(lambda: {"total_intake": 0.0, "total_output": 0.0})
    for intake in intakes:
        for dist in intake.distributions or []:
            fixed_flows[dist["fixed_tank_id"]]["total_intake"] += dist["quantity_liters"]
    for refill in refills:
        if refill.source_type == RefillSource.FIXED.value:
            fixed_flows[refill.source_fixed_tank_id]["total_output"] += refill.quantity_liters
    for d in drains:
        if d.source_type == DrainSource.FIXED.value:
            fixed_flows[d.source_fixed_tank_id]["total_output"] += d.quantity_liters

    fixed_tanks = (await db.execute(select(FixedStorageTankDB))).scalars().all()
    fixed_names = {t.id: f"{t.tank_identifier} - {t.tank_name}" for t in fixed_tanks}

    return {
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "total_fuel_dispensed_liters": _r(sum(op.quantity_liters for op in ops)),
        "total_fuel_dispensed_kg": _r(sum(op.quantity_kg for op in ops)),
        "operation_count": len(ops),
        "by_airline": sorted(
            ({**a, "total_liters": _r(a["total_liters"]), "total_kg": _r(a["total_kg"])} for a in by_airline.values()),
            key=lambda a: a["total_liters"],
            reverse=True,
        ),
        "by_destination": [
            {"destination": k, "total_liters": _r(v["total_liters"]), "operation_count": v["operation_count"]}
            for k, v in sorted(by_destination.items(), key=lambda kv: kv[1]["total_liters"], reverse=True)
        ],
        "by_day": [
            {"date": k, "total_liters": _r(v["total_liters"]), "operation_count": v["operation_count"]}
            for k, v in sorted(by_day.items())
        ],
        "tanker_levels": tanker_levels,
        "tanker_flows": [
            {
                "tanker_id": tid,
                "tanker_name": tanker_names.get(tid, "Unknown tanker"),
                "total_intake": _r(v["total_intake"]),
                "total_output": _r(v["total_output"]),
                "balance": _r(v["total_intake"] - v["total_output"]),
            }
            for tid, v in sorted(tanker_flows.items())
        ],
        "fixed_tank_flows": [
            {
                "fixed_tank_id": tid,
                "fixed_tank_name": fixed_names.get(tid, "Unknown fixed tank"),
                "total_intake": _r(v["total_intake"]),
                "total_output": _r(v["total_output"]),
                "balance": _r(v["total_intake"] - v["total_output"]),
            }
            for tid, v in sorted(fixed_flows.items())
        ],
        "by_traffic_type": {k: _r(v) for k, v in sorted(by_traffic.items())},
        "by_company_type": {k: _r(v) for k, v in by_company_type.items()},
    }
