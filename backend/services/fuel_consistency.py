# services/fuel_consistency.py
"""
Fixed tank vs. MRN reconciliation.

A tank is consistent when its recorded quantity matches the sum of the
remaining quantities of its MRN batches within the tolerance. The
difference is signed: positive means the tank reports more fuel than its
batches account for.
"""

from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fastapi import HTTPException
from typing import Dict, Any, List, Optional, Tuple
import logging

from config import settings
from models import FixedStorageTankDB, MrnRecordDB, UserDB
from constants.fuel import (
    TankStatus,
    CorrectionAction,
    BALANCING_MRN_PREFIX,
    LOG_CONSISTENCY_CHECK,
    LOG_CONSISTENCY_CORRECTION,
    LOG_TANK_INCONSISTENCY,
)
from crud.fixed_tank import get_fixed_tank_or_404
from crud.mrn import get_mrn_records
from crud.system_log import add_system_log
from crud.activity import log_activity
from services.override_tokens import consume_override_token

logger = logging.getLogger(__name__)


# =======================================================
# CLASSIFICATION
# =======================================================

def classify_difference(difference: float, tolerance: Optional[float] = None) -> Tuple[bool, str]:
    """Return (is_consistent, severity) where severity is ok / warning / critical."""
    if tolerance is None:
        tolerance = settings.CONSISTENCY_TOLERANCE_LITERS

    magnitude = abs(difference)
    if magnitude <= tolerance:
        return True, "ok"
    if magnitude > settings.CONSISTENCY_CRITICAL_LITERS:
        return False, "critical"
    return False, "warning"


def _build_result(tank: FixedStorageTankDB, records: List[MrnRecordDB], tolerance: float) -> Dict[str, Any]:
    total_mrn = round(sum(r.remaining_quantity_liters for r in records), 3)
    difference = round(tank.current_quantity_liters - total_mrn, 3)
    is_consistent, severity = classify_difference(difference, tolerance)

    return {
        "tank_id": tank.id,
        "tank_name": tank.tank_name,
        "tank_identifier": tank.tank_identifier,
        "current_quantity_liters": tank.current_quantity_liters,
        "total_mrn_quantity": total_mrn,
        "difference": difference,
        "is_consistent": is_consistent,
        "severity": severity,
        "tolerance": tolerance,
        "mrn_count": len(records),
        "mrn_breakdown": [
            {
                "mrn": r.customs_declaration_number,
                "quantity_liters": r.quantity_liters,
                "remaining_quantity_liters": r.remaining_quantity_liters,
                "date_added": r.date_added,
            }
            for r in records
        ],
    }


# =======================================================
# CHECKS
# =======================================================

async def check_tank_consistency(
    db: AsyncSession,
    tank_id: int,
    tolerance: Optional[float] = None,
) -> Dict[str, Any]:
    if tolerance is None:
        tolerance = settings.CONSISTENCY_TOLERANCE_LITERS

    tank = await get_fixed_tank_or_404(db, tank_id)
    records = await get_mrn_records(db, tank_id)
    result = _build_result(tank, records, tolerance)

    if result["is_consistent"]:
        logger.debug(f"Tank {tank.tank_name} consistent (diff {result['difference']} L)")
    else:
        logger.warning(
            f"Tank {tank.tank_name} (ID: {tank.id}) inconsistent: "
            f"tank {tank.current_quantity_liters} L vs MRN {result['total_mrn_quantity']} L "
            f"(diff {result['difference']} L, {result['severity']})"
        )
    return result


async def check_all_tanks(db: AsyncSession, tolerance: Optional[float] = None) -> Dict[str, Any]:
    """Check every ACTIVE fixed tank and split the results."""
    stmt = (
        select(FixedStorageTankDB.id)
        .where(FixedStorageTankDB.status == TankStatus.ACTIVE.value)
        .order_by(FixedStorageTankDB.tank_name)
    )
    tank_ids = (await db.execute(stmt)).scalars().all()

    results = [await check_tank_consistency(db, tank_id, tolerance) for tank_id in tank_ids]
    consistent = [r for r in results if r["is_consistent"]]
    inconsistent = [r for r in results if not r["is_consistent"]]

    return {
        "all_tanks": results,
        "consistent_tanks": consistent,
        "inconsistent_tanks": inconsistent,
        "summary": {
            "total": len(results),
            "consistent": len(consistent),
            "inconsistent": len(inconsistent),
            "critical": sum(1 for r in inconsistent if r["severity"] == "critical"),
            "total_absolute_difference": round(sum(abs(r["difference"]) for r in results), 3),
        },
    }


async def run_consistency_check(
    db: AsyncSession,
    tank_id: Optional[int] = None,
    tolerance: Optional[float] = None,
    user: Optional[UserDB] = None,
) -> Dict[str, Any]:
    """Check one tank or all ACTIVE tanks and record the outcome in the system log."""
    if tank_id is not None:
        results = [await check_tank_consistency(db, tank_id, tolerance)]
    else:
        results = (await check_all_tanks(db, tolerance))["all_tanks"]

    inconsistent = [r for r in results if not r["is_consistent"]]
    user_id = user.id if user else None

    for r in inconsistent:
        add_system_log(
            db,
            LOG_TANK_INCONSISTENCY,
            {
                "tank_id": r["tank_id"],
                "tank_name": r["tank_name"],
                "current_quantity_liters": r["current_quantity_liters"],
                "total_mrn_quantity": r["total_mrn_quantity"],
                "difference": r["difference"],
                "severity": r["severity"],
            },
            severity="WARNING",
            user_id=user_id,
        )

    report = {
        "checked_at": datetime.now().isoformat(),
        "tanks_checked": len(results),
        "inconsistent_count": len(inconsistent),
        "total_absolute_difference": round(sum(abs(r["difference"]) for r in results), 3),
        "results": results,
    }

    add_system_log(
        db,
        LOG_CONSISTENCY_CHECK,
        {
            "tank_id": tank_id,
            "tanks_checked": report["tanks_checked"],
            "inconsistent_count": report["inconsistent_count"],
            "total_absolute_difference": report["total_absolute_difference"],
        },
        severity="WARNING" if inconsistent else "INFO",
        user_id=user_id,
    )
    await db.commit()

    logger.info(f"Consistency check: {len(results)} tank(s), {len(inconsistent)} inconsistent")
    return report


# =======================================================
# MRN ADJUSTMENT (NEWEST FIRST)
# =======================================================

async def adjust_mrn_newest_first(db: AsyncSession, tank_id: int, delta: float) -> List[Dict[str, Any]]:
    """
    Move the MRN remaining total by `delta` liters, newest record first.

    A surplus goes entirely onto the newest record; a shortfall is taken
    from newest to oldest, never below zero. No commit.
    """
    stmt = (
        select(MrnRecordDB)
        .where(MrnRecordDB.fixed_tank_id == tank_id)
        .order_by(MrnRecordDB.date_added.desc(), MrnRecordDB.id.desc())
    )
    records = (await db.execute(stmt)).scalars().all()

    adjustments = []
    needed = delta

    for record in records:
        if abs(needed) < 0.001:
            break

        previous = record.remaining_quantity_liters
        if needed > 0:
            new_value = previous + needed
            needed = 0.0
        else:
            new_value = max(0.0, previous + needed)
            needed += new_value - previous

        record.remaining_quantity_liters = round(new_value, 6)
        if new_value > record.quantity_liters:
            record.quantity_liters = new_value

        adjustments.append({
            "mrn_record_id": record.id,
            "mrn": record.customs_declaration_number,
            "previous_quantity": previous,
            "new_quantity": record.remaining_quantity_liters,
            "difference": round(record.remaining_quantity_liters - previous, 3),
        })
        logger.info(f"MRN {record.customs_declaration_number}: {previous} L -> {record.remaining_quantity_liters} L")

    await db.flush()
    return adjustments


async def apply_mrn_adjustments(db: AsyncSession, tank_id: int, adjustments) -> List[Dict[str, Any]]:
    """Set chosen MRN records of the tank to explicit remaining quantities. No commit."""
    wanted = {a.mrn_record_id: a.new_quantity for a in adjustments}
    stmt = select(MrnRecordDB).where(
        MrnRecordDB.fixed_tank_id == tank_id,
        MrnRecordDB.id.in_(list(wanted)),
    )
    records = {r.id: r for r in (await db.execute(stmt)).scalars().all()}

    foreign = sorted(set(wanted) - set(records))
    if foreign:
        raise HTTPException(
            status_code=400,
            detail=f"MRN record(s) {foreign} do not belong to tank {tank_id}",
        )

    result = []
    for record_id, new_value in wanted.items():
        record = records[record_id]
        previous = record.remaining_quantity_liters
        record.remaining_quantity_liters = round(new_value, 6)
        if new_value > record.quantity_liters:
            record.quantity_liters = new_value
        result.append({
            "mrn_record_id": record.id,
            "mrn": record.customs_declaration_number,
            "previous_quantity": previous,
            "new_quantity": record.remaining_quantity_liters,
            "difference": round(record.remaining_quantity_liters - previous, 3),
        })
        logger.info(f"MRN {record.customs_declaration_number} set to {record.remaining_quantity_liters} L (was {previous} L)")

    await db.flush()
    return result


async def next_balancing_mrn(db: AsyncSession, when: Optional[datetime] = None) -> str:
    """
    Format:
      BAL-YYYYMMDD-0001
    """
    day = (when or datetime.now()).strftime("%Y%m%d")
    prefix = f"{BALANCING_MRN_PREFIX}-{day}-"

    stmt = (
        select(MrnRecordDB.customs_declaration_number)
        .where(MrnRecordDB.customs_declaration_number.like(f"{prefix}%"))
        .order_by(MrnRecordDB.customs_declaration_number.desc())
        .limit(1)
    )
    last = (await db.execute(stmt)).scalar_one_or_none()
    new_num = int(last.split("-")[-1]) + 1 if last else 1
    return f"{prefix}{new_num:04d}"


# =======================================================
# CORRECTIONS
# =======================================================

async def correct_tank(
    db: AsyncSession,
    tank_id: int,
    action: CorrectionAction,
    notes: str,
    user: Optional[UserDB] = None,
    adjustments=None,
) -> Dict[str, Any]:
    before = await check_tank_consistency(db, tank_id)
    if before["is_consistent"]:
        raise HTTPException(status_code=400, detail="Tank is already consistent, no correction needed")

    tank = await get_fixed_tank_or_404(db, tank_id)
    difference = before["difference"]
    details: Dict[str, Any] = {"tank_id": tank_id, "action": action.value, "notes": notes}

    try:
        if action == CorrectionAction.ADJUST_TANK:
            target = before["total_mrn_quantity"]
            if target > tank.capacity_liters:
                raise HTTPException(
                    status_code=400,
                    detail=f"MRN total {target} L exceeds tank capacity {tank.capacity_liters} L",
                )
            tank.current_quantity_liters = target
            details["tank_quantity"] = {"before": before["current_quantity_liters"], "after": target}
            message = f"Tank quantity set to MRN total {target} L"

        elif action == CorrectionAction.CREATE_BALANCING_MRN:
            if difference <= 0:
                raise HTTPException(
                    status_code=400,
                    detail="A balancing MRN can only cover a positive difference (tank above MRN total)",
                )
            mrn = await next_balancing_mrn(db)
            db.add(MrnRecordDB(
                fixed_tank_id=tank_id,
                customs_declaration_number=mrn,
                quantity_liters=difference,
                remaining_quantity_liters=difference,
            ))
            details["balancing_mrn"] = {"mrn": mrn, "quantity_liters": difference}
            message = f"Balancing MRN {mrn} created with {difference} L"

        elif adjustments:
            changes = await apply_mrn_adjustments(db, tank_id, adjustments)
            details["mrn_adjustments"] = changes
            message = f"Set {len(changes)} MRN record(s) to the given quantities"

        else:
            changes = await adjust_mrn_newest_first(db, tank_id, difference)
            if not changes:
                raise HTTPException(
                    status_code=400,
                    detail="Tank has no MRN records to adjust; create a balancing MRN instead",
                )
            details["mrn_adjustments"] = changes
            message = f"Adjusted {len(changes)} MRN record(s) by {difference} L"

        await db.flush()
        add_system_log(db, LOG_CONSISTENCY_CORRECTION, details, severity="INFO", user_id=user.id if user else None)
        log_activity(
            db, user, "CONSISTENCY_CORRECTION", "FIXED_TANK",
            f"{message} on tank {tank.tank_name}: {notes}",
            tank_id,
            details,
        )
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.exception(f"Consistency correction failed for tank {tank_id}")
        raise

    after = await check_tank_consistency(db, tank_id)
    logger.info(f"Tank {tank_id} corrected with {action.value}: diff {difference} -> {after['difference']}")
    return {"message": message, "before": before, "after": after}


# =======================================================
# GUARD FOR OPERATIONS DRAWING FROM A FIXED TANK
# =======================================================

async def ensure_consistent_or_override(
    db: AsyncSession,
    tank_id: int,
    operation_type: str,
    override_token: Optional[str] = None,
):
    """
    Refuse (409) to draw from an inconsistent tank unless a valid override
    token for this tank and operation is presented. The token is marked
    used in the caller's transaction.
    """
    result = await check_tank_consistency(db, tank_id)
    if result["is_consistent"]:
        return None

    if not override_token:
        raise HTTPException(
            status_code=409,
            detail=(
                f"Tank {result['tank_name']} is inconsistent "
                f"(difference {result['difference']} L, {result['severity']}). "
                "Correct the tank or supply an override token."
            ),
        )

    override = await consume_override_token(db, override_token, tank_id, operation_type)
    logger.warning(
        f"Consistency override {override.jti} used for {operation_type} on tank {tank_id} "
        f"(diff {result['difference']} L)"
    )
    return override
