# services/fuel_sync.py
"""
Bring fixed tanks back in line with their MRN batches, and the scheduled
jobs that run the consistency check and the sync unattended.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Dict, Any, List, Optional
import logging

from config import settings
from database import AsyncSessionLocal
from models import FixedStorageTankDB, UserDB
from constants.fuel import SyncStrategy, LOG_FUEL_DATA_SYNC
from crud.fixed_tank import get_fixed_tank_or_404
from crud.system_log import add_system_log
from services.fuel_consistency import (
    check_tank_consistency,
    adjust_mrn_newest_first,
    run_consistency_check,
)

logger = logging.getLogger(__name__)


def _state(result: Dict[str, Any]) -> Dict[str, float]:
    return {
        "tank_quantity": result["current_quantity_liters"],
        "mrn_total_quantity": result["total_mrn_quantity"],
        "difference": result["difference"],
    }


async def sync_tank(
    db: AsyncSession,
    tank_id: int,
    strategy: SyncStrategy = SyncStrategy.REPORT_ONLY,
    user: Optional[UserDB] = None,
) -> Dict[str, Any]:
    initial = await check_tank_consistency(db, tank_id)

    result: Dict[str, Any] = {
        "tank_id": tank_id,
        "tank_name": initial["tank_name"],
        "was_consistent": initial["is_consistent"],
        "strategy": strategy.value,
        "initial_state": _state(initial),
        "final_state": None,
        "adjustments": None,
    }

    if initial["is_consistent"]:
        logger.info(f"Tank {initial['tank_name']} (ID: {tank_id}) already consistent, nothing to sync")
        return result

    if strategy == SyncStrategy.REPORT_ONLY:
        logger.info(f"REPORT_ONLY: no changes for tank {initial['tank_name']} (ID: {tank_id})")
        return result

    user_id = user.id if user else None
    adjustments: Dict[str, Any] = {}

    try:
        if strategy == SyncStrategy.ADJUST_TANK_QUANTITY:
            tank = await get_fixed_tank_or_404(db, tank_id)
            target = initial["total_mrn_quantity"]
            tank.current_quantity_liters = target
            adjustments["tank_adjusted"] = True
            adjustments["tank_adjustment_amount"] = round(target - initial["current_quantity_liters"], 3)
            add_system_log(
                db,
                LOG_FUEL_DATA_SYNC,
                {
                    "tank_id": tank_id,
                    "strategy": strategy.value,
                    "initial_tank_quantity": initial["current_quantity_liters"],
                    "new_tank_quantity": target,
                    "adjustment": adjustments["tank_adjustment_amount"],
                },
                user_id=user_id,
            )
            logger.info(f"Tank {tank.tank_name}: {initial['current_quantity_liters']} L -> {target} L")
        else:
            mrn_adjustments = await adjust_mrn_newest_first(db, tank_id, initial["difference"])
            adjustments["mrn_adjustments"] = mrn_adjustments
            add_system_log(
                db,
                LOG_FUEL_DATA_SYNC,
                {"tank_id": tank_id, "strategy": strategy.value, "mrn_adjustments": mrn_adjustments},
                user_id=user_id,
            )

        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception(f"Sync failed for tank {initial['tank_name']} (ID: {tank_id})")
        raise

    final = await check_tank_consistency(db, tank_id)
    result["final_state"] = _state(final)
    result["adjustments"] = adjustments
    logger.info(f"Sync of tank {initial['tank_name']} (ID: {tank_id}) finished, diff now {final['difference']} L")
    return result


async def sync_all_tanks(
    db: AsyncSession,
    strategy: SyncStrategy = SyncStrategy.REPORT_ONLY,
    user: Optional[UserDB] = None,
) -> List[Dict[str, Any]]:
    """Sync every fixed tank; a failing tank is logged and skipped."""
    tanks = (await db.execute(
        select(FixedStorageTankDB.id, FixedStorageTankDB.tank_name).order_by(FixedStorageTankDB.id)
    )).all()

    logger.info(f"Starting {strategy.value} sync for {len(tanks)} tank(s)")
    results = []
    for tank_id, tank_name in tanks:
        try:
            results.append(await sync_tank(db, tank_id, strategy, user))
        except Exception:
            logger.error(f"Skipping tank {tank_name} (ID: {tank_id}) after sync error")
    return results


# =======================================================
# SCHEDULED JOBS
# =======================================================

async def scheduled_consistency_check():
    async with AsyncSessionLocal() as session:
        try:
            report = await run_consistency_check(session)
            if report["inconsistent_count"]:
                logger.warning(f"Daily check: {report['inconsistent_count']} inconsistent tank(s)")
        except Exception:
            logger.exception("Daily consistency check failed")


async def scheduled_mrn_sync():
    async with AsyncSessionLocal() as session:
        try:
            results = await sync_all_tanks(session, SyncStrategy.ADJUST_MRN_RECORDS)
            adjusted = sum(1 for r in results if r["adjustments"])
            logger.info(f"Weekly MRN sync adjusted {adjusted} tank(s)")
        except Exception:
            logger.exception("Weekly MRN sync failed")


def _hour_minute(value: str):
    hour, minute = value.split(":")
    return int(hour), int(minute)


def register_jobs(scheduler):
    """Attach the fuel jobs to an APScheduler scheduler according to settings."""
    if settings.DAILY_CHECK_ENABLED:
        hour, minute = _hour_minute(settings.DAILY_CHECK_TIME)
        scheduler.add_job(
            scheduled_consistency_check, "cron",
            hour=hour, minute=minute,
            id="daily_fuel_consistency_check", replace_existing=True,
        )
        logger.info(f"Daily consistency check scheduled at {settings.DAILY_CHECK_TIME}")

    if settings.WEEKLY_SYNC_ENABLED:
        hour, minute = _hour_minute(settings.WEEKLY_SYNC_TIME)
        scheduler.add_job(
            scheduled_mrn_sync, "cron",
            day_of_week=settings.WEEKLY_SYNC_DAY, hour=hour, minute=minute,
            id="weekly_fuel_mrn_sync", replace_existing=True,
        )
        logger.info(f"Weekly MRN sync scheduled on {settings.WEEKLY_SYNC_DAY} at {settings.WEEKLY_SYNC_TIME}")
