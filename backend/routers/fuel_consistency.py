# backend/routers/fuel_consistency.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.consistency import (
    TankConsistency,
    ConsistencyOverview,
    CorrectionRequest,
    CorrectionResult,
    OverrideRequest,
    OverrideResponse,
    SyncRequest,
    SystemLogOut,
)
from auth import get_current_user, admin_required, require_roles
from constants.roles import FUEL_ADMIN_ROLES, OVERRIDE_ROLES
from crud.fixed_tank import get_fixed_tank_or_404
from crud.system_log import get_system_logs
from services.fuel_consistency import (
    check_tank_consistency,
    check_all_tanks,
    run_consistency_check,
    correct_tank,
)
from services.override_tokens import issue_override_token
from services.fuel_sync import sync_tank, sync_all_tanks

router = APIRouter(prefix="/api/fuel-consistency", tags=["Fuel Consistency"])


# ---------------------------------------------------
# CHECKS
# ---------------------------------------------------
@router.get("/tanks", response_model=ConsistencyOverview, dependencies=[Depends(get_current_user)])
async def all_tanks(
    tolerance: Optional[float] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await check_all_tanks(db, tolerance)


@router.get("/tanks/{tank_id}", response_model=TankConsistency, dependencies=[Depends(get_current_user)])
async def single_tank(
    tank_id: int,
    tolerance: Optional[float] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await check_tank_consistency(db, tank_id, tolerance)


@router.get("/check")
async def consistency_report(
    tank_id: Optional[int] = None,
    tolerance: Optional[float] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await run_consistency_check(db, tank_id, tolerance, user)


# ---------------------------------------------------
# CORRECTION / OVERRIDE
# ---------------------------------------------------
@router.post("/tanks/{tank_id}/correct", response_model=CorrectionResult)
async def correct(
    tank_id: int,
    payload: CorrectionRequest,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await correct_tank(db, tank_id, payload.action, payload.notes, user, payload.adjustments)


@router.post("/tanks/{tank_id}/override", response_model=OverrideResponse)
async def override(
    tank_id: int,
    payload: OverrideRequest,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*OVERRIDE_ROLES)),
):
    await get_fixed_tank_or_404(db, tank_id)
    return await issue_override_token(db, tank_id, payload.operation_type.value, payload.notes, user)


# ---------------------------------------------------
# LOGS / SYNC
# ---------------------------------------------------
@router.get("/logs", response_model=List[SystemLogOut], dependencies=[Depends(require_roles(*FUEL_ADMIN_ROLES))])
async def logs(
    limit: int = Query(100, ge=1, le=1000),
    action: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await get_system_logs(db, limit, action)


@router.post("/sync")
async def sync(
    payload: SyncRequest,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(admin_required),
):
    if payload.tank_id is not None:
        results = [await sync_tank(db, payload.tank_id, payload.strategy, user)]
    else:
        results = await sync_all_tanks(db, payload.strategy, user)
    return {"strategy": payload.strategy.value, "results": results}
