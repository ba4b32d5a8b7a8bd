# backend/routers/fixed_tanks.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.tank import FixedTankCreate, FixedTankUpdate, FixedTankOut, MrnRecordOut
from auth import get_current_user, require_roles
from constants.roles import FUEL_ADMIN_ROLES
from crud.fixed_tank import (
    get_fixed_tanks,
    get_fixed_tank_or_404,
    create_fixed_tank,
    update_fixed_tank,
    delete_fixed_tank,
)
from crud.mrn import get_mrn_records

router = APIRouter(prefix="/api/fuel/fixed-tanks", tags=["Fixed Storage Tanks"])


@router.get("/", response_model=List[FixedTankOut], dependencies=[Depends(get_current_user)])
async def list_fixed_tanks(
    status: Optional[str] = None,
    fuel_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await get_fixed_tanks(db, status, fuel_type)


@router.get("/{tank_id}", response_model=FixedTankOut, dependencies=[Depends(get_current_user)])
async def get_fixed_tank(tank_id: int, db: AsyncSession = Depends(get_db)):
    return await get_fixed_tank_or_404(db, tank_id)


@router.get("/{tank_id}/mrn-records", response_model=List[MrnRecordOut], dependencies=[Depends(get_current_user)])
async def list_mrn_records(tank_id: int, only_remaining: bool = False, db: AsyncSession = Depends(get_db)):
    await get_fixed_tank_or_404(db, tank_id)
    return await get_mrn_records(db, tank_id, only_remaining)


@router.post("/", response_model=FixedTankOut, status_code=201)
async def add_fixed_tank(
    payload: FixedTankCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await create_fixed_tank(db, payload, user)


@router.put("/{tank_id}", response_model=FixedTankOut)
async def edit_fixed_tank(
    tank_id: int,
    payload: FixedTankUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await update_fixed_tank(db, tank_id, payload, user)


@router.delete("/{tank_id}")
async def remove_fixed_tank(
    tank_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    await delete_fixed_tank(db, tank_id, user)
    return {"deleted": tank_id}
