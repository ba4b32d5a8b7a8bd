# backend/routers/tankers.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from database import get_db
from models import UserDB
from schemas.tank import TankerCreate, TankerUpdate, TankerOut, TankerRefillCreate, TankerRefillOut
from auth import get_current_user, require_roles
from constants.roles import FUEL_ADMIN_ROLES, FUEL_WRITE_ROLES
from crud.tanker import (
    get_tankers,
    get_tanker_or_404,
    create_tanker,
    update_tanker,
    delete_tanker,
    refill_tanker,
    get_refills,
    get_tanker_transactions,
)

router = APIRouter(prefix="/api/fuel/tanks", tags=["Fuel Tankers"])


@router.get("/", response_model=List[TankerOut], dependencies=[Depends(get_current_user)])
async def list_tankers(db: AsyncSession = Depends(get_db)):
    return await get_tankers(db)


@router.get("/{tanker_id}", response_model=TankerOut, dependencies=[Depends(get_current_user)])
async def get_tanker(tanker_id: int, db: AsyncSession = Depends(get_db)):
    return await get_tanker_or_404(db, tanker_id)


@router.post("/", response_model=TankerOut, status_code=201)
async def add_tanker(
    payload: TankerCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await create_tanker(db, payload, user)


@router.put("/{tanker_id}", response_model=TankerOut)
async def edit_tanker(
    tanker_id: int,
    payload: TankerUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await update_tanker(db, tanker_id, payload, user)


@router.delete("/{tanker_id}")
async def remove_tanker(
    tanker_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    await delete_tanker(db, tanker_id, user)
    return {"deleted": tanker_id}


# ---------------------------------------------------
# REFILLS
# ---------------------------------------------------
@router.post("/{tanker_id}/refills", response_model=TankerRefillOut, status_code=201)
async def add_refill(
    tanker_id: int,
    payload: TankerRefillCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_WRITE_ROLES)),
):
    return await refill_tanker(db, tanker_id, payload, user)


@router.get("/{tanker_id}/refills", response_model=List[TankerRefillOut], dependencies=[Depends(get_current_user)])
async def list_refills(tanker_id: int, db: AsyncSession = Depends(get_db)):
    return await get_refills(db, tanker_id)


@router.get("/{tanker_id}/transactions", dependencies=[Depends(get_current_user)])
async def list_transactions(tanker_id: int, db: AsyncSession = Depends(get_db)):
    return await get_tanker_transactions(db, tanker_id)
