# backend/routers/fixed_tank_transfers.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.transfer import FixedTankTransferCreate, FixedTankTransferOut
from auth import get_current_user, require_roles
from constants.roles import FUEL_WRITE_ROLES
from crud.fixed_tank_transfer import (
    create_fixed_tank_transfer,
    get_fixed_tank_transfers,
    get_fixed_tank_transfer_or_404,
)
from utils.dates import validate_range

router = APIRouter(prefix="/api/fuel/fixed-tank-transfers", tags=["Fixed Tank Transfers"])


@router.post("/", response_model=FixedTankTransferOut, status_code=201)
async def add_fixed_tank_transfer(
    payload: FixedTankTransferCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_WRITE_ROLES)),
):
    return await create_fixed_tank_transfer(db, payload, user)


@router.get("/", response_model=List[FixedTankTransferOut], dependencies=[Depends(get_current_user)])
async def list_fixed_tank_transfers(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    tank_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    validate_range(start_date, end_date)
    return await get_fixed_tank_transfers(db, start_date, end_date, tank_id)


@router.get("/{transfer_id}", response_model=FixedTankTransferOut, dependencies=[Depends(get_current_user)])
async def get_fixed_tank_transfer(transfer_id: int, db: AsyncSession = Depends(get_db)):
    return await get_fixed_tank_transfer_or_404(db, transfer_id)
