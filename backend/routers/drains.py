# backend/routers/drains.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.drain import FuelDrainCreate, FuelDrainOut, FuelDrainReversalCreate, FuelDrainReversalOut
from auth import get_current_user, require_roles
from constants.roles import FUEL_WRITE_ROLES
from constants.fuel import DrainSource
from crud.drain import (
    create_drain_record,
    get_drain_records,
    get_drain_record_or_404,
    reverse_drain_record,
    get_drain_reversals,
)
from utils.dates import validate_range

router = APIRouter(prefix="/api/fuel/drains", tags=["Fuel Drains"])


@router.post("/records", response_model=FuelDrainOut, status_code=201)
async def add_drain_record(
    payload: FuelDrainCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_WRITE_ROLES)),
):
    return await create_drain_record(db, payload, user)


@router.get("/records", response_model=List[FuelDrainOut], dependencies=[Depends(get_current_user)])
async def list_drain_records(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    source_type: Optional[DrainSource] = None,
    source_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    validate_range(start_date, end_date)
    return await get_drain_records(
        db, start_date, end_date, source_type.value if source_type else None, source_id
    )


@router.get("/records/{record_id}", response_model=FuelDrainOut, dependencies=[Depends(get_current_user)])
async def get_drain_record(record_id: int, db: AsyncSession = Depends(get_db)):
    return await get_drain_record_or_404(db, record_id)


@router.post("/reverse", response_model=FuelDrainReversalOut, status_code=201)
async def reverse_drain(
    payload: FuelDrainReversalCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_WRITE_ROLES)),
):
    return await reverse_drain_record(db, payload, user)


@router.get("/reverse", response_model=List[FuelDrainReversalOut], dependencies=[Depends(get_current_user)])
async def list_drain_reversals(original_drain_id: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    return await get_drain_reversals(db, original_drain_id)
