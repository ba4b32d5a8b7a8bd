# backend/routers/intake_records.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.intake import FuelIntakeCreate, FuelIntakeOut
from auth import get_current_user, require_roles
from constants.roles import FUEL_WRITE_ROLES
from crud.intake import create_intake_record, get_intake_records, get_intake_record_or_404
from utils.dates import validate_range

router = APIRouter(prefix="/api/fuel/intake-records", tags=["Fuel Intake"])


@router.post("/", response_model=FuelIntakeOut, status_code=201)
async def add_intake_record(
    payload: FuelIntakeCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_WRITE_ROLES)),
):
    return await create_intake_record(db, payload, user)


@router.get("/", response_model=List[FuelIntakeOut], dependencies=[Depends(get_current_user)])
async def list_intake_records(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    fuel_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    validate_range(start_date, end_date)
    return await get_intake_records(db, start_date, end_date, fuel_type)


@router.get("/{record_id}", response_model=FuelIntakeOut, dependencies=[Depends(get_current_user)])
async def get_intake_record(record_id: int, db: AsyncSession = Depends(get_db)):
    return await get_intake_record_or_404(db, record_id)
