# backend/routers/fueling_operations.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.fueling import FuelingOperationCreate, FuelingOperationUpdate, FuelingOperationOut
from auth import get_current_user, require_roles
from constants.roles import FUEL_WRITE_ROLES, FUEL_ADMIN_ROLES
from crud.fueling import (
    create_fueling_operation,
    get_fueling_operations,
    get_fueling_operation_or_404,
    update_fueling_operation,
    delete_fueling_operation,
)
from utils.dates import validate_range

router = APIRouter(prefix="/api/fuel/fueling-operations", tags=["Fueling Operations"])


@router.get("/", response_model=List[FuelingOperationOut], dependencies=[Depends(get_current_user)])
async def list_fueling_operations(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    airline_id: Optional[int] = None,
    destination: Optional[str] = None,
    tank_id: Optional[int] = None,
    traffic_type: Optional[str] = None,
    currency: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    validate_range(start_date, end_date)
    return await get_fueling_operations(
        db, start_date, end_date, airline_id, destination, tank_id, traffic_type, currency
    )


@router.get("/{op_id}", response_model=FuelingOperationOut, dependencies=[Depends(get_current_user)])
async def get_fueling_operation(op_id: int, db: AsyncSession = Depends(get_db)):
    return await get_fueling_operation_or_404(db, op_id)


@router.post("/", response_model=FuelingOperationOut, status_code=201)
async def add_fueling_operation(
    payload: FuelingOperationCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_WRITE_ROLES)),
):
    return await create_fueling_operation(db, payload, user)


@router.put("/{op_id}", response_model=FuelingOperationOut)
async def edit_fueling_operation(
    op_id: int,
    payload: FuelingOperationUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_WRITE_ROLES)),
):
    return await update_fueling_operation(db, op_id, payload, user)


@router.delete("/{op_id}")
async def remove_fueling_operation(
    op_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    await delete_fueling_operation(db, op_id, user)
    return {"deleted": op_id}
