# backend/routers/airlines.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from database import get_db
from models import UserDB
from schemas.airline import AirlineCreate, AirlineUpdate, AirlineOut
from auth import get_current_user, require_roles
from constants.roles import FUEL_ADMIN_ROLES
from crud.airline import get_airlines, get_airline_or_404, create_airline, update_airline, delete_airline

router = APIRouter(prefix="/api/fuel/airlines", tags=["Airlines"])


@router.get("/", response_model=List[AirlineOut], dependencies=[Depends(get_current_user)])
async def list_airlines(db: AsyncSession = Depends(get_db)):
    return await get_airlines(db)


@router.get("/{airline_id}", response_model=AirlineOut, dependencies=[Depends(get_current_user)])
async def get_airline(airline_id: int, db: AsyncSession = Depends(get_db)):
    return await get_airline_or_404(db, airline_id)


@router.post("/", response_model=AirlineOut, status_code=201)
async def add_airline(
    payload: AirlineCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await create_airline(db, payload, user)


@router.put("/{airline_id}", response_model=AirlineOut)
async def edit_airline(
    airline_id: int,
    payload: AirlineUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await update_airline(db, airline_id, payload, user)


@router.delete("/{airline_id}")
async def remove_airline(
    airline_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    await delete_airline(db, airline_id, user)
    return {"deleted": airline_id}
