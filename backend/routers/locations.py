# backend/routers/locations.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.admin import LocationCreate, LocationUpdate, LocationOut
from auth import get_current_user, admin_required
from crud.location import get_locations, get_location_or_404, create_location, update_location, delete_location

router = APIRouter(prefix="/api/locations", tags=["Locations"])


@router.get("/", response_model=List[LocationOut], dependencies=[Depends(get_current_user)])
async def list_locations(company_id: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    return await get_locations(db, company_id)


@router.get("/{location_id}", response_model=LocationOut, dependencies=[Depends(get_current_user)])
async def get_location(location_id: int, db: AsyncSession = Depends(get_db)):
    return await get_location_or_404(db, location_id)


@router.post("/", response_model=LocationOut, status_code=201)
async def add_location(payload: LocationCreate, db: AsyncSession = Depends(get_db), user: UserDB = Depends(admin_required)):
    return await create_location(db, payload, user)


@router.put("/{location_id}", response_model=LocationOut)
async def edit_location(
    location_id: int, payload: LocationUpdate,
    db: AsyncSession = Depends(get_db), user: UserDB = Depends(admin_required),
):
    return await update_location(db, location_id, payload, user)


@router.delete("/{location_id}")
async def remove_location(location_id: int, db: AsyncSession = Depends(get_db), user: UserDB = Depends(admin_required)):
    await delete_location(db, location_id, user)
    return {"deleted": location_id}
