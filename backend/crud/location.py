# backend/crud/location.py
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import LocationDB, VehicleDB, UserDB
from schemas.admin import LocationCreate, LocationUpdate
from crud.company import get_company_or_404
from crud.activity import log_activity


async def get_locations(db: AsyncSession, company_id: Optional[int] = None):
    stmt = select(LocationDB)
    if company_id is not None:
        stmt = stmt.where(LocationDB.company_id == company_id)
    q = await db.execute(stmt.order_by(LocationDB.name))
    return q.scalars().all()


async def get_location_or_404(db: AsyncSession, location_id: int) -> LocationDB:
    res = await db.execute(select(LocationDB).where(LocationDB.id == location_id))
    location = res.scalar_one_or_none()
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return location


async def create_location(db: AsyncSession, data: LocationCreate, user: Optional[UserDB] = None):
    await get_company_or_404(db, data.company_id)
    location = LocationDB(**data.model_dump())
    db.add(location)
    await db.flush()
    log_activity(db, user, "CREATE", "LOCATION", f"Created location {location.name}", location.id)
    await db.commit()
    await db.refresh(location)
    return location


async def update_location(db: AsyncSession, location_id: int, data: LocationUpdate, user: Optional[UserDB] = None):
    location = await get_location_or_404(db, location_id)
    values = data.model_dump(exclude_unset=True)
    if values.get("company_id") is not None:
        await get_company_or_404(db, values["company_id"])
    for k, v in values.items():
        setattr(location, k, v)
    log_activity(db, user, "UPDATE", "LOCATION", f"Updated location {location.name}", location.id, values)
    await db.commit()
    await db.refresh(location)
    return location


async def delete_location(db: AsyncSession, location_id: int, user: Optional[UserDB] = None):
    location = await get_location_or_404(db, location_id)
    vehicles = (await db.execute(
        select(func.count(VehicleDB.id)).where(VehicleDB.location_id == location_id)
    )).scalar() or 0
    if vehicles:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete location {location.name}: foreign key constraint, {vehicles} vehicle(s) reference it",
        )
    log_activity(db, user, "DELETE", "LOCATION", f"Deleted location {location.name}", location.id)
    await db.delete(location)
    await db.commit()
