# backend/crud/vehicle.py
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import VehicleDB, ServiceRecordDB, UserDB
from schemas.vehicle import VehicleCreate, VehicleUpdate, ServiceRecordCreate
from crud.company import get_company_or_404
from crud.location import get_location_or_404
from crud.activity import log_activity


async def get_vehicles(
    db: AsyncSession,
    company_id: Optional[int] = None,
    location_id: Optional[int] = None,
    status: Optional[str] = None,
):
    stmt = select(VehicleDB)
    if company_id is not None:
        stmt = stmt.where(VehicleDB.company_id == company_id)
    if location_id is not None:
        stmt = stmt.where(VehicleDB.location_id == location_id)
    if status:
        stmt = stmt.where(VehicleDB.status == status)
    q = await db.execute(stmt.order_by(VehicleDB.vehicle_name))
    return q.scalars().all()


async def get_vehicle_or_404(db: AsyncSession, vehicle_id: int) -> VehicleDB:
    res = await db.execute(select(VehicleDB).where(VehicleDB.id == vehicle_id))
    vehicle = res.scalar_one_or_none()
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle


async def _plate_taken(db: AsyncSession, plate: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(VehicleDB.id).where(VehicleDB.license_plate == plate)
    if exclude_id is not None:
        stmt = stmt.where(VehicleDB.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_vehicle(db: AsyncSession, data: VehicleCreate, user: Optional[UserDB] = None):
    await get_company_or_404(db, data.company_id)
    if data.location_id is not None:
        await get_location_or_404(db, data.location_id)
    if await _plate_taken(db, data.license_plate):
        raise HTTPException(status_code=409, detail="Vehicle with this license plate already exists")

    vehicle = VehicleDB(**data.model_dump())
    db.add(vehicle)
    await db.flush()
    log_activity(db, user, "CREATE", "VEHICLE", f"Created vehicle {vehicle.license_plate}", vehicle.id)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


async def update_vehicle(db: AsyncSession, vehicle_id: int, data: VehicleUpdate, user: Optional[UserDB] = None):
    vehicle = await get_vehicle_or_404(db, vehicle_id)
    values = data.model_dump(exclude_unset=True)

    if values.get("company_id") is not None:
        await get_company_or_404(db, values["company_id"])
    if values.get("location_id") is not None:
        await get_location_or_404(db, values["location_id"])
    if "license_plate" in values and await _plate_taken(db, values["license_plate"], vehicle_id):
        raise HTTPException(status_code=409, detail="Vehicle with this license plate already exists")

    for k, v in values.items():
        setattr(vehicle, k, v)
    log_activity(db, user, "UPDATE", "VEHICLE", f"Updated vehicle {vehicle.license_plate}", vehicle.id, values)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


async def delete_vehicle(db: AsyncSession, vehicle_id: int, user: Optional[UserDB] = None):
    vehicle = await get_vehicle_or_404(db, vehicle_id)
    records = (await db.execute(
        select(ServiceRecordDB).where(ServiceRecordDB.vehicle_id == vehicle_id)
    )).scalars().all()
    for r in records:
        await db.delete(r)
    log_activity(db, user, "DELETE", "VEHICLE", f"Deleted vehicle {vehicle.license_plate}", vehicle.id)
    await db.delete(vehicle)
    await db.commit()


# =======================================================
# SERVICE RECORDS
# =======================================================
async def get_service_records(db: AsyncSession, vehicle_id: int):
    await get_vehicle_or_404(db, vehicle_id)
    q = await db.execute(
        select(ServiceRecordDB)
        .where(ServiceRecordDB.vehicle_id == vehicle_id)
        .order_by(ServiceRecordDB.service_date.desc())
    )
    return q.scalars().all()


async def create_service_record(
    db: AsyncSession, vehicle_id: int, data: ServiceRecordCreate, user: Optional[UserDB] = None
):
    vehicle = await get_vehicle_or_404(db, vehicle_id)
    record = ServiceRecordDB(vehicle_id=vehicle.id, **data.model_dump())
    db.add(record)
    await db.flush()
    log_activity(
        db, user, "CREATE", "SERVICE_RECORD",
        f"Service {data.service_type} on {vehicle.license_plate}", record.id,
    )
    await db.commit()
    await db.refresh(record)
    return record


async def delete_service_record(db: AsyncSession, vehicle_id: int, record_id: int, user: Optional[UserDB] = None):
    res = await db.execute(
        select(ServiceRecordDB).where(
            ServiceRecordDB.id == record_id,
            ServiceRecordDB.vehicle_id == vehicle_id,
        )
    )
    record = res.scalar_one_or_none()
    if not record:
        raise HTTPException(status_code=404, detail="Service record not found")
    log_activity(db, user, "DELETE", "SERVICE_RECORD", f"Deleted service record {record.id}", record.id)
    await db.delete(record)
    await db.commit()
