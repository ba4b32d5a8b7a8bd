# backend/routers/vehicles.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleOut, ServiceRecordCreate, ServiceRecordOut
from auth import get_current_user, require_roles
from constants.roles import FLEET_ROLES
from crud.vehicle import (
    get_vehicles,
    get_vehicle_or_404,
    create_vehicle,
    update_vehicle,
    delete_vehicle,
    get_service_records,
    create_service_record,
    delete_service_record,
)

router = APIRouter(prefix="/api/vehicles", tags=["Vehicles"])


@router.get("/", response_model=List[VehicleOut], dependencies=[Depends(get_current_user)])
async def list_vehicles(
    company_id: Optional[int] = None,
    location_id: Optional[int] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await get_vehicles(db, company_id, location_id, status)


@router.get("/{vehicle_id}", response_model=VehicleOut, dependencies=[Depends(get_current_user)])
async def get_vehicle(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    return await get_vehicle_or_404(db, vehicle_id)


@router.post("/", response_model=VehicleOut, status_code=201)
async def add_vehicle(
    payload: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FLEET_ROLES)),
):
    return await create_vehicle(db, payload, user)


@router.put("/{vehicle_id}", response_model=VehicleOut)
async def edit_vehicle(
    vehicle_id: int,
    payload: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FLEET_ROLES)),
):
    return await update_vehicle(db, vehicle_id, payload, user)


@router.delete("/{vehicle_id}")
async def remove_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FLEET_ROLES)),
):
    await delete_vehicle(db, vehicle_id, user)
    return {"deleted": vehicle_id}


# ---------------------------------------------------
# SERVICE RECORDS
# ---------------------------------------------------
@router.get("/{vehicle_id}/service-records", response_model=List[ServiceRecordOut], dependencies=[Depends(get_current_user)])
async def list_service_records(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    return await get_service_records(db, vehicle_id)


@router.post("/{vehicle_id}/service-records", response_model=ServiceRecordOut, status_code=201)
async def add_service_record(
    vehicle_id: int,
    payload: ServiceRecordCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FLEET_ROLES)),
):
    return await create_service_record(db, vehicle_id, payload, user)


@router.delete("/{vehicle_id}/service-records/{record_id}")
async def remove_service_record(
    vehicle_id: int,
    record_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FLEET_ROLES)),
):
    await delete_service_record(db, vehicle_id, record_id, user)
    return {"deleted": record_id}
