from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional


class VehicleCreate(BaseModel):
    vehicle_name: str = Field(..., min_length=1)
    license_plate: str = Field(..., min_length=1)
    chassis_number: Optional[str] = None
    status: str = "ACTIVE"
    company_id: int
    location_id: Optional[int] = None
    notes: Optional[str] = None


class VehicleUpdate(BaseModel):
    vehicle_name: Optional[str] = Field(None, min_length=1)
    license_plate: Optional[str] = Field(None, min_length=1)
    chassis_number: Optional[str] = None
    status: Optional[str] = None
    company_id: Optional[int] = None
    location_id: Optional[int] = None
    notes: Optional[str] = None


class VehicleOut(VehicleCreate):
    id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ServiceRecordCreate(BaseModel):
    service_date: date
    service_type: str = Field(..., min_length=1)
    description: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)


class ServiceRecordOut(ServiceRecordCreate):
    id: int
    vehicle_id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
