from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import List, Optional

from constants.fuel import TankStatus, RefillSource


# ---------------------------------------------------
# FIXED STORAGE TANKS
# ---------------------------------------------------

class FixedTankCreate(BaseModel):
    tank_name: str = Field(..., min_length=1)
    tank_identifier: str = Field(..., min_length=1)
    capacity_liters: float = Field(..., gt=0)
    current_quantity_liters: float = Field(0, ge=0)
    fuel_type: str = Field(..., min_length=1)
    location_description: Optional[str] = None
    status: TankStatus = TankStatus.ACTIVE

    @model_validator(mode="after")
    def check_capacity(self):
        if self.current_quantity_liters > self.capacity_liters:
            raise ValueError("current_quantity_liters cannot exceed capacity_liters")
        return self


class FixedTankUpdate(BaseModel):
    tank_name: Optional[str] = Field(None, min_length=1)
    tank_identifier: Optional[str] = Field(None, min_length=1)
    capacity_liters: Optional[float] = Field(None, gt=0)
    current_quantity_liters: Optional[float] = Field(None, ge=0)
    fuel_type: Optional[str] = Field(None, min_length=1)
    location_description: Optional[str] = None
    status: Optional[TankStatus] = None


class FixedTankOut(BaseModel):
    id: int
    tank_name: str
    tank_identifier: str
    capacity_liters: float
    current_quantity_liters: float
    fuel_type: str
    location_description: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class MrnRecordOut(BaseModel):
    id: int
    fixed_tank_id: int
    customs_declaration_number: str
    quantity_liters: float
    remaining_quantity_liters: float
    intake_record_id: Optional[int] = None
    date_added: datetime

    model_config = {
        "from_attributes": True
    }


# ---------------------------------------------------
# MOBILE TANKERS
# ---------------------------------------------------

class TankerCreate(BaseModel):
    identifier: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    location: Optional[str] = None
    capacity_liters: float = Field(..., gt=0)
    current_liters: float = Field(0, ge=0)
    fuel_type: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_capacity(self):
        if self.current_liters > self.capacity_liters:
            raise ValueError("current_liters cannot exceed capacity_liters")
        return self


class TankerUpdate(BaseModel):
    identifier: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = None
    capacity_liters: Optional[float] = Field(None, gt=0)
    current_liters: Optional[float] = Field(None, ge=0)
    fuel_type: Optional[str] = Field(None, min_length=1)


class TankerOut(BaseModel):
    id: int
    identifier: str
    name: str
    location: Optional[str] = None
    capacity_liters: float
    current_liters: float
    fuel_type: str

    model_config = {
        "from_attributes": True
    }


class TankerRefillCreate(BaseModel):
    source_type: RefillSource
    quantity_liters: float = Field(..., gt=0)
    refill_datetime: Optional[datetime] = None
    source_fixed_tank_id: Optional[int] = None
    supplier_name: Optional[str] = None
    notes: Optional[str] = None
    override_token: Optional[str] = None

    @model_validator(mode="after")
    def check_source(self):
        if self.source_type == RefillSource.FIXED and self.source_fixed_tank_id is None:
            raise ValueError("source_fixed_tank_id is required when source_type is 'fixed'")
        if self.source_type == RefillSource.SUPPLIER and not (self.supplier_name or "").strip():
            raise ValueError("supplier_name is required when source_type is 'supplier'")
        return self


class TankerRefillOut(BaseModel):
    id: int
    tanker_id: int
    refill_datetime: datetime
    source_type: str
    source_fixed_tank_id: Optional[int] = None
    quantity_liters: float
    supplier_name: Optional[str] = None
    mrn_breakdown: List[dict] = []
    notes: Optional[str] = None

    model_config = {
        "from_attributes": True
    }
