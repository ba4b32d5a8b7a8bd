from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import List, Optional

from constants.fuel import DrainSource


class FuelDrainCreate(BaseModel):
    date_time: datetime
    source_type: DrainSource
    source_id: int
    quantity_liters: float = Field(..., gt=0)
    notes: Optional[str] = None
    override_token: Optional[str] = None


class FuelDrainOut(BaseModel):
    id: int
    date_time: datetime
    source_type: str
    source_fixed_tank_id: Optional[int] = None
    source_mobile_tank_id: Optional[int] = None
    quantity_liters: float
    mrn_breakdown: List[dict] = []
    notes: Optional[str] = None
    user_id: Optional[int] = None
    source_name: Optional[str] = None
    user_name: Optional[str] = None

    model_config = {
        "from_attributes": True
    }

    @model_validator(mode="before")
    @classmethod
    def flatten_relations(cls, data):
        # ORM rows carry the related tank/user; expose their names flat
        if isinstance(data, dict):
            return data
        src = data.source_fixed_tank if data.source_type == DrainSource.FIXED.value else data.source_mobile_tank
        return {
            "id": data.id,
            "date_time": data.date_time,
            "source_type": data.source_type,
            "source_fixed_tank_id": data.source_fixed_tank_id,
            "source_mobile_tank_id": data.source_mobile_tank_id,
            "quantity_liters": data.quantity_liters,
            "mrn_breakdown": data.mrn_breakdown or [],
            "notes": data.notes,
            "user_id": data.user_id,
            "source_name": (getattr(src, "tank_name", None) or getattr(src, "name", None)) if src else None,
            "user_name": data.user.username if data.user else None,
        }


class FuelDrainReversalCreate(BaseModel):
    original_drain_id: int
    date_time: datetime
    destination_type: DrainSource
    destination_id: int
    quantity_liters: float = Field(..., gt=0)
    # booking MRN for fuel drained from a tanker and returned to a fixed tank
    customs_declaration_number: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_date(self):
        if self.date_time > datetime.now():
            raise ValueError("Return date cannot be in the future")
        return self


class FuelDrainReversalOut(BaseModel):
    id: int
    original_drain_id: int
    date_time: datetime
    destination_type: str
    destination_fixed_tank_id: Optional[int] = None
    destination_mobile_tank_id: Optional[int] = None
    quantity_liters: float
    mrn_breakdown: List[dict] = []
    notes: Optional[str] = None
    user_id: Optional[int] = None
    destination_name: Optional[str] = None
    user_name: Optional[str] = None

    model_config = {
        "from_attributes": True
    }

    @model_validator(mode="before")
    @classmethod
    def flatten_relations(cls, data):
        if isinstance(data, dict):
            return data
        dst = (
            data.destination_fixed_tank
            if data.destination_type == DrainSource.FIXED.value
            else data.destination_mobile_tank
        )
        return {
            "id": data.id,
            "original_drain_id": data.original_drain_id,
            "date_time": data.date_time,
            "destination_type": data.destination_type,
            "destination_fixed_tank_id": data.destination_fixed_tank_id,
            "destination_mobile_tank_id": data.destination_mobile_tank_id,
            "quantity_liters": data.quantity_liters,
            "mrn_breakdown": data.mrn_breakdown or [],
            "notes": data.notes,
            "user_id": data.user_id,
            "destination_name": (getattr(dst, "tank_name", None) or getattr(dst, "name", None)) if dst else None,
            "user_name": data.user.username if data.user else None,
        }
