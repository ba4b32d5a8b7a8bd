from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

from constants.fuel import Currency


class FuelingOperationCreate(BaseModel):
    date_time: datetime
    aircraft_registration: str = Field(..., min_length=1)
    airline_id: int
    destination: str = Field(..., min_length=1)
    quantity_liters: float = Field(..., gt=0)
    specific_density: Optional[float] = Field(None, gt=0)
    quantity_kg: Optional[float] = Field(None, gt=0)
    price_per_kg: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    total_amount: Optional[float] = Field(None, ge=0)
    tank_id: int
    flight_number: Optional[str] = None
    operator_name: str = Field(..., min_length=1)
    traffic_type: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("currency", mode="before")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if isinstance(v, str) else v


class FuelingOperationUpdate(BaseModel):
    """Only descriptive fields; quantities are fixed once fuel has left the tanker."""
    aircraft_registration: Optional[str] = Field(None, min_length=1)
    destination: Optional[str] = Field(None, min_length=1)
    flight_number: Optional[str] = None
    operator_name: Optional[str] = Field(None, min_length=1)
    traffic_type: Optional[str] = None
    notes: Optional[str] = None


class AirlineBrief(BaseModel):
    id: int
    name: str
    is_foreign: bool = False

    model_config = {"from_attributes": True}


class TankerBrief(BaseModel):
    id: int
    identifier: str
    name: str

    model_config = {"from_attributes": True}


class FuelingOperationOut(BaseModel):
    id: int
    date_time: datetime
    aircraft_registration: str
    airline_id: int
    destination: str
    quantity_liters: float
    specific_density: float
    quantity_kg: float
    price_per_kg: Optional[float] = None
    currency: Optional[str] = None
    total_amount: Optional[float] = None
    tank_id: int
    flight_number: Optional[str] = None
    operator_name: str
    traffic_type: Optional[str] = None
    notes: Optional[str] = None
    airline: Optional[AirlineBrief] = None
    tank: Optional[TankerBrief] = None

    model_config = {
        "from_attributes": True
    }
