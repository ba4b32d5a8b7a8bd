from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List, Optional

from constants.fuel import Currency


class AirlineBase(BaseModel):
    name: str = Field(..., min_length=1)
    contact_details: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None
    is_foreign: bool = False
    operating_destinations: List[str] = []

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Airline name is required")
        return v


class AirlineCreate(AirlineBase):
    pass


class AirlineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    contact_details: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None
    is_foreign: Optional[bool] = None
    operating_destinations: Optional[List[str]] = None


class AirlineOut(AirlineBase):
    id: int
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


# ---------------------------------------------------
# FUEL PRICE RULES
# ---------------------------------------------------

class FuelPriceRuleCreate(BaseModel):
    airline_id: int
    price: float = Field(..., gt=0)
    currency: Currency

    @field_validator("currency", mode="before")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if isinstance(v, str) else v


class FuelPriceRuleUpdate(BaseModel):
    price: Optional[float] = Field(None, gt=0)
    currency: Optional[Currency] = None

    @field_validator("currency", mode="before")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if isinstance(v, str) else v


class FuelPriceRuleOut(BaseModel):
    id: int
    airline_id: int
    price: float
    currency: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }
