from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


class IntakeDistribution(BaseModel):
    fixed_tank_id: int
    quantity_liters: float = Field(..., gt=0)


class FuelIntakeCreate(BaseModel):
    delivery_datetime: datetime
    supplier_name: Optional[str] = None
    delivery_note_number: Optional[str] = None
    customs_declaration_number: str = Field(..., min_length=1)
    fuel_type: str = Field(..., min_length=1)
    fuel_category: Optional[str] = None
    quantity_liters_received: float = Field(..., gt=0)
    quantity_kg_received: Optional[float] = Field(None, ge=0)
    specific_gravity: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None
    distributions: List[IntakeDistribution] = Field(..., min_length=1)


class FuelIntakeOut(BaseModel):
    id: int
    delivery_datetime: datetime
    supplier_name: Optional[str] = None
    delivery_note_number: Optional[str] = None
    customs_declaration_number: str
    fuel_type: str
    fuel_category: Optional[str] = None
    quantity_liters_received: float
    quantity_kg_received: Optional[float] = None
    specific_gravity: Optional[float] = None
    distributions: List[dict] = []
    notes: Optional[str] = None

    model_config = {
        "from_attributes": True
    }
