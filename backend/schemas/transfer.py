from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import List, Optional


class FixedTankTransferCreate(BaseModel):
    source_tank_id: int
    destination_tank_id: int
    quantity_liters: float = Field(..., gt=0)
    transfer_datetime: Optional[datetime] = None
    notes: Optional[str] = None
    override_token: Optional[str] = None

    @model_validator(mode="after")
    def check_tanks(self):
        if self.source_tank_id == self.destination_tank_id:
            raise ValueError("Source and destination tanks cannot be the same")
        return self


class FixedTankTransferOut(BaseModel):
    id: int
    transfer_datetime: datetime
    source_tank_id: int
    destination_tank_id: int
    quantity_liters: float
    mrn_breakdown: List[dict] = []
    notes: Optional[str] = None
    user_id: Optional[int] = None
    source_tank_name: Optional[str] = None
    destination_tank_name: Optional[str] = None

    model_config = {
        "from_attributes": True
    }

    @model_validator(mode="before")
    @classmethod
    def flatten_tanks(cls, data):
        if isinstance(data, dict):
            return data
        return {
            "id": data.id,
            "transfer_datetime": data.transfer_datetime,
            "source_tank_id": data.source_tank_id,
            "destination_tank_id": data.destination_tank_id,
            "quantity_liters": data.quantity_liters,
            "mrn_breakdown": data.mrn_breakdown or [],
            "notes": data.notes,
            "user_id": data.user_id,
            "source_tank_name": data.source_tank.tank_name if data.source_tank else None,
            "destination_tank_name": data.destination_tank.tank_name if data.destination_tank else None,
        }
