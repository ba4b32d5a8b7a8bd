from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from typing import List, Optional

from constants.fuel import CorrectionAction, FixedTankOperation, SyncStrategy


class MrnBreakdownItem(BaseModel):
    mrn: str
    quantity_liters: float
    remaining_quantity_liters: float
    date_added: Optional[datetime] = None


class TankConsistency(BaseModel):
    tank_id: int
    tank_name: str
    tank_identifier: Optional[str] = None
    current_quantity_liters: float
    total_mrn_quantity: float
    difference: float
    is_consistent: bool
    severity: str
    tolerance: float
    mrn_count: int = 0
    mrn_breakdown: List[MrnBreakdownItem] = []


class ConsistencyOverview(BaseModel):
    all_tanks: List[TankConsistency]
    consistent_tanks: List[TankConsistency]
    inconsistent_tanks: List[TankConsistency]
    summary: dict


class MrnAdjustment(BaseModel):
    mrn_record_id: int
    new_quantity: float = Field(..., ge=0)


class CorrectionRequest(BaseModel):
    action: CorrectionAction
    notes: str
    # explicit per-record quantities for adjust_mrn; newest-first spread when absent
    adjustments: Optional[List[MrnAdjustment]] = None

    @field_validator("notes")
    @classmethod
    def notes_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Notes are required for a consistency correction")
        return v.strip()

    @model_validator(mode="after")
    def check_adjustments(self):
        if self.adjustments is None:
            return self
        if self.action != CorrectionAction.ADJUST_MRN:
            raise ValueError("adjustments can only be given for the adjust_mrn action")
        if not self.adjustments:
            raise ValueError("adjustments must not be empty")
        ids = [a.mrn_record_id for a in self.adjustments]
        if len(ids) != len(set(ids)):
            raise ValueError("Each MRN record can only be adjusted once")
        return self


class CorrectionResult(BaseModel):
    message: str
    before: TankConsistency
    after: TankConsistency


class OverrideRequest(BaseModel):
    operation_type: FixedTankOperation
    notes: str

    @field_validator("notes")
    @classmethod
    def notes_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Notes are required for a consistency override")
        return v.strip()


class OverrideResponse(BaseModel):
    override_token: str
    expires_in: int
    tank_id: int
    operation_type: str


class SyncRequest(BaseModel):
    strategy: SyncStrategy = SyncStrategy.REPORT_ONLY
    tank_id: Optional[int] = None


class SystemLogOut(BaseModel):
    id: int
    timestamp: datetime
    action: str
    details: Optional[dict] = None
    severity: str
    user_id: Optional[int] = None

    model_config = {
        "from_attributes": True
    }
