from pydantic import AliasChoices, BaseModel, Field
from datetime import datetime
from typing import List, Optional


class ActivityOut(BaseModel):
    id: int
    timestamp: datetime
    user_id: Optional[int] = None
    username: Optional[str] = None
    action_type: str
    resource_type: str
    resource_id: Optional[int] = None
    description: str
    metadata: Optional[dict] = Field(None, validation_alias=AliasChoices("metadata_json", "metadata"))

    model_config = {
        "from_attributes": True
    }


class ActivityPage(BaseModel):
    items: List[ActivityOut]
    total: int
    page: int
    limit: int
    pages: int


class ActivityTypes(BaseModel):
    action_types: List[str]
    resource_types: List[str]
