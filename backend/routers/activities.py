# backend/routers/activities.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import Optional

from database import get_db
from schemas.activity import ActivityOut, ActivityPage, ActivityTypes
from auth import require_roles
from constants.roles import FUEL_ADMIN_ROLES
from crud.activity import get_activities, get_activity_types
from utils.dates import validate_range

router = APIRouter(prefix="/api/activities", tags=["Activities"])


@router.get("/", response_model=ActivityPage, dependencies=[Depends(require_roles(*FUEL_ADMIN_ROLES))])
async def list_activities(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    action_type: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    validate_range(start_date, end_date)
    result = await get_activities(
        db, start_date, end_date, user_id, username,
        action_type, resource_type, resource_id, page, limit,
    )
    result["items"] = [ActivityOut.model_validate(r) for r in result["items"]]
    return result


@router.get("/types", response_model=ActivityTypes, dependencies=[Depends(require_roles(*FUEL_ADMIN_ROLES))])
async def activity_types(db: AsyncSession = Depends(get_db)):
    return await get_activity_types(db)
