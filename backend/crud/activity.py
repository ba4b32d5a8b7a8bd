# backend/crud/activity.py
from models import ActivityLogDB, UserDB
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import date
from typing import Optional

from utils.dates import apply_range


def log_activity(
    db: AsyncSession,
    user: Optional[UserDB],
    action_type: str,
    resource_type: str,
    description: str,
    resource_id: Optional[int] = None,
    metadata: Optional[dict] = None,
):
    """Append an activity row in the caller's transaction."""
    entry = ActivityLogDB(
        user_id=user.id if user else None,
        username=user.username if user else "system",
        action_type=action_type,
        resource_type=resource_type,
        resource_id=resource_id,
        description=description,
        metadata_json=metadata,
    )
    db.add(entry)
    return entry


def _filtered(stmt, start_date, end_date, user_id, username, action_type, resource_type, resource_id):
    stmt = apply_range(stmt, ActivityLogDB.timestamp, start_date, end_date)
    if user_id is not None:
        stmt = stmt.where(ActivityLogDB.user_id == user_id)
    if username:
        stmt = stmt.where(ActivityLogDB.username.ilike(f"%{username}%"))
    if action_type:
        stmt = stmt.where(ActivityLogDB.action_type == action_type)
    if resource_type:
        stmt = stmt.where(ActivityLogDB.resource_type == resource_type)
    if resource_id is not None:
        stmt = stmt.where(ActivityLogDB.resource_id == resource_id)
    return stmt


async def get_activities(
    db: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    action_type: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    page: int = 1,
    limit: int = 50,
):
    args = (start_date, end_date, user_id, username, action_type, resource_type, resource_id)

    total = (await db.execute(
        _filtered(select(func.count(ActivityLogDB.id)), *args)
    )).scalar() or 0

    stmt = _filtered(select(ActivityLogDB), *args)
    stmt = (
        stmt.order_by(ActivityLogDB.timestamp.desc(), ActivityLogDB.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).scalars().all()

    return {
        "items": rows,
        "total": int(total),
        "page": page,
        "limit": limit,
        "pages": (int(total) + limit - 1) // limit if total else 0,
    }


async def get_activity_types(db: AsyncSession):
    actions = (await db.execute(
        select(ActivityLogDB.action_type).distinct().order_by(ActivityLogDB.action_type)
    )).scalars().all()
    resources = (await db.execute(
        select(ActivityLogDB.resource_type).distinct().order_by(ActivityLogDB.resource_type)
    )).scalars().all()
    return {"action_types": list(actions), "resource_types": list(resources)}
