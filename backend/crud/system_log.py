# backend/crud/system_log.py
from models import SystemLogDB
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional


def add_system_log(db: AsyncSession, action: str, details: dict, severity: str = "INFO", user_id: Optional[int] = None):
    """Queue a system log row on the session; the caller's commit persists it."""
    entry = SystemLogDB(action=action, details=details, severity=severity, user_id=user_id)
    db.add(entry)
    return entry


async def get_system_logs(db: AsyncSession, limit: int = 100, action: Optional[str] = None):
    stmt = select(SystemLogDB)
    if action:
        stmt = stmt.where(SystemLogDB.action == action)
    stmt = stmt.order_by(SystemLogDB.timestamp.desc(), SystemLogDB.id.desc()).limit(limit)
    q = await db.execute(stmt)
    return q.scalars().all()
