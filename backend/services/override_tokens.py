# services/override_tokens.py
"""
Short-lived, single-use tokens that let one operation draw fuel from an
inconsistent fixed tank.

The token is a signed JWT; its `jti` is stored in consistency_overrides so
that it can be consumed exactly once.
"""

from datetime import datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fastapi import HTTPException
from jose import jwt, JWTError
from typing import Optional
import logging
import uuid

from config import settings
from models import ConsistencyOverrideDB, UserDB
from constants.fuel import LOG_CONSISTENCY_OVERRIDE
from crud.system_log import add_system_log
from crud.activity import log_activity

logger = logging.getLogger(__name__)

TOKEN_TYPE = "consistency_override"


def _reject(reason: str):
    return HTTPException(status_code=409, detail=f"Override token rejected: {reason}")


async def issue_override_token(
    db: AsyncSession,
    tank_id: int,
    operation_type: str,
    notes: str,
    user: Optional[UserDB] = None,
) -> dict:
    ttl = settings.OVERRIDE_TOKEN_TTL_SECONDS
    jti = uuid.uuid4().hex
    now_utc = datetime.now(timezone.utc)

    payload = {
        "type": TOKEN_TYPE,
        "jti": jti,
        "tank_id": tank_id,
        "operation_type": operation_type,
        "sub": user.username if user else "system",
        "exp": now_utc + timedelta(seconds=ttl),
    }
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    db.add(ConsistencyOverrideDB(
        jti=jti,
        tank_id=tank_id,
        operation_type=operation_type,
        notes=notes,
        user_id=user.id if user else None,
        expires_at=datetime.now() + timedelta(seconds=ttl),
    ))
    add_system_log(
        db,
        LOG_CONSISTENCY_OVERRIDE,
        {"tank_id": tank_id, "operation_type": operation_type, "notes": notes, "jti": jti},
        severity="WARNING",
        user_id=user.id if user else None,
    )
    log_activity(
        db, user, "CONSISTENCY_OVERRIDE", "FIXED_TANK",
        f"Override issued for {operation_type}: {notes}",
        tank_id,
    )
    await db.commit()

    logger.warning(f"Consistency override issued for tank {tank_id} ({operation_type}) by {payload['sub']}")
    return {
        "override_token": token,
        "expires_in": ttl,
        "tank_id": tank_id,
        "operation_type": operation_type,
    }


async def consume_override_token(
    db: AsyncSession,
    token: str,
    tank_id: int,
    operation_type: str,
) -> ConsistencyOverrideDB:
    """Validate the token for this tank/operation and mark it used. No commit."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise _reject("invalid or expired")

    if payload.get("type") != TOKEN_TYPE or not payload.get("jti"):
        raise _reject("not an override token")
    if payload.get("tank_id") != tank_id:
        raise _reject("issued for another tank")
    if payload.get("operation_type") != operation_type:
        raise _reject("issued for another operation")

    res = await db.execute(
        select(ConsistencyOverrideDB).where(ConsistencyOverrideDB.jti == payload["jti"])
    )
    override = res.scalar_one_or_none()

    if override is None:
        raise _reject("unknown token")
    if override.used_at is not None:
        raise _reject("already used")
    if override.expires_at <= datetime.now():
        raise _reject("expired")

    override.used_at = datetime.now()
    await db.flush()
    return override
