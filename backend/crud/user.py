# backend/crud/user.py
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import UserDB, RoleDB
from schemas.admin import UserCreate, UserUpdate
from auth import hash_password
from config import settings
from constants.roles import DEFAULT_ROLES, ADMIN
from crud.activity import log_activity

logger = logging.getLogger(__name__)


async def get_roles(db: AsyncSession):
    q = await db.execute(select(RoleDB).order_by(RoleDB.id))
    return q.scalars().all()


async def get_role_by_name(db: AsyncSession, name: str) -> RoleDB:
    res = await db.execute(select(RoleDB).where(RoleDB.name == name.upper()))
    role = res.scalar_one_or_none()
    if not role:
        raise HTTPException(status_code=400, detail=f"Unknown role: {name}")
    return role


async def get_users(db: AsyncSession):
    q = await db.execute(select(UserDB).order_by(UserDB.username))
    return q.scalars().all()


async def get_user_or_404(db: AsyncSession, user_id: int) -> UserDB:
    res = await db.execute(
        select(UserDB).where(UserDB.id == user_id).execution_options(populate_existing=True)
    )
    user = res.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def create_user(db: AsyncSession, data: UserCreate, actor: Optional[UserDB] = None):
    res = await db.execute(select(UserDB.id).where(UserDB.username == data.username))
    if res.first():
        raise HTTPException(status_code=409, detail="Username already exists")

    role = await get_role_by_name(db, data.role)
    user = UserDB(
        username=data.username,
        password_hash=hash_password(data.password),
        full_name=data.full_name,
        role_id=role.id,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    log_activity(db, actor, "CREATE", "USER", f"Created user {user.username} ({role.name})", user.id)
    await db.commit()
    return await get_user_or_404(db, user.id)


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate, actor: Optional[UserDB] = None):
    user = await get_user_or_404(db, user_id)
    values = data.model_dump(exclude_unset=True)

    if values.get("role"):
        role = await get_role_by_name(db, values["role"])
        user.role_id = role.id
    if "full_name" in values:
        user.full_name = values["full_name"]
    if values.get("is_active") is not None:
        user.is_active = values["is_active"]
    if values.get("password"):
        user.password_hash = hash_password(values["password"])

    values.pop("password", None)
    log_activity(db, actor, "UPDATE", "USER", f"Updated user {user.username}", user.id, values)
    await db.commit()
    return await get_user_or_404(db, user_id)


async def delete_user(db: AsyncSession, user_id: int, actor: UserDB):
    if actor and actor.id == user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = await get_user_or_404(db, user_id)
    log_activity(db, actor, "DELETE", "USER", f"Deleted user {user.username}", user.id)
    await db.delete(user)
    await db.commit()


# =======================================================
# STARTUP SEEDING
# =======================================================
async def seed_roles_and_admin(db: AsyncSession):
    # -----------------------------
    # 1. CREATE DEFAULT ROLES
    # -----------------------------
    existing_roles = await db.execute(select(RoleDB))
    existing_roles = {r.name for r in existing_roles.scalars().all()}

    for role_name, desc in DEFAULT_ROLES:
        if role_name not in existing_roles:
            db.add(RoleDB(name=role_name, description=desc))
            logger.info(f"Added role: {role_name}")

    await db.commit()

    # -----------------------------
    # 2. CREATE DEFAULT ADMIN USER
    # -----------------------------
    admin_username = settings.DEFAULT_ADMIN_USERNAME

    result = await db.execute(select(UserDB).where(UserDB.username == admin_username))
    admin_user = result.scalar_one_or_none()

    if not admin_user:
        role_res = await db.execute(select(RoleDB).where(RoleDB.name == ADMIN))
        admin_role = role_res.scalar_one()

        db.add(UserDB(
            username=admin_username,
            password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
            full_name="System Administrator",
            role_id=admin_role.id,
            is_active=True,
        ))
        await db.commit()
        logger.info("Default admin user created")
    else:
        logger.info("Admin user already exists. Skipping creation.")
