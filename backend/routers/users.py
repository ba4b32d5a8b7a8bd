# backend/routers/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from database import get_db
from models import UserDB
from schemas.admin import UserCreate, UserUpdate, UserOut, RoleOut
from auth import admin_required
from crud.user import get_roles, get_users, get_user_or_404, create_user, update_user, delete_user

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/roles", response_model=List[RoleOut], dependencies=[Depends(admin_required)])
async def list_roles(db: AsyncSession = Depends(get_db)):
    return await get_roles(db)


@router.get("/", response_model=List[UserOut], dependencies=[Depends(admin_required)])
async def list_users(db: AsyncSession = Depends(get_db)):
    return [UserOut.from_user(u) for u in await get_users(db)]


@router.get("/{user_id}", response_model=UserOut, dependencies=[Depends(admin_required)])
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return UserOut.from_user(await get_user_or_404(db, user_id))


@router.post("/", response_model=UserOut, status_code=201)
async def add_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: UserDB = Depends(admin_required),
):
    return UserOut.from_user(await create_user(db, payload, admin))


@router.put("/{user_id}", response_model=UserOut)
async def edit_user(
    user_id: int,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: UserDB = Depends(admin_required),
):
    return UserOut.from_user(await update_user(db, user_id, payload, admin))


@router.delete("/{user_id}")
async def remove_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: UserDB = Depends(admin_required),
):
    await delete_user(db, user_id, admin)
    return {"message": "User deleted successfully"}
