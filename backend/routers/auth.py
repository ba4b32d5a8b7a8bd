# backend/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models import UserDB, Token, UserLogin
from schemas.admin import UserOut, PasswordChange
from auth import login_for_access_token, get_current_user, verify_password, hash_password
from crud.activity import log_activity

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# ---------------------------------------------------
# LOGIN
# ---------------------------------------------------
@router.post("/login", response_model=Token)
async def login(form_data: UserLogin, db: AsyncSession = Depends(get_db)):
    return await login_for_access_token(form_data, db)


# ---------------------------------------------------
# PROFILE
# ---------------------------------------------------
@router.get("/me", response_model=UserOut)
async def me(current_user: UserDB = Depends(get_current_user)):
    return UserOut.from_user(current_user)


@router.put("/me/password")
async def change_password(
    payload: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: UserDB = Depends(get_current_user),
):
    if not verify_password(payload.current_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="Current password incorrect.")

    current_user.password_hash = hash_password(payload.new_password)
    log_activity(db, current_user, "UPDATE", "USER", "Changed own password", current_user.id)
    await db.commit()

    return {"message": "Password updated successfully"}
