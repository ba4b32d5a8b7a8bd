# backend/routers/companies.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from database import get_db
from models import UserDB
from schemas.admin import CompanyCreate, CompanyUpdate, CompanyOut
from auth import get_current_user, admin_required
from crud.company import get_companies, get_company_or_404, create_company, update_company, delete_company

router = APIRouter(prefix="/api/companies", tags=["Companies"])


@router.get("/", response_model=List[CompanyOut], dependencies=[Depends(get_current_user)])
async def list_companies(db: AsyncSession = Depends(get_db)):
    return await get_companies(db)


@router.get("/{company_id}", response_model=CompanyOut, dependencies=[Depends(get_current_user)])
async def get_company(company_id: int, db: AsyncSession = Depends(get_db)):
    return await get_company_or_404(db, company_id)


@router.post("/", response_model=CompanyOut, status_code=201)
async def add_company(payload: CompanyCreate, db: AsyncSession = Depends(get_db), user: UserDB = Depends(admin_required)):
    return await create_company(db, payload, user)


@router.put("/{company_id}", response_model=CompanyOut)
async def edit_company(
    company_id: int, payload: CompanyUpdate,
    db: AsyncSession = Depends(get_db), user: UserDB = Depends(admin_required),
):
    return await update_company(db, company_id, payload, user)


@router.delete("/{company_id}")
async def remove_company(company_id: int, db: AsyncSession = Depends(get_db), user: UserDB = Depends(admin_required)):
    await delete_company(db, company_id, user)
    return {"deleted": company_id}
