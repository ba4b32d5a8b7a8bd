# backend/crud/company.py
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import CompanyDB, LocationDB, VehicleDB, UserDB
from schemas.admin import CompanyCreate, CompanyUpdate
from crud.activity import log_activity


async def get_companies(db: AsyncSession):
    q = await db.execute(select(CompanyDB).order_by(CompanyDB.name))
    return q.scalars().all()


async def get_company_or_404(db: AsyncSession, company_id: int) -> CompanyDB:
    res = await db.execute(select(CompanyDB).where(CompanyDB.id == company_id))
    company = res.scalar_one_or_none()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(CompanyDB.id).where(CompanyDB.name == name)
    if exclude_id is not None:
        stmt = stmt.where(CompanyDB.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_company(db: AsyncSession, data: CompanyCreate, user: Optional[UserDB] = None):
    if await _name_taken(db, data.name):
        raise HTTPException(status_code=409, detail="Company with this name already exists")
    company = CompanyDB(**data.model_dump())
    db.add(company)
    await db.flush()
    log_activity(db, user, "CREATE", "COMPANY", f"Created company {company.name}", company.id)
    await db.commit()
    await db.refresh(company)
    return company


async def update_company(db: AsyncSession, company_id: int, data: CompanyUpdate, user: Optional[UserDB] = None):
    company = await get_company_or_404(db, company_id)
    values = data.model_dump(exclude_unset=True)
    if "name" in values and await _name_taken(db, values["name"], company_id):
        raise HTTPException(status_code=409, detail="Company with this name already exists")
    for k, v in values.items():
        setattr(company, k, v)
    log_activity(db, user, "UPDATE", "COMPANY", f"Updated company {company.name}", company.id, values)
    await db.commit()
    await db.refresh(company)
    return company


async def delete_company(db: AsyncSession, company_id: int, user: Optional[UserDB] = None):
    company = await get_company_or_404(db, company_id)

    locations = (await db.execute(
        select(func.count(LocationDB.id)).where(LocationDB.company_id == company_id)
    )).scalar() or 0
    vehicles = (await db.execute(
        select(func.count(VehicleDB.id)).where(VehicleDB.company_id == company_id)
    )).scalar() or 0
    if locations or vehicles:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Cannot delete company {company.name}: foreign key constraint, "
                f"{locations} location(s) and {vehicles} vehicle(s) reference it"
            ),
        )

    log_activity(db, user, "DELETE", "COMPANY", f"Deleted company {company.name}", company.id)
    await db.delete(company)
    await db.commit()
