# backend/routers/fuel_price_rules.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from database import get_db
from models import UserDB
from schemas.airline import FuelPriceRuleCreate, FuelPriceRuleUpdate, FuelPriceRuleOut
from auth import get_current_user, require_roles
from constants.roles import FUEL_ADMIN_ROLES
from constants.fuel import Currency
from crud.airline import (
    get_price_rules,
    find_price_rule,
    create_price_rule,
    update_price_rule,
    delete_price_rule,
)

router = APIRouter(prefix="/api/fuel/price-rules", tags=["Fuel Price Rules"])


@router.get("/", response_model=List[FuelPriceRuleOut], dependencies=[Depends(get_current_user)])
async def list_price_rules(airline_id: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    return await get_price_rules(db, airline_id)


@router.get("/find", response_model=FuelPriceRuleOut, dependencies=[Depends(get_current_user)])
async def find_rule(airline_id: int, currency: str, db: AsyncSession = Depends(get_db)):
    currency = currency.upper()
    if currency not in Currency.__members__:
        raise HTTPException(status_code=400, detail=f"Unsupported currency: {currency}")
    rule = await find_price_rule(db, airline_id, currency)
    if not rule:
        raise HTTPException(status_code=404, detail="No price rule for this airline and currency")
    return rule


@router.post("/", response_model=FuelPriceRuleOut, status_code=201)
async def add_price_rule(
    payload: FuelPriceRuleCreate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await create_price_rule(db, payload, user)


@router.put("/{rule_id}", response_model=FuelPriceRuleOut)
async def edit_price_rule(
    rule_id: int,
    payload: FuelPriceRuleUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    return await update_price_rule(db, rule_id, payload, user)


@router.delete("/{rule_id}")
async def remove_price_rule(
    rule_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserDB = Depends(require_roles(*FUEL_ADMIN_ROLES)),
):
    await delete_price_rule(db, rule_id, user)
    return {"deleted": rule_id}
