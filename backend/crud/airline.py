# backend/crud/airline.py
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import AirlineDB, FuelPriceRuleDB, FuelingOperationDB, UserDB
from schemas.airline import AirlineCreate, AirlineUpdate, FuelPriceRuleCreate, FuelPriceRuleUpdate
from crud.activity import log_activity

logger = logging.getLogger(__name__)


# =======================================================
# AIRLINES
# =======================================================
async def get_airlines(db: AsyncSession):
    q = await db.execute(select(AirlineDB).order_by(AirlineDB.name.asc()))
    return q.scalars().all()


async def get_airline_or_404(db: AsyncSession, airline_id: int) -> AirlineDB:
    res = await db.execute(select(AirlineDB).where(AirlineDB.id == airline_id))
    airline = res.scalar_one_or_none()
    if not airline:
        raise HTTPException(status_code=404, detail="Airline not found")
    return airline


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(AirlineDB.id).where(func.lower(AirlineDB.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(AirlineDB.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_airline(db: AsyncSession, data: AirlineCreate, user: Optional[UserDB] = None):
    if await _name_taken(db, data.name):
        raise HTTPException(status_code=400, detail="Airline with this name already exists")

    airline = AirlineDB(**data.model_dump())
    db.add(airline)
    await db.flush()
    log_activity(db, user, "CREATE", "AIRLINE", f"Created airline {airline.name}", airline.id)
    await db.commit()
    await db.refresh(airline)
    return airline


async def update_airline(db: AsyncSession, airline_id: int, data: AirlineUpdate, user: Optional[UserDB] = None):
    airline = await get_airline_or_404(db, airline_id)
    values = data.model_dump(exclude_unset=True)

    if "name" in values:
        values["name"] = values["name"].strip()
        if await _name_taken(db, values["name"], airline_id):
            raise HTTPException(status_code=400, detail="Airline with this name already exists")

    for k, v in values.items():
        setattr(airline, k, v)

    log_activity(db, user, "UPDATE", "AIRLINE", f"Updated airline {airline.name}", airline.id, values)
    await db.commit()
    await db.refresh(airline)
    return airline


async def delete_airline(db: AsyncSession, airline_id: int, user: Optional[UserDB] = None):
    airline = await get_airline_or_404(db, airline_id)

    ops = (await db.execute(
        select(func.count(FuelingOperationDB.id)).where(FuelingOperationDB.airline_id == airline_id)
    )).scalar() or 0
    rules = (await db.execute(
        select(func.count(FuelPriceRuleDB.id)).where(FuelPriceRuleDB.airline_id == airline_id)
    )).scalar() or 0

    if ops or rules:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Cannot delete airline {airline.name}: foreign key constraint, "
                f"referenced by {ops} fueling operation(s) and {rules} price rule(s)"
            ),
        )

    log_activity(db, user, "DELETE", "AIRLINE", f"Deleted airline {airline.name}", airline.id)
    await db.delete(airline)
    await db.commit()


# =======================================================
# FUEL PRICE RULES
# =======================================================
async def get_price_rules(db: AsyncSession, airline_id: Optional[int] = None):
    stmt = select(FuelPriceRuleDB)
    if airline_id is not None:
        stmt = stmt.where(FuelPriceRuleDB.airline_id == airline_id)
    q = await db.execute(stmt.order_by(FuelPriceRuleDB.airline_id, FuelPriceRuleDB.currency))
    return q.scalars().all()


async def find_price_rule(db: AsyncSession, airline_id: int, currency: str) -> Optional[FuelPriceRuleDB]:
    res = await db.execute(
        select(FuelPriceRuleDB).where(
            FuelPriceRuleDB.airline_id == airline_id,
            FuelPriceRuleDB.currency == currency.upper(),
        )
    )
    return res.scalar_one_or_none()


async def get_price_rule_or_404(db: AsyncSession, rule_id: int) -> FuelPriceRuleDB:
    res = await db.execute(select(FuelPriceRuleDB).where(FuelPriceRuleDB.id == rule_id))
    rule = res.scalar_one_or_none()
    if not rule:
        raise HTTPException(status_code=404, detail="Fuel price rule not found")
    return rule


async def create_price_rule(db: AsyncSession, data: FuelPriceRuleCreate, user: Optional[UserDB] = None):
    airline = await get_airline_or_404(db, data.airline_id)
    if await find_price_rule(db, airline.id, data.currency.value):
        raise HTTPException(
            status_code=409,
            detail=f"A price rule for {airline.name} in {data.currency.value} already exists",
        )

    rule = FuelPriceRuleDB(airline_id=airline.id, price=data.price, currency=data.currency.value)
    db.add(rule)
    await db.flush()
    log_activity(
        db, user, "CREATE", "FUEL_PRICE_RULE",
        f"Price rule {data.price} {data.currency.value}/kg for {airline.name}", rule.id,
    )
    await db.commit()
    await db.refresh(rule)
    return rule


async def update_price_rule(db: AsyncSession, rule_id: int, data: FuelPriceRuleUpdate, user: Optional[UserDB] = None):
    rule = await get_price_rule_or_404(db, rule_id)
    values = data.model_dump(exclude_unset=True, mode="json")

    new_currency = values.get("currency")
    if new_currency and new_currency != rule.currency:
        existing = await find_price_rule(db, rule.airline_id, new_currency)
        if existing and existing.id != rule.id:
            raise HTTPException(status_code=409, detail=f"A price rule in {new_currency} already exists for this airline")

    for k, v in values.items():
        if v is not None:
            setattr(rule, k, v)

    log_activity(db, user, "UPDATE", "FUEL_PRICE_RULE", f"Updated price rule {rule.id}", rule.id, values)
    await db.commit()
    await db.refresh(rule)
    return rule


async def delete_price_rule(db: AsyncSession, rule_id: int, user: Optional[UserDB] = None):
    rule = await get_price_rule_or_404(db, rule_id)
    log_activity(db, user, "DELETE", "FUEL_PRICE_RULE", f"Deleted price rule {rule.id}", rule.id)
    await db.delete(rule)
    await db.commit()
