# scripts/seed_db.py
"""
Seed a fresh database with roles, the admin user and sample fuel data.
Run from backend/:  python -m scripts.seed_db
"""

import asyncio
import logging

from sqlalchemy import select

from database import create_tables, AsyncSessionLocal
from models import AirlineDB, FuelPriceRuleDB, FixedStorageTankDB, MrnRecordDB, FuelTankDB
from crud.user import seed_roles_and_admin

logger = logging.getLogger(__name__)

SAMPLE_AIRLINES = [
    # name, is_foreign, destinations, prices per currency
    ("Air Serbia", True, ["BEG"], {"EUR": 1.15, "USD": 1.25}),
    ("Austrian Airlines", True, ["VIE"], {"EUR": 1.12}),
    ("Turkish Airlines", True, ["IST", "SAW"], {"EUR": 1.10, "USD": 1.20}),
    ("Domestic Charter", False, ["SJJ", "TZL"], {"BAM": 2.20}),
]

# identifier, name, capacity, current, fuel type, MRN
SAMPLE_FIXED_TANKS = [
    ("FT-01", "Main Tank 1", 50000.0, 32000.0, "JET A-1", "24BA010000000001A1"),
    ("FT-02", "Main Tank 2", 50000.0, 18500.0, "JET A-1", "24BA010000000002B4"),
]

# identifier, name, capacity, current, fuel type
SAMPLE_TANKERS = [
    ("CIS-01", "Tanker 1", 20000.0, 5000.0, "JET A-1"),
]


async def seed_fuel_data(db):
    existing = (await db.execute(select(AirlineDB.name))).scalars().all()

    for name, is_foreign, destinations, prices in SAMPLE_AIRLINES:
        if name in existing:
            continue
        airline = AirlineDB(name=name, is_foreign=is_foreign, operating_destinations=destinations)
        db.add(airline)
        await db.flush()
        for currency, price in prices.items():
            db.add(FuelPriceRuleDB(airline_id=airline.id, price=price, currency=currency))
        logger.info(f"Seeded airline {name}")

    existing_tanks = (await db.execute(select(FixedStorageTankDB.tank_identifier))).scalars().all()
    for identifier, name, capacity, current, fuel_type, mrn in SAMPLE_FIXED_TANKS:
        if identifier in existing_tanks:
            continue
        tank = FixedStorageTankDB(
            tank_identifier=identifier,
            tank_name=name,
            capacity_liters=capacity,
            current_quantity_liters=current,
            fuel_type=fuel_type,
            status="ACTIVE",
        )
        db.add(tank)
        await db.flush()
        # opening stock is backed by one MRN batch so the tank starts consistent
        db.add(MrnRecordDB(
            fixed_tank_id=tank.id,
            customs_declaration_number=mrn,
            quantity_liters=current,
            remaining_quantity_liters=current,
        ))
        logger.info(f"Seeded fixed tank {identifier}")

    existing_tankers = (await db.execute(select(FuelTankDB.identifier))).scalars().all()
    for identifier, name, capacity, current, fuel_type in SAMPLE_TANKERS:
        if identifier in existing_tankers:
            continue
        db.add(FuelTankDB(
            identifier=identifier,
            name=name,
            capacity_liters=capacity,
            current_liters=current,
            fuel_type=fuel_type,
        ))
        logger.info(f"Seeded tanker {identifier}")

    await db.commit()


async def main():
    await create_tables()
    async with AsyncSessionLocal() as db:
        await seed_roles_and_admin(db)
        await seed_fuel_data(db)
    logger.info("Seeding complete")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
